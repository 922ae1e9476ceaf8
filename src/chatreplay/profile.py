from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .chat.styling import DEFAULT_TIERS


def default_profile() -> Dict[str, Any]:
    return {
        "chat": {
            "scroll_threshold_px": 50,  # distance from bottom still treated as "following"
            "composer_name": "You",
            "extensions": [".jsonl", ".txt"],
        },
        "playback": {
            "seek_step_seconds": 5,  # arrow-key step
        },
        "superchat": {
            "tiers": [
                {"name": t.name, "min": t.min_amount, "header": t.header, "body": t.body}
                for t in DEFAULT_TIERS
            ],
        },
        "studio": {
            "host": "127.0.0.1",
            "port": 8766,
        },
    }


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def load_profile(profile_path: Optional[Path]) -> Dict[str, Any]:
    """Load a YAML profile on top of the defaults.

    Keys missing from the file fall back to ``default_profile()``.
    """
    if profile_path is None:
        return default_profile()

    profile_path = Path(profile_path)
    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    data = yaml.safe_load(profile_path.read_text(encoding="utf-8"))
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Profile YAML must be a mapping")
    return _merge(default_profile(), data)
