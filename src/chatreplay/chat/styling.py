"""Superchat colour tiers and badge-derived author roles.

The chat log only carries display strings: a currency-formatted amount such as
"¥12,000" and a badge tooltip such as "Moderator" or "Member (6 months)". The
numeric amount and the role are derived here for the presentation layer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

# Thousands separators seen in exported amounts: comma, apostrophe (CHF),
# regular, no-break and narrow no-break spaces.
_SEPARATORS_RE = re.compile(r"[,'\u0020\u00a0\u202f]")
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


@dataclass(frozen=True)
class SuperchatTier:
    name: str
    min_amount: float
    header: str  # header strip colour
    body: str  # message body colour

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "min_amount": self.min_amount, "header": self.header, "body": self.body}


# Ordered from highest threshold to lowest; the last entry is the fallback.
DEFAULT_TIERS: List[SuperchatTier] = [
    SuperchatTier("red", 50000, "#d00000", "#e62117"),
    SuperchatTier("magenta", 10000, "#c2185b", "#e91e63"),
    SuperchatTier("orange", 5000, "#e65100", "#f57c00"),
    SuperchatTier("yellow", 2000, "#ffb300", "#ffca28"),
    SuperchatTier("green", 500, "#00bfa5", "#1de9b6"),
    SuperchatTier("cyan", 200, "#00b8d4", "#00e5ff"),
    SuperchatTier("blue", 0, "#1565c0", "#1e88e5"),
]

ROLE_OWNER = "owner"
ROLE_MODERATOR = "moderator"
ROLE_MEMBER = "member"

# Checked in order; the first role with a matching substring wins.
ROLE_KEYWORDS: Sequence[tuple[str, tuple[str, ...]]] = (
    (ROLE_OWNER, ("owner", "所有者")),
    (ROLE_MODERATOR, ("moderator", "モデレーター")),
    (ROLE_MEMBER, ("member", "メンバー")),
)

ROLE_COLORS: Dict[str, str] = {
    ROLE_OWNER: "#ffd600",
    ROLE_MODERATOR: "#5e84f1",
    ROLE_MEMBER: "#2ba640",
}


def parse_amount(amount: Optional[str]) -> Optional[float]:
    """Read the numeric value of a currency string like "¥12,000" or "$5.00"."""
    if not amount:
        return None
    cleaned = _SEPARATORS_RE.sub("", amount)
    m = _NUMBER_RE.search(cleaned)
    if not m:
        return None
    return float(m.group(0))


def tiers_from_config(entries: Iterable[Dict[str, Any]]) -> List[SuperchatTier]:
    """Build a tier list from profile entries, sorted highest threshold first."""
    tiers = [
        SuperchatTier(
            name=str(e["name"]),
            min_amount=float(e.get("min", 0)),
            header=str(e.get("header", "")),
            body=str(e.get("body", "")),
        )
        for e in entries
    ]
    if not tiers:
        raise ValueError("superchat tier list must not be empty")
    tiers.sort(key=lambda t: t.min_amount, reverse=True)
    return tiers


def superchat_tier(amount: Optional[str], tiers: Optional[Sequence[SuperchatTier]] = None) -> SuperchatTier:
    tiers = tiers or DEFAULT_TIERS
    value = parse_amount(amount)
    if value is not None:
        for tier in tiers:
            if value >= tier.min_amount:
                return tier
    return tiers[-1]


def author_role(badge: Optional[str]) -> Optional[str]:
    if not badge:
        return None
    text = badge.lower()
    for role, keywords in ROLE_KEYWORDS:
        if any(k in text for k in keywords):
            return role
    return None
