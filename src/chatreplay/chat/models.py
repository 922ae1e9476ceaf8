"""Normalized chat message model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from .styling import ROLE_COLORS, SuperchatTier, author_role, superchat_tier


@dataclass(frozen=True)
class Superchat:
    """Paid message payload. ``amount`` keeps the currency-formatted text."""

    amount: str
    message: str


@dataclass(frozen=True)
class ChatMessage:
    """A single normalized chat message."""

    timestamp_sec: int  # Seconds from broadcast start, negative for pre-stream chat
    timestamp_text: str
    message: str
    username: str
    user_icon: Optional[str] = None
    superchat: Optional[Superchat] = None
    badge: Optional[str] = None

    def __post_init__(self) -> None:
        # The avatar fallback renders username[0].
        if not self.username:
            raise ValueError("ChatMessage.username must not be empty")

    @property
    def role(self) -> Optional[str]:
        return author_role(self.badge)

    def to_dict(self, tiers: Optional[Sequence[SuperchatTier]] = None) -> Dict[str, Any]:
        role = self.role
        superchat = None
        if self.superchat is not None:
            superchat = {
                "amount": self.superchat.amount,
                "message": self.superchat.message,
                "tier": superchat_tier(self.superchat.amount, tiers).to_dict(),
            }
        return {
            "timestamp_sec": self.timestamp_sec,
            "timestamp_text": self.timestamp_text,
            "message": self.message,
            "username": self.username,
            "avatar_initial": self.username[0],
            "user_icon": self.user_icon,
            "superchat": superchat,
            "badge": self.badge,
            "role": role,
            "role_color": ROLE_COLORS.get(role) if role else None,
        }
