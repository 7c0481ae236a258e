"""Who may write which pick.

Admin:
  - can change any player's pick any time, including clearing a locked one
Player:
  - can only set their own pick
  - cannot change their pick once set (only admin can override)
Anonymous:
  - view only
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol


class Actor(Protocol):
    id: str
    role: str


class DenyReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    NOT_OWNER = "not_owner"
    ALREADY_LOCKED = "already_locked"


DENY_MESSAGES: dict[DenyReason, str] = {
    DenyReason.UNAUTHENTICATED: "Sign in to make picks.",
    DenyReason.NOT_OWNER: "You can only set your own picks.",
    DenyReason.ALREADY_LOCKED: "You already picked this game. Only the admin can change it.",
}


@dataclass(frozen=True)
class PickDecision:
    allowed: bool
    reason: Optional[DenyReason] = None

    @property
    def message(self) -> str:
        return DENY_MESSAGES[self.reason] if self.reason else ""


ALLOWED = PickDecision(allowed=True)


def decide_pick(
    acting_player: Actor | None,
    existing_team_id: str | None,
    target_player_id: str,
) -> PickDecision:
    if acting_player is None:
        return PickDecision(False, DenyReason.UNAUTHENTICATED)
    if acting_player.role == "admin":
        return ALLOWED
    if acting_player.id != target_player_id:
        return PickDecision(False, DenyReason.NOT_OWNER)
    if existing_team_id:
        return PickDecision(False, DenyReason.ALREADY_LOCKED)
    return ALLOWED
