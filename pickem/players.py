"""Player roster: identity-driven creation, profile edits, and read helpers."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from pickem.models import Player

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_PLAYER = "player"
DEFAULT_NEW_PLAYER_COLOR = "#22c55e"


class PlayerRecord(BaseModel):
    """Roster entry as seen by the pick store and the standings engine."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    name: str = "Player"
    nickname: str = ""
    initials: str = "P"
    color: str = DEFAULT_NEW_PLAYER_COLOR
    profile_image_url: Optional[str] = None
    role: str = ROLE_PLAYER

    @property
    def display_name(self) -> str:
        return self.nickname or self.name

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class PlayerUpdateDenied(Exception):
    """Raised when someone other than the player (or an admin) edits a profile."""


def initials_for(name: str) -> str:
    stripped = (name or "").strip()
    return stripped[0].upper() if stripped else "P"


def load_players(db: Session) -> list[PlayerRecord]:
    """Roster in a stable order (creation time, then id)."""

    rows = db.query(Player).order_by(Player.created_at_utc.asc(), Player.id.asc()).all()
    return [PlayerRecord.model_validate(row) for row in rows]


def get_player(db: Session, player_id: str | None) -> PlayerRecord | None:
    if not player_id:
        return None
    row = db.query(Player).filter(Player.id == player_id).one_or_none()
    return PlayerRecord.model_validate(row) if row else None


def ensure_player(
    db: Session,
    *,
    player_id: str,
    display_name: str | None,
    email: str | None,
    admin_email: str | None,
) -> Player:
    """Create the player on first sign-in, otherwise refresh name/role/initials.

    Color, nickname and photo chosen by the player are never overwritten here.
    """

    clean_email = (email or "").strip().lower() or None
    role = ROLE_ADMIN if clean_email and admin_email and clean_email == admin_email.lower() else ROLE_PLAYER
    name = (display_name or "").strip() or clean_email or "Player"

    player = db.query(Player).filter(Player.id == player_id).one_or_none()
    if player is None:
        player = Player(
            id=player_id,
            name=name,
            email=clean_email,
            role=role,
            initials=initials_for(name),
            color=DEFAULT_NEW_PLAYER_COLOR,
        )
        db.add(player)
        logger.info("Created player id=%s role=%s", player_id, role)
    else:
        player.name = name
        player.role = role
        player.initials = initials_for(name)
        if clean_email:
            player.email = clean_email
    db.commit()
    db.refresh(player)
    return player


def update_player(
    db: Session,
    player_id: str,
    changes: dict,
    acting_player: PlayerRecord | None,
) -> Player:
    """Apply profile changes; only the player themself or an admin may edit."""

    if acting_player is None:
        raise PlayerUpdateDenied("Sign in to edit player settings.")
    if not acting_player.is_admin and acting_player.id != player_id:
        raise PlayerUpdateDenied("You can only edit your own profile.")

    player = db.query(Player).filter(Player.id == player_id).one_or_none()
    if player is None:
        raise KeyError(player_id)

    if "name" in changes and isinstance(changes["name"], str):
        name = changes["name"].strip()
        player.name = name
        if name:
            player.initials = initials_for(name)
    if "nickname" in changes:
        player.nickname = (changes["nickname"] or "").strip()
    if changes.get("color"):
        player.color = changes["color"]
    if "profile_image_url" in changes:
        player.profile_image_url = changes["profile_image_url"] or None

    db.commit()
    db.refresh(player)
    logger.info("Updated player id=%s by=%s", player_id, acting_player.id)
    return player
