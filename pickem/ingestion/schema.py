"""Canonical game contract shared across feed -> store -> scoring -> export."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class TeamSide(BaseModel):
    """One side of a game. Missing feed data leaves empty strings, never errors."""

    model_config = ConfigDict(frozen=True)

    team_id: str = ""
    name: str = ""
    abbrev: str = ""
    # Raw score as supplied by the feed; None when absent (distinct from "0").
    score: Optional[str] = None


class GameRecord(BaseModel):
    """
    Internal representation of one scheduled contest.

    A later record with the same id replaces the stored one in full.
    """

    model_config = ConfigDict(frozen=True)

    # Required fields
    id: str
    week: int

    # Optional fields
    date: Optional[datetime] = None
    home: TeamSide = TeamSide()
    away: TeamSide = TeamSide()
    completed: bool = False
    status_text: str = "TBD"
    raw: Optional[dict[str, Any] | str] = None
