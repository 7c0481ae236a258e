from datetime import datetime
from pydantic import BaseModel
from typing import Literal, Optional


class TeamSideOut(BaseModel):
    team_id: str
    name: str
    abbrev: str
    score: Optional[str]

    class Config:
        from_attributes = True


class GameOut(BaseModel):
    id: str
    week: int
    date: Optional[datetime]
    home: TeamSideOut
    away: TeamSideOut
    completed: bool
    status_text: str

    class Config:
        from_attributes = True


class GamesResponse(BaseModel):
    week: Optional[int] = None
    count: int
    hide_unpicked: bool = False
    games: list[GameOut]
    picks: dict[str, dict[str, str]]
    last_updated: dict[str, Optional[datetime]] = {}


class RefreshRequest(BaseModel):
    weeks: Optional[list[int]] = None
    year: Optional[int] = None


class SyncResultOut(BaseModel):
    total_fetched: int
    inserted: int
    updated: int
    skipped: int
    errors: int
    failed_weeks: list[int] = []

    class Config:
        from_attributes = True


class CurrentWeekResponse(BaseModel):
    week: int
    detected: bool


class PlayerOut(BaseModel):
    id: str
    name: str
    nickname: str
    display_name: str
    initials: str
    color: str
    profile_image_url: Optional[str]
    role: str

    class Config:
        from_attributes = True


class SignInRequest(BaseModel):
    player_id: str
    display_name: Optional[str] = None
    email: Optional[str] = None


class PlayerUpdate(BaseModel):
    name: Optional[str] = None
    nickname: Optional[str] = None
    color: Optional[str] = None
    profile_image_url: Optional[str] = None


class PickUpdate(BaseModel):
    team_id: Optional[str] = ""


class PickOut(BaseModel):
    game_id: str
    player_id: str
    team_id: str
    updated_at_utc: Optional[datetime]

    class Config:
        from_attributes = True


class PicksResponse(BaseModel):
    week: Optional[int] = None
    picks: dict[str, dict[str, str]]


class StandingRowOut(BaseModel):
    player_id: str
    name: str
    display_name: str
    correct: int
    total: int
    pct: float

    class Config:
        from_attributes = True


class StandingsResponse(BaseModel):
    week: Optional[int] = None
    weekly: list[StandingRowOut] = []
    season: list[StandingRowOut]
    weekly_winner: Optional[StandingRowOut] = None
    weekly_leader_margin: int = 0
    season_leader_margin: int = 0


class SeasonStatsOut(BaseModel):
    correct: int
    incorrect: int
    total: int
    pct: float

    class Config:
        from_attributes = True


class WeekStatsOut(SeasonStatsOut):
    week: int


class PickOutcomeOut(BaseModel):
    game: GameOut
    pick_team_id: str
    result: Literal["win", "loss", "pending"]

    class Config:
        from_attributes = True


class SeasonDetailResponse(BaseModel):
    player_id: str
    stats: SeasonStatsOut
    picks: list[PickOutcomeOut]
    weekly: list[WeekStatsOut]
    recent: list[PickOutcomeOut]
    week: Optional[int] = None
    filtered_stats: Optional[SeasonStatsOut] = None
    filtered_picks: Optional[list[PickOutcomeOut]] = None


class ImportResponse(BaseModel):
    ok: bool
    message: str
    imported_games: int
    weeks: list[int]
    skipped_rows: int
    seeded_games: int = 0
    refresh: Optional[SyncResultOut] = None


class SettingsOut(BaseModel):
    season_year: int
    season_type: int
    admin_email: Optional[str]
    auto_refresh_enabled: bool
    auto_refresh_minutes: int
    hide_unpicked_default: bool

    class Config:
        from_attributes = True


class SettingsUpdate(BaseModel):
    season_year: Optional[int] = None
    admin_email: Optional[str] = None
    auto_refresh_enabled: Optional[bool] = None
    auto_refresh_minutes: Optional[int] = None
    hide_unpicked_default: Optional[bool] = None
