"""Parser for ESPN NFL scoreboard payloads."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pickem.ingestion.schema import GameRecord, TeamSide
from pickem.ingestion.season import is_regular_week


def _safe_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_start_time(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    return None


def _raw_score(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _status_type(status: Any) -> dict[str, Any]:
    if not isinstance(status, dict):
        return {}
    status_type = status.get("type")
    return status_type if isinstance(status_type, dict) else {}


def _status_text(status_type: dict[str, Any]) -> str:
    for key in ("shortDetail", "description"):
        value = status_type.get(key)
        if isinstance(value, str) and value:
            return value
    return "TBD"


def _team_side(competitor: Any) -> TeamSide:
    if not isinstance(competitor, dict):
        return TeamSide()
    team = competitor.get("team")
    if not isinstance(team, dict):
        team = {}
    return TeamSide(
        team_id=str(team.get("id") or ""),
        name=str(team.get("displayName") or team.get("name") or ""),
        abbrev=str(team.get("abbreviation") or ""),
        score=_raw_score(competitor.get("score")),
    )


def normalize_event(event: dict[str, Any], week: int) -> GameRecord:
    """Convert one scoreboard event into a GameRecord.

    Missing optional data produces a partially-populated record instead of an error.
    """

    competitions = event.get("competitions")
    competition: dict[str, Any] = {}
    if isinstance(competitions, list) and competitions and isinstance(competitions[0], dict):
        competition = competitions[0]

    home = None
    away = None
    competitors = competition.get("competitors")
    if isinstance(competitors, list):
        for competitor in competitors:
            if not isinstance(competitor, dict):
                continue
            home_away = competitor.get("homeAway")
            if home_away == "home" and home is None:
                home = competitor
            elif home_away == "away" and away is None:
                away = competitor

    status_type = _status_type(event.get("status")) or _status_type(competition.get("status"))

    return GameRecord(
        id=str(event.get("id") or competition.get("id") or ""),
        week=week,
        date=_parse_start_time(event.get("date") or competition.get("date")),
        home=_team_side(home),
        away=_team_side(away),
        completed=bool(status_type.get("completed")),
        status_text=_status_text(status_type),
        raw={
            "event_id": event.get("id"),
            "competition_id": competition.get("id"),
            "status": event.get("status") or competition.get("status"),
        },
    )


def parse_scoreboard(scoreboard_json: dict, week: int) -> list[GameRecord]:
    """Parse ESPN scoreboard JSON for one week into GameRecord list."""

    events = scoreboard_json.get("events")
    if not isinstance(events, list):
        return []

    seen_ids: set[str] = set()
    parsed_games: list[GameRecord] = []
    for event in events:
        if not isinstance(event, dict):
            continue
        game = normalize_event(event, week)
        if not game.id or game.id in seen_ids:
            continue
        seen_ids.add(game.id)
        parsed_games.append(game)

    return parsed_games


def detect_current_week(scoreboard_json: dict) -> int | None:
    """Return the feed's current regular-season week, or None when unknown."""

    week_value = scoreboard_json.get("week")
    if isinstance(week_value, dict):
        candidate = week_value.get("number")
        if candidate is None:
            candidate = week_value.get("current")
    else:
        candidate = week_value

    week = _safe_int(candidate)
    if week is None or not is_regular_week(week):
        return None
    return week
