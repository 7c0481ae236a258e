"""Conversion between stored game rows and GameRecord, plus read helpers."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy.orm import Session

from pickem.ingestion.schema import GameRecord, TeamSide
from pickem.models import Game


def serialize_raw(raw: dict | str | None) -> str:
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    return json.dumps(raw, ensure_ascii=False, separators=(",", ":"), default=str)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes for timezone-aware columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def game_to_record(game: Game) -> GameRecord:
    return GameRecord(
        id=game.id,
        week=game.week or 0,
        date=_as_utc(game.start_time_utc),
        home=TeamSide(
            team_id=game.home_team_id or "",
            name=game.home_team_name or "",
            abbrev=game.home_team_abbrev or "",
            score=game.home_score,
        ),
        away=TeamSide(
            team_id=game.away_team_id or "",
            name=game.away_team_name or "",
            abbrev=game.away_team_abbrev or "",
            score=game.away_score,
        ),
        completed=bool(game.completed),
        status_text=game.status_text or "TBD",
    )


def _record_columns(record: GameRecord) -> dict:
    return {
        "week": record.week,
        "start_time_utc": record.date,
        "completed": record.completed,
        "status_text": record.status_text,
        "home_team_id": record.home.team_id,
        "home_team_name": record.home.name,
        "home_team_abbrev": record.home.abbrev,
        "home_score": record.home.score,
        "away_team_id": record.away.team_id,
        "away_team_name": record.away.name,
        "away_team_abbrev": record.away.abbrev,
        "away_score": record.away.score,
    }


def overwrite_game(game: Game, record: GameRecord) -> bool:
    """Replace every stored field with the record's values.

    Returns True when any scoring or display field actually changed.
    """

    changed = False
    for column, value in _record_columns(record).items():
        current = getattr(game, column)
        if column == "start_time_utc" and current is not None and value is not None:
            # SQLite drops tzinfo on the way back out.
            if current.replace(tzinfo=None) == value.replace(tzinfo=None):
                continue
        if current != value:
            setattr(game, column, value)
            changed = True
    game.raw_json = serialize_raw(record.raw)
    return changed


def new_game(record: GameRecord) -> Game:
    return Game(id=record.id, raw_json=serialize_raw(record.raw), **_record_columns(record))


def load_games(db: Session, week: int | None = None) -> list[GameRecord]:
    query = db.query(Game)
    if week is not None:
        query = query.filter(Game.week == week)
    rows = query.order_by(Game.week.asc(), Game.start_time_utc.asc(), Game.id.asc()).all()
    return [game_to_record(row) for row in rows]


def load_games_by_id(db: Session, game_ids: Iterable[str] | None = None) -> dict[str, GameRecord]:
    query = db.query(Game)
    if game_ids is not None:
        ids = list(game_ids)
        if not ids:
            return {}
        query = query.filter(Game.id.in_(ids))
    return {row.id: game_to_record(row) for row in query.all()}
