"""Sync NFL weeks from ESPN into the local database."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy.orm import Session

from pickem.db import SessionLocal, init_db
from pickem.games import load_games_by_id, new_game, overwrite_game
from pickem.ingestion.espn_client import fetch_scoreboard
from pickem.ingestion.espn_parser import parse_scoreboard
from pickem.ingestion.merge import merge_all
from pickem.ingestion.schema import GameRecord
from pickem.ingestion.season import REGULAR_SEASON_TYPE, valid_weeks
from pickem.log_buffer import NOTICE_ERROR
from pickem.models import Game

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    total_fetched: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    failed_weeks: list[int] = field(default_factory=list)


def upsert_games(db: Session, games: Iterable[GameRecord], result: SyncResult) -> None:
    """Merge fetched games over the stored ones and write back each one by id."""

    records = list(games)
    game_ids = list(dict.fromkeys(record.id for record in records))
    stored = load_games_by_id(db, game_ids)
    merged = merge_all(stored, records)

    for game_id in game_ids:
        record = merged[game_id]
        try:
            with db.begin_nested():
                existing = db.get(Game, game_id) if game_id in stored else None
                if existing is None:
                    db.add(new_game(record))
                    outcome = "inserted"
                elif overwrite_game(existing, record):
                    outcome = "updated"
                else:
                    outcome = "skipped"
        except Exception:
            result.errors += 1
            logger.exception("Failed upserting game id=%s", game_id)
            continue

        if outcome == "inserted":
            result.inserted += 1
            logger.info("Inserted game id=%s week=%s", record.id, record.week)
        elif outcome == "updated":
            result.updated += 1
            logger.info("Updated game id=%s week=%s", record.id, record.week)
        else:
            result.skipped += 1
            logger.debug("Skipped unchanged game id=%s", record.id)


def insert_missing_games(db: Session, games: Iterable[GameRecord]) -> int:
    """Store games whose id is not known yet; stored games are left alone.

    Spreadsheet rows carry no scores, so they only seed the collection. The
    feed remains the source of truth for games it has already supplied.
    """

    inserted = 0
    known = {row[0] for row in db.query(Game.id).all()}
    for record in games:
        if record.id in known:
            continue
        db.add(new_game(record))
        known.add(record.id)
        inserted += 1
    if inserted:
        logger.info("Seeded %s games from spreadsheet rows", inserted)
    return inserted


def sync_weeks_with_session(
    db: Session,
    weeks: Iterable[int],
    *,
    year: int | None = None,
    season_type: int = REGULAR_SEASON_TYPE,
    fetch=fetch_scoreboard,
) -> SyncResult:
    result = SyncResult()

    for week in valid_weeks(weeks):
        logger.info("Fetching scoreboard week=%s year=%s", week, year)
        payload = fetch(week, year, season_type)
        if payload.get("error"):
            result.errors += 1
            result.failed_weeks.append(week)
            logger.error(
                "Fetch error week=%s year=%s error=%s details=%s",
                week,
                year,
                payload.get("error"),
                payload.get("details"),
                extra={"notice": NOTICE_ERROR},
            )
            continue

        parsed_games = parse_scoreboard(payload, week)
        result.total_fetched += len(parsed_games)
        logger.info("Parsed %s games for week=%s", len(parsed_games), week)
        upsert_games(db, parsed_games, result)

    db.commit()
    return result


def sync_weeks(
    weeks: Iterable[int],
    *,
    year: int | None = None,
    season_type: int = REGULAR_SEASON_TYPE,
) -> SyncResult:
    """Fetch, parse, and overwrite games for the requested weeks."""

    init_db()
    with SessionLocal() as db:
        return sync_weeks_with_session(db, weeks, year=year, season_type=season_type)
