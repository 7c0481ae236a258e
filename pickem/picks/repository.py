"""Database-backed pick store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pickem.models import Game, Pick, PredictionSet
from pickem.picks.permissions import Actor, DenyReason, PickDecision, decide_pick
from pickem.picks.store import PickMap, PickPermissionError

logger = logging.getLogger(__name__)

_WRITE_ATTEMPTS = 2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _touch_prediction_set(db: Session, game_id: str, week: int | None, now: datetime) -> PredictionSet:
    prediction_set = db.query(PredictionSet).filter(PredictionSet.game_id == game_id).one_or_none()
    if prediction_set is None:
        prediction_set = PredictionSet(game_id=game_id)
        db.add(prediction_set)
    if week is None and prediction_set.week is None:
        game = db.query(Game).filter(Game.id == game_id).one_or_none()
        week = game.week if game else None
    if week is not None:
        prediction_set.week = week
    prediction_set.updated_at_utc = now
    return prediction_set


def _write_pick(
    db: Session,
    game_id: str,
    player_id: str,
    team_id: str,
    acting_player: Actor | None,
    week: int | None,
) -> Pick:
    existing = (
        db.query(Pick)
        .filter(Pick.game_id == game_id, Pick.player_id == player_id)
        .one_or_none()
    )
    decision = decide_pick(acting_player, existing.team_id if existing else None, player_id)
    if not decision.allowed:
        raise PickPermissionError(decision)

    now = _utcnow()
    _touch_prediction_set(db, game_id, week, now)

    if existing is None:
        existing = Pick(game_id=game_id, player_id=player_id, team_id=team_id, created_at_utc=now)
        db.add(existing)
    elif acting_player.role == "admin":
        existing.team_id = team_id
    else:
        # Compare-and-set: only succeeds while the stored value is still empty.
        changed = (
            db.query(Pick)
            .filter(Pick.id == existing.id, Pick.team_id == "")
            .update({Pick.team_id: team_id, Pick.updated_at_utc: now}, synchronize_session=False)
        )
        if not changed:
            db.rollback()
            raise PickPermissionError(PickDecision(False, DenyReason.ALREADY_LOCKED))

    existing.updated_at_utc = now
    db.commit()
    db.refresh(existing)
    return existing


def set_pick(
    db: Session,
    game_id: str,
    player_id: str,
    team_id: str | None,
    acting_player: Actor | None,
    week: int | None = None,
) -> Pick:
    """Store a pick if the acting player is allowed to.

    Raises PickPermissionError when denied. When two first writes race, the
    unique (game_id, player_id) constraint lets one win; the loser re-evaluates
    against the stored value and is told the pick is locked.
    """

    value = team_id or ""
    for attempt in range(_WRITE_ATTEMPTS):
        try:
            pick = _write_pick(db, game_id, player_id, value, acting_player, week)
        except IntegrityError:
            db.rollback()
            if attempt == _WRITE_ATTEMPTS - 1:
                raise
            logger.info(
                "Concurrent pick write game_id=%s player_id=%s, re-evaluating",
                game_id,
                player_id,
            )
            continue
        logger.info(
            "Saved pick game_id=%s player_id=%s team_id=%s by=%s",
            game_id,
            player_id,
            value or "-",
            acting_player.id,
        )
        return pick
    raise RuntimeError("unreachable")


def load_pick_map(db: Session, game_ids: Iterable[str] | None = None) -> PickMap:
    query = db.query(Pick)
    if game_ids is not None:
        ids = list(game_ids)
        if not ids:
            return {}
        query = query.filter(Pick.game_id.in_(ids))
    pick_map: PickMap = {}
    for pick in query.all():
        pick_map.setdefault(pick.game_id, {})[pick.player_id] = pick.team_id or ""
    return pick_map


def last_updated(db: Session, game_ids: Iterable[str]) -> dict[str, datetime | None]:
    ids = list(game_ids)
    if not ids:
        return {}
    rows = db.query(PredictionSet).filter(PredictionSet.game_id.in_(ids)).all()
    return {row.game_id: row.updated_at_utc for row in rows}


def import_picks(
    db: Session,
    predictions_by_game: Mapping[str, Mapping[str, str]],
    week_by_game: Mapping[str, int],
) -> int:
    """Bulk admin write used by spreadsheet import; merges into stored picks."""

    now = _utcnow()
    written = 0
    for game_id, predictions in predictions_by_game.items():
        _touch_prediction_set(db, game_id, week_by_game.get(game_id), now)
        stored = {
            pick.player_id: pick
            for pick in db.query(Pick).filter(Pick.game_id == game_id).all()
        }
        for player_id, team_id in predictions.items():
            pick = stored.get(player_id)
            if pick is None:
                db.add(Pick(game_id=game_id, player_id=player_id, team_id=team_id, created_at_utc=now, updated_at_utc=now))
            else:
                pick.team_id = team_id
                pick.updated_at_utc = now
        written += 1
    db.commit()
    logger.info("Imported picks for %s games", written)
    return written
