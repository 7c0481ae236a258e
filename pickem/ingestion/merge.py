"""Last-write-wins merge of games into the all-time collection."""

from __future__ import annotations

from typing import Iterable, Mapping

from pickem.ingestion.schema import GameRecord


def merge_all(
    existing_by_id: Mapping[str, GameRecord],
    new_games: Iterable[GameRecord],
) -> dict[str, GameRecord]:
    """Return a new mapping where each new game fully replaces any stored one.

    The input mapping is left untouched; repeating a merge with the same games
    yields the same result.
    """

    updated = dict(existing_by_id)
    for game in new_games:
        updated[game.id] = game
    return updated


def games_for_week(games: Iterable[GameRecord], week: int) -> list[GameRecord]:
    return [game for game in games if game.week == week]


def available_weeks(games: Iterable[GameRecord]) -> list[int]:
    return sorted({game.week for game in games})
