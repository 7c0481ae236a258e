"""Standings and season-detail aggregation.

Everything here is a pure function of (games, picks, players); results are
recomputed on every call and never stored.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Literal, Mapping, Optional, Sequence

from pickem.ingestion.schema import GameRecord

PickResult = Literal["win", "loss", "pending"]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class StandingRow:
    player_id: str
    name: str
    display_name: str
    correct: int
    total: int
    pct: float


@dataclass(frozen=True)
class SeasonStats:
    correct: int = 0
    incorrect: int = 0
    total: int = 0
    pct: float = 0.0


@dataclass(frozen=True)
class PickOutcome:
    game: GameRecord
    pick_team_id: str
    result: PickResult


@dataclass(frozen=True)
class SeasonDetail:
    stats: SeasonStats = SeasonStats()
    picks: list[PickOutcome] = field(default_factory=list)


@dataclass(frozen=True)
class WeekStats:
    week: int
    correct: int
    incorrect: int
    total: int
    pct: float


def parse_score(value) -> Optional[float]:
    """Numeric score, or None when absent or not a finite number."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def winner_team_id(game: GameRecord) -> Optional[str]:
    """Winning team id of a decided game; None for unfinished, tied or unscored games."""

    if not game.completed:
        return None
    home_score = parse_score(game.home.score)
    away_score = parse_score(game.away.score)
    if home_score is None or away_score is None:
        return None
    if home_score > away_score:
        return game.home.team_id
    if away_score > home_score:
        return game.away.team_id
    return None


def _pct(correct: int, total: int) -> float:
    return correct / total if total > 0 else 0.0


def _display_name(player) -> str:
    return getattr(player, "nickname", "") or player.name


def compute_standings(
    games: Iterable[GameRecord],
    picks: Mapping[str, Mapping[str, str]],
    players: Sequence,
) -> list[StandingRow]:
    """Rank players by correct picks, then win percentage.

    Every roster player gets a row, even with no picks. Ties keep roster order.
    """

    tallies: dict[str, list[int]] = {player.id: [0, 0] for player in players}

    for game in games:
        winner = winner_team_id(game)
        if winner is None:
            continue
        game_picks = picks.get(game.id) or {}
        for player_id, tally in tallies.items():
            pick_team_id = game_picks.get(player_id)
            if not pick_team_id:
                continue
            tally[1] += 1
            if pick_team_id == winner:
                tally[0] += 1

    rows = [
        StandingRow(
            player_id=player.id,
            name=player.name,
            display_name=_display_name(player),
            correct=tallies[player.id][0],
            total=tallies[player.id][1],
            pct=_pct(tallies[player.id][0], tallies[player.id][1]),
        )
        for player in players
    ]
    # sorted() is stable, so equal (correct, pct) rows keep roster order.
    return sorted(rows, key=lambda row: (-row.correct, -row.pct))


def _chronological_key(outcome: PickOutcome) -> tuple[int, datetime]:
    game = outcome.game
    moment = game.date or _EPOCH
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (game.week or 0, moment)


def season_detail(
    player_id: str | None,
    games: Iterable[GameRecord],
    picks: Mapping[str, Mapping[str, str]],
) -> SeasonDetail:
    """Every game the player picked, classified as win, loss or pending."""

    if not player_id:
        return SeasonDetail()

    outcomes: list[PickOutcome] = []
    correct = 0
    incorrect = 0

    for game in games:
        pick_team_id = (picks.get(game.id) or {}).get(player_id)
        if not pick_team_id:
            continue

        winner = winner_team_id(game)
        result: PickResult = "pending"
        if winner is not None:
            if pick_team_id == winner:
                result = "win"
                correct += 1
            else:
                result = "loss"
                incorrect += 1
        outcomes.append(PickOutcome(game=game, pick_team_id=pick_team_id, result=result))

    outcomes.sort(key=_chronological_key)
    total = correct + incorrect
    return SeasonDetail(
        stats=SeasonStats(correct=correct, incorrect=incorrect, total=total, pct=_pct(correct, total)),
        picks=outcomes,
    )


def stats_for(outcomes: Iterable[PickOutcome]) -> SeasonStats:
    correct = 0
    incorrect = 0
    for outcome in outcomes:
        if outcome.result == "win":
            correct += 1
        elif outcome.result == "loss":
            incorrect += 1
    total = correct + incorrect
    return SeasonStats(correct=correct, incorrect=incorrect, total=total, pct=_pct(correct, total))


def weekly_breakdown(detail: SeasonDetail) -> list[WeekStats]:
    by_week: dict[int, list[PickOutcome]] = {}
    for outcome in detail.picks:
        week = outcome.game.week
        if not week:
            continue
        by_week.setdefault(week, []).append(outcome)

    breakdown = []
    for week in sorted(by_week):
        stats = stats_for(by_week[week])
        breakdown.append(
            WeekStats(
                week=week,
                correct=stats.correct,
                incorrect=stats.incorrect,
                total=stats.total,
                pct=stats.pct,
            )
        )
    return breakdown


def filter_detail_by_week(detail: SeasonDetail, week: int | None) -> tuple[list[PickOutcome], SeasonStats]:
    if week is None:
        return list(detail.picks), detail.stats
    outcomes = [outcome for outcome in detail.picks if outcome.game.week == week]
    return outcomes, stats_for(outcomes)


def recent_picks(detail: SeasonDetail, limit: int = 5) -> list[PickOutcome]:
    """Tail of the chronological order, newest first."""

    if limit <= 0:
        return []
    return list(reversed(detail.picks[-limit:]))


def weekly_winner(rows: Sequence[StandingRow]) -> Optional[StandingRow]:
    if not rows or rows[0].total == 0:
        return None
    return rows[0]


def leader_margin(rows: Sequence[StandingRow]) -> int:
    if len(rows) < 2:
        return 0
    return rows[0].correct - rows[1].correct


def visible_games(
    games: Iterable[GameRecord],
    picks: Mapping[str, Mapping[str, str]],
    players: Sequence,
    hide_unpicked: bool,
) -> list[GameRecord]:
    """Games to show for a week; optionally only those some roster player picked."""

    games = list(games)
    if not hide_unpicked:
        return games
    return [
        game
        for game in games
        if any((picks.get(game.id) or {}).get(player.id) for player in players)
    ]
