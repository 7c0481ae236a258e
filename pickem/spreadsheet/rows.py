"""Flat row schema shared by xlsx export and import."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence

from pickem.ingestion.schema import GameRecord, TeamSide
from pickem.ingestion.season import is_regular_week

logger = logging.getLogger(__name__)

BASE_COLUMNS: tuple[str, ...] = (
    "Week",
    "GameId",
    "DateUTC",
    "HomeTeamId",
    "HomeTeamAbbrev",
    "HomeTeamName",
    "AwayTeamId",
    "AwayTeamAbbrev",
    "AwayTeamName",
)

_HEADER_NOISE = re.compile(r"[\s_]+")


def header_key(header: Any) -> str:
    """Case-insensitive header key; "Game ID", "game_id" and "GameId" all match."""

    return _HEADER_NOISE.sub("", str(header or "")).lower()


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return format_date(value)
    return str(value).strip()


def format_date(value: datetime | None) -> str:
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    text = cell_text(value)
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_week(value: Any) -> Optional[int]:
    """Whole week number, or None when the cell is empty or not a number."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = cell_text(value)
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not number.is_integer():
        return None
    return int(number)


def _lookup(row: Mapping[str, Any], key: str) -> Any:
    for header, value in row.items():
        if header_key(header) == key:
            return value
    return None


def row_game_id(row: Mapping[str, Any]) -> str:
    return cell_text(_lookup(row, "gameid"))


def row_week(row: Mapping[str, Any]) -> Optional[int]:
    return parse_week(_lookup(row, "week"))


def player_column(player) -> str:
    """Header of a player's pick column: nickname when set, else name."""

    return getattr(player, "nickname", "") or player.name


def game_to_row(
    game: GameRecord,
    picks: Mapping[str, Mapping[str, str]],
    players: Sequence,
    week: int | None = None,
) -> dict[str, str | int]:
    game_picks = picks.get(game.id) or {}
    row: dict[str, str | int] = {
        "Week": game.week or week or "",
        "GameId": game.id,
        "DateUTC": format_date(game.date),
        "HomeTeamId": game.home.team_id,
        "HomeTeamAbbrev": game.home.abbrev,
        "HomeTeamName": game.home.name,
        "AwayTeamId": game.away.team_id,
        "AwayTeamAbbrev": game.away.abbrev,
        "AwayTeamName": game.away.name,
    }
    for player in players:
        row[player_column(player)] = game_picks.get(player.id) or ""
    return row


def header_for(players: Sequence) -> list[str]:
    return list(BASE_COLUMNS) + [player_column(player) for player in players]


def normalize_row(row: Mapping[str, Any]) -> GameRecord | None:
    """Build a GameRecord from a flat row; None without a game id or a regular-season week."""

    game_id = row_game_id(row)
    week = row_week(row)
    if not game_id or not is_regular_week(week):
        return None
    return GameRecord(
        id=game_id,
        week=week,
        date=parse_date(_lookup(row, "dateutc")),
        home=TeamSide(
            team_id=cell_text(_lookup(row, "hometeamid")),
            abbrev=cell_text(_lookup(row, "hometeamabbrev")),
            name=cell_text(_lookup(row, "hometeamname")),
        ),
        away=TeamSide(
            team_id=cell_text(_lookup(row, "awayteamid")),
            abbrev=cell_text(_lookup(row, "awayteamabbrev")),
            name=cell_text(_lookup(row, "awayteamname")),
        ),
    )


@dataclass
class ImportResult:
    imported_games: int = 0
    weeks: list[int] = field(default_factory=list)
    skipped_rows: int = 0
    predictions_by_game: dict[str, dict[str, str]] = field(default_factory=dict)
    week_by_game: dict[str, int] = field(default_factory=dict)
    games: list[GameRecord] = field(default_factory=list)

    @property
    def message(self) -> str:
        return import_message(self.imported_games, len(self.weeks))


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def import_message(game_count: int, week_count: int) -> str:
    if game_count == 0:
        return "No games were found in the imported Excel file."
    return f"Imported {_plural(game_count, 'game')} across {_plural(week_count, 'week')}."


def parse_import_rows(rows: Iterable[Mapping[str, Any]], players: Sequence) -> ImportResult:
    """Collect picks per game from flat rows.

    Player columns are matched by display name, falling back to the plain
    name. Rows without a game id are skipped; an out-of-range week keeps the
    row's picks but leaves the week out of the result.
    """

    result = ImportResult()
    weeks: set[int] = set()
    games: dict[str, GameRecord] = {}

    for row in rows:
        game_id = row_game_id(row)
        if not game_id:
            result.skipped_rows += 1
            continue

        week = row_week(row)
        if is_regular_week(week):
            weeks.add(week)
            result.week_by_game[game_id] = week
            record = normalize_row(row)
            if record is not None:
                games[game_id] = record

        predictions = result.predictions_by_game.setdefault(game_id, {})
        for player in players:
            column = player_column(player)
            value = cell_text(row.get(column if column in row else player.name))
            if value:
                predictions[player.id] = value

    result.imported_games = len(result.predictions_by_game)
    result.weeks = sorted(weeks)
    result.games = list(games.values())
    logger.debug(
        "Parsed import rows games=%s weeks=%s skipped=%s",
        result.imported_games,
        result.weeks,
        result.skipped_rows,
    )
    return result
