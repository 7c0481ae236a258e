"""xlsx export and import via openpyxl."""

from __future__ import annotations

import io
import logging
import zipfile
from typing import Any, Iterable, Mapping, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from pickem.ingestion.merge import available_weeks, games_for_week
from pickem.ingestion.schema import GameRecord
from pickem.scoring.standings import StandingRow
from pickem.spreadsheet.rows import game_to_row, header_for

logger = logging.getLogger(__name__)

MAX_SHEET_TITLE = 31
PERCENT_FORMAT = "0.00%"
SUMMARY_SHEET = "Season_Summary"
WIN_PCT_SHEET = "WinPct_Data"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class SpreadsheetError(Exception):
    """The workbook could not be read or written."""


class NothingToExport(SpreadsheetError):
    pass


def week_sheet_title(week: int) -> str:
    return f"Week{week}"[:MAX_SHEET_TITLE]


def _to_bytes(wb: Workbook) -> bytes:
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def _fill_game_sheet(
    ws: Worksheet,
    games: Sequence[GameRecord],
    picks: Mapping[str, Mapping[str, str]],
    players: Sequence,
    week: int,
) -> None:
    headers = header_for(players)
    ws.append(headers)
    for game in games:
        row = game_to_row(game, picks, players, week=week)
        ws.append([row.get(header, "") for header in headers])


def write_week_workbook(
    games: Sequence[GameRecord],
    picks: Mapping[str, Mapping[str, str]],
    players: Sequence,
    week: int,
) -> bytes:
    """Single-sheet workbook for one week's visible games."""

    if not games:
        raise NothingToExport("No games to export for this week.")

    wb = Workbook()
    ws = wb.active
    ws.title = week_sheet_title(week)
    _fill_game_sheet(ws, games, picks, players, week)
    logger.info("Exported week=%s games=%s", week, len(games))
    return _to_bytes(wb)


def _format_percent_column(ws: Worksheet, column: int) -> None:
    for (cell,) in ws.iter_rows(min_row=2, min_col=column, max_col=column):
        cell.number_format = PERCENT_FORMAT


def write_season_workbook(
    games: Iterable[GameRecord],
    picks: Mapping[str, Mapping[str, str]],
    players: Sequence,
    standings: Sequence[StandingRow],
) -> bytes:
    """One sheet per week, then the season summary and win-pct sheets."""

    games = list(games)
    weeks = available_weeks(games)
    if not weeks:
        raise NothingToExport("No games loaded yet.")

    wb = Workbook()
    wb.remove(wb.active)

    for week in weeks:
        ws = wb.create_sheet(week_sheet_title(week))
        _fill_game_sheet(ws, games_for_week(games, week), picks, players, week)

    ws_summary = wb.create_sheet(SUMMARY_SHEET)
    ws_summary.append(["Rank", "Player", "Correct", "Total", "WinPct"])
    for rank, row in enumerate(standings, start=1):
        ws_summary.append([rank, row.display_name, row.correct, row.total, row.pct])
    _format_percent_column(ws_summary, 5)

    ws_pct = wb.create_sheet(WIN_PCT_SHEET)
    ws_pct.append(["Player", "WinPct"])
    for row in standings:
        ws_pct.append([row.display_name, row.pct])
    _format_percent_column(ws_pct, 2)

    logger.info("Exported season weeks=%s players=%s", len(weeks), len(standings))
    return _to_bytes(wb)


def _sheet_rows(ws) -> list[dict[str, Any]]:
    values = ws.iter_rows(values_only=True)
    header = next(values, None)
    if not header:
        return []
    columns = [(index, str(name).strip()) for index, name in enumerate(header) if name is not None]

    rows: list[dict[str, Any]] = []
    for raw in values:
        if raw is None or all(value in (None, "") for value in raw):
            continue
        row = {}
        for index, name in columns:
            value = raw[index] if index < len(raw) else None
            if value is not None:
                row[name] = value
        rows.append(row)
    return rows


def read_workbook_rows(data: bytes) -> list[dict[str, Any]]:
    """Rows of every sheet, in sheet order, keyed by each sheet's header row."""

    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
        raise SpreadsheetError(str(exc)) from exc

    rows: list[dict[str, Any]] = []
    try:
        for ws in wb.worksheets:
            rows.extend(_sheet_rows(ws))
            logger.debug("Read sheet=%s rows=%s", ws.title, len(rows))
    finally:
        wb.close()
    return rows
