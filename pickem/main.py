from __future__ import annotations

import asyncio
import logging
import os

from fastapi import Depends, FastAPI, File, Header, HTTPException, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from pickem.db import SessionLocal, get_db, init_db
from pickem.games import load_games
from pickem.ingestion.espn_client import fetch_scoreboard
from pickem.ingestion.espn_parser import detect_current_week
from pickem.ingestion.merge import games_for_week
from pickem.ingestion.season import FIRST_WEEK, REGULAR_SEASON_WEEKS
from pickem.ingestion.sync import SyncResult, insert_missing_games, sync_weeks_with_session
from pickem.log_buffer import NOTICE_ERROR, NOTICE_SUCCESS, get_buffer_handler, install_buffer_handler
from pickem.picks import repository as picks_repo
from pickem.picks.permissions import DenyReason
from pickem.picks.store import PickPermissionError
from pickem.players import (
    PlayerRecord,
    PlayerUpdateDenied,
    ensure_player,
    get_player,
    load_players,
    update_player,
)
from pickem.schemas import (
    CurrentWeekResponse,
    GameOut,
    GamesResponse,
    ImportResponse,
    PickOut,
    PickOutcomeOut,
    PicksResponse,
    PickUpdate,
    PlayerOut,
    PlayerUpdate,
    RefreshRequest,
    SeasonDetailResponse,
    SeasonStatsOut,
    SettingsOut,
    SettingsUpdate,
    SignInRequest,
    StandingRowOut,
    StandingsResponse,
    SyncResultOut,
    WeekStatsOut,
)
from pickem.scoring.standings import (
    compute_standings,
    filter_detail_by_week,
    leader_margin,
    recent_picks,
    season_detail,
    visible_games,
    weekly_breakdown,
    weekly_winner,
)
from pickem.settings import apply_settings_update, get_or_create_settings, snapshot_settings
from pickem.spreadsheet.rows import parse_import_rows
from pickem.spreadsheet.workbook import (
    XLSX_MEDIA_TYPE,
    NothingToExport,
    SpreadsheetError,
    read_workbook_rows,
    write_season_workbook,
    write_week_workbook,
)

app = FastAPI(title="NFL Pick'em")
logger = logging.getLogger(__name__)
_auto_refresh_task: asyncio.Task | None = None
_auto_refresh_stop: asyncio.Event | None = None

IMPORT_FAILED_MESSAGE = "Failed to import from Excel. Check the file format."
IMPORT_PARTIAL_MESSAGE = "Imported picks, but some weeks could not be loaded from ESPN."

_DENY_STATUS = {
    DenyReason.UNAUTHENTICATED: 401,
    DenyReason.NOT_OWNER: 403,
    DenyReason.ALREADY_LOCKED: 409,
}


def current_player(
    x_player_id: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> PlayerRecord | None:
    return get_player(db, x_player_id)


def _require_admin(player: PlayerRecord | None, action: str) -> PlayerRecord:
    if player is None:
        raise HTTPException(status_code=401, detail="Sign in first.")
    if not player.is_admin:
        raise HTTPException(status_code=403, detail=f"Only the admin can {action}.")
    return player


def _refresh_current_week() -> SyncResult:
    with SessionLocal() as db:
        settings = snapshot_settings(get_or_create_settings(db))
        payload = fetch_scoreboard(None, settings.season_year, settings.season_type)
        week = None if payload.get("error") else detect_current_week(payload)
        if week is None:
            logger.warning("Auto-refresh could not detect the current week.")
            return SyncResult(errors=1)
        return sync_weeks_with_session(
            db,
            [week],
            year=settings.season_year,
            season_type=settings.season_type,
            fetch=fetch_scoreboard,
        )


async def _run_auto_refresh_once() -> None:
    result = await asyncio.to_thread(_refresh_current_week)
    logger.info(
        "Auto-refresh done: fetched=%s inserted=%s updated=%s skipped=%s errors=%s",
        result.total_fetched,
        result.inserted,
        result.updated,
        result.skipped,
        result.errors,
    )


async def _auto_refresh_loop(interval_minutes: int) -> None:
    if interval_minutes < 1:
        logger.error("Auto-refresh interval must be >= 1 minute.")
        return

    logger.info("Auto-refresh enabled: interval=%s minutes", interval_minutes)
    while _auto_refresh_stop and not _auto_refresh_stop.is_set():
        try:
            await _run_auto_refresh_once()
        except Exception:
            logger.exception("Auto-refresh failed.")
        try:
            await asyncio.wait_for(
                _auto_refresh_stop.wait(),
                timeout=interval_minutes * 60,
            )
        except asyncio.TimeoutError:
            continue


@app.on_event("startup")
async def start_auto_refresh() -> None:
    global _auto_refresh_task, _auto_refresh_stop
    install_buffer_handler()
    init_db()
    with SessionLocal() as db:
        settings = snapshot_settings(get_or_create_settings(db))
    if not settings.auto_refresh_enabled:
        logger.info("Auto-refresh disabled in settings.")
        return
    interval_minutes = int(os.getenv("AUTO_REFRESH_INTERVAL_MINUTES", str(settings.auto_refresh_minutes)))
    _auto_refresh_stop = asyncio.Event()
    _auto_refresh_task = asyncio.create_task(_auto_refresh_loop(interval_minutes))


@app.on_event("shutdown")
async def stop_auto_refresh() -> None:
    global _auto_refresh_task, _auto_refresh_stop
    if _auto_refresh_stop:
        _auto_refresh_stop.set()
    if _auto_refresh_task:
        await _auto_refresh_task
    _auto_refresh_task = None
    _auto_refresh_stop = None


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/api/games", response_model=GamesResponse)
def api_games(
    week: int | None = None,
    hide_unpicked: bool | None = None,
    db: Session = Depends(get_db),
):
    if hide_unpicked is None:
        hide_unpicked = get_or_create_settings(db).hide_unpicked_default
    games = load_games(db, week)
    game_ids = [game.id for game in games]
    picks = picks_repo.load_pick_map(db, game_ids)
    shown = visible_games(games, picks, load_players(db), hide_unpicked)
    return GamesResponse(
        week=week,
        count=len(shown),
        hide_unpicked=hide_unpicked,
        games=[GameOut.model_validate(game) for game in shown],
        picks=picks,
        last_updated=picks_repo.last_updated(db, game_ids),
    )


@app.post("/api/games/refresh", response_model=SyncResultOut)
def api_refresh_games(payload: RefreshRequest | None = None, db: Session = Depends(get_db)):
    settings = get_or_create_settings(db)
    weeks = (payload.weeks if payload and payload.weeks else None) or list(REGULAR_SEASON_WEEKS)
    year = (payload.year if payload else None) or settings.season_year
    result = sync_weeks_with_session(
        db,
        weeks,
        year=year,
        season_type=settings.season_type,
        fetch=fetch_scoreboard,
    )
    if result.errors:
        logger.warning(
            "Some weeks could not be loaded from ESPN: %s",
            ",".join(str(week) for week in result.failed_weeks) or "-",
            extra={"notice": NOTICE_ERROR},
        )
    return SyncResultOut.model_validate(result)


@app.get("/api/weeks/current", response_model=CurrentWeekResponse)
def api_current_week(db: Session = Depends(get_db)):
    settings = get_or_create_settings(db)
    payload = fetch_scoreboard(None, settings.season_year, settings.season_type)
    week = None if payload.get("error") else detect_current_week(payload)
    if week is None:
        logger.warning("Could not detect current week; falling back to week %s", FIRST_WEEK)
        return CurrentWeekResponse(week=FIRST_WEEK, detected=False)
    return CurrentWeekResponse(week=week, detected=True)


@app.get("/api/players", response_model=list[PlayerOut])
def api_players(db: Session = Depends(get_db)):
    return [PlayerOut.model_validate(player) for player in load_players(db)]


@app.post("/api/players/sign-in", response_model=PlayerOut)
def api_sign_in(payload: SignInRequest, db: Session = Depends(get_db)):
    player_id = payload.player_id.strip()
    if not player_id:
        raise HTTPException(status_code=400, detail="player_id is required")
    settings = get_or_create_settings(db)
    player = ensure_player(
        db,
        player_id=player_id,
        display_name=payload.display_name,
        email=payload.email,
        admin_email=settings.admin_email,
    )
    return PlayerOut.model_validate(PlayerRecord.model_validate(player))


@app.patch("/api/players/{player_id}", response_model=PlayerOut)
def api_update_player(
    player_id: str,
    payload: PlayerUpdate,
    acting: PlayerRecord | None = Depends(current_player),
    db: Session = Depends(get_db),
):
    try:
        player = update_player(db, player_id, payload.model_dump(exclude_unset=True), acting)
    except PlayerUpdateDenied as exc:
        raise HTTPException(status_code=401 if acting is None else 403, detail=str(exc)) from exc
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Player not found") from exc
    return PlayerOut.model_validate(PlayerRecord.model_validate(player))


@app.put("/api/picks/{game_id}/{player_id}", response_model=PickOut)
def api_set_pick(
    game_id: str,
    player_id: str,
    payload: PickUpdate,
    acting: PlayerRecord | None = Depends(current_player),
    db: Session = Depends(get_db),
):
    try:
        pick = picks_repo.set_pick(db, game_id, player_id, payload.team_id, acting)
    except PickPermissionError as exc:
        logger.info(
            "Pick denied game_id=%s player_id=%s reason=%s",
            game_id,
            player_id,
            exc.reason.value,
        )
        raise HTTPException(status_code=_DENY_STATUS[exc.reason], detail=str(exc)) from exc
    return PickOut.model_validate(pick)


@app.get("/api/picks", response_model=PicksResponse)
def api_picks(week: int | None = None, db: Session = Depends(get_db)):
    game_ids = [game.id for game in load_games(db, week)] if week is not None else None
    return PicksResponse(week=week, picks=picks_repo.load_pick_map(db, game_ids))


@app.get("/api/standings", response_model=StandingsResponse)
def api_standings(week: int | None = None, db: Session = Depends(get_db)):
    games = load_games(db)
    picks = picks_repo.load_pick_map(db)
    players = load_players(db)

    season = compute_standings(games, picks, players)
    weekly = compute_standings(games_for_week(games, week), picks, players) if week is not None else []
    winner = weekly_winner(weekly)
    return StandingsResponse(
        week=week,
        weekly=[StandingRowOut.model_validate(row) for row in weekly],
        season=[StandingRowOut.model_validate(row) for row in season],
        weekly_winner=StandingRowOut.model_validate(winner) if winner else None,
        weekly_leader_margin=leader_margin(weekly),
        season_leader_margin=leader_margin(season),
    )


@app.get("/api/players/{player_id}/season", response_model=SeasonDetailResponse)
def api_season_detail(player_id: str, week: int | None = None, db: Session = Depends(get_db)):
    if get_player(db, player_id) is None:
        raise HTTPException(status_code=404, detail="Player not found")

    detail = season_detail(player_id, load_games(db), picks_repo.load_pick_map(db))
    response = SeasonDetailResponse(
        player_id=player_id,
        stats=SeasonStatsOut.model_validate(detail.stats),
        picks=[PickOutcomeOut.model_validate(outcome) for outcome in detail.picks],
        weekly=[WeekStatsOut.model_validate(row) for row in weekly_breakdown(detail)],
        recent=[PickOutcomeOut.model_validate(outcome) for outcome in recent_picks(detail)],
    )
    if week is not None:
        filtered, stats = filter_detail_by_week(detail, week)
        response.week = week
        response.filtered_stats = SeasonStatsOut.model_validate(stats)
        response.filtered_picks = [PickOutcomeOut.model_validate(outcome) for outcome in filtered]
    return response


def _xlsx_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/export/week/{week}")
def api_export_week(week: int, hide_unpicked: bool | None = None, db: Session = Depends(get_db)):
    if hide_unpicked is None:
        hide_unpicked = get_or_create_settings(db).hide_unpicked_default
    games = load_games(db, week)
    picks = picks_repo.load_pick_map(db, [game.id for game in games])
    players = load_players(db)
    try:
        content = write_week_workbook(visible_games(games, picks, players, hide_unpicked), picks, players, week)
    except NothingToExport as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    logger.info("Exported week %s to Excel.", week, extra={"notice": NOTICE_SUCCESS})
    return _xlsx_response(content, f"nfl-picks-week-{week}.xlsx")


@app.get("/api/export/season")
def api_export_season(db: Session = Depends(get_db)):
    games = load_games(db)
    picks = picks_repo.load_pick_map(db)
    players = load_players(db)
    try:
        content = write_season_workbook(games, picks, players, compute_standings(games, picks, players))
    except NothingToExport as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    logger.info("Exported all loaded weeks to Excel.", extra={"notice": NOTICE_SUCCESS})
    return _xlsx_response(content, "nfl-picks-all-weeks.xlsx")


@app.post("/api/import", response_model=ImportResponse)
def api_import(
    file: UploadFile = File(...),
    acting: PlayerRecord | None = Depends(current_player),
    db: Session = Depends(get_db),
):
    _require_admin(acting, "import picks from Excel")

    data = file.file.read()
    try:
        rows = read_workbook_rows(data)
    except SpreadsheetError as exc:
        logger.error("Error importing from Excel: %s", exc, extra={"notice": NOTICE_ERROR})
        raise HTTPException(status_code=400, detail=IMPORT_FAILED_MESSAGE) from exc

    result = parse_import_rows(rows, load_players(db))
    if result.imported_games == 0:
        logger.warning(result.message, extra={"notice": NOTICE_ERROR})
        raise HTTPException(status_code=400, detail=result.message)

    seeded = insert_missing_games(db, result.games)
    db.commit()
    picks_repo.import_picks(db, result.predictions_by_game, result.week_by_game)

    settings = get_or_create_settings(db)
    refresh = SyncResult()
    if result.weeks:
        refresh = sync_weeks_with_session(
            db,
            result.weeks,
            year=settings.season_year,
            season_type=settings.season_type,
            fetch=fetch_scoreboard,
        )

    message = result.message
    if refresh.errors:
        message = IMPORT_PARTIAL_MESSAGE
        logger.warning(message, extra={"notice": NOTICE_ERROR})
    else:
        logger.info(message, extra={"notice": NOTICE_SUCCESS})

    return ImportResponse(
        ok=True,
        message=message,
        imported_games=result.imported_games,
        weeks=result.weeks,
        skipped_rows=result.skipped_rows,
        seeded_games=seeded,
        refresh=SyncResultOut.model_validate(refresh),
    )


@app.get("/api/logs")
def api_logs(limit: int = 100, notices_only: bool = False):
    handler = get_buffer_handler()
    return {"entries": handler.entries(limit=limit, notices_only=notices_only)}


@app.get("/api/settings", response_model=SettingsOut)
def api_get_settings(db: Session = Depends(get_db)):
    return SettingsOut.model_validate(snapshot_settings(get_or_create_settings(db)))


@app.put("/api/settings", response_model=SettingsOut)
def api_update_settings(
    payload: SettingsUpdate,
    acting: PlayerRecord | None = Depends(current_player),
    db: Session = Depends(get_db),
):
    _require_admin(acting, "change settings")
    settings = apply_settings_update(get_or_create_settings(db), payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(settings)
    logger.info("Settings updated by=%s", acting.id)
    return SettingsOut.model_validate(snapshot_settings(settings))
