from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime, timezone

from pickem.ingestion.season import REGULAR_SEASON_TYPE
from pickem.models import AppSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettingsSnapshot:
    id: int
    season_year: int
    season_type: int
    admin_email: str | None
    auto_refresh_enabled: bool
    auto_refresh_minutes: int
    hide_unpicked_default: bool


def _env_admin_email() -> str | None:
    value = (os.getenv("PICKEM_ADMIN_EMAIL") or "").strip().lower()
    return value or None


def _default_settings() -> AppSettings:
    return AppSettings(
        id=1,
        season_year=int(os.getenv("PICKEM_SEASON_YEAR", str(date.today().year))),
        season_type=REGULAR_SEASON_TYPE,
        admin_email=_env_admin_email(),
        auto_refresh_enabled=True,
        auto_refresh_minutes=int(os.getenv("AUTO_REFRESH_INTERVAL_MINUTES", "15")),
        hide_unpicked_default=False,
        updated_at_utc=datetime.now(timezone.utc),
    )


def get_or_create_settings(db) -> AppSettings:
    settings = db.query(AppSettings).filter(AppSettings.id == 1).one_or_none()
    if settings:
        return settings
    settings = _default_settings()
    if not settings.admin_email:
        logger.warning(
            "PICKEM_ADMIN_EMAIL missing. No player will be granted the admin role "
            "until admin_email is set in settings."
        )
    db.add(settings)
    db.commit()
    db.refresh(settings)
    return settings


def snapshot_settings(settings: AppSettings) -> SettingsSnapshot:
    return SettingsSnapshot(
        id=settings.id,
        season_year=settings.season_year,
        season_type=settings.season_type,
        admin_email=settings.admin_email,
        auto_refresh_enabled=settings.auto_refresh_enabled,
        auto_refresh_minutes=settings.auto_refresh_minutes,
        hide_unpicked_default=settings.hide_unpicked_default,
    )


def apply_settings_update(settings: AppSettings, changes: dict) -> AppSettings:
    """Copy validated changes onto the settings row; the caller commits."""

    if "season_year" in changes and changes["season_year"] is not None:
        settings.season_year = int(changes["season_year"])
    if "admin_email" in changes:
        email = (changes["admin_email"] or "").strip().lower()
        settings.admin_email = email or None
    if "auto_refresh_enabled" in changes and changes["auto_refresh_enabled"] is not None:
        settings.auto_refresh_enabled = bool(changes["auto_refresh_enabled"])
    if "auto_refresh_minutes" in changes and changes["auto_refresh_minutes"] is not None:
        settings.auto_refresh_minutes = max(1, int(changes["auto_refresh_minutes"]))
    if "hide_unpicked_default" in changes and changes["hide_unpicked_default"] is not None:
        settings.hide_unpicked_default = bool(changes["hide_unpicked_default"])
    settings.updated_at_utc = datetime.now(timezone.utc)
    return settings
