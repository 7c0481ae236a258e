"""ESPN HTTP client for fetching NFL weekly scoreboards."""

from __future__ import annotations

import json
import logging
import os
import time
from datetime import date
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from pickem.ingestion.season import REGULAR_SEASON_TYPE, is_regular_week

logger = logging.getLogger(__name__)
ESPN_BASE_URL = os.getenv("ESPN_BASE_URL", "https://site.api.espn.com").rstrip("/")
SCOREBOARD_PATH = "/apis/site/v2/sports/football/nfl/scoreboard"
DEFAULT_TIMEOUT_SECONDS = 12
DEFAULT_RETRIES = 3
DEFAULT_BACKOFF_SECONDS = 0.5
DEFAULT_USER_AGENT = "pickem/1.0 (+https://example.local)"


def build_scoreboard_url(
    year: int | None = None,
    season_type: int = REGULAR_SEASON_TYPE,
    week: int | None = None,
) -> str:
    if week is not None and not is_regular_week(week):
        raise ValueError(f"week must be between 1 and 18, got {week}")

    params: dict[str, str] = {
        "year": str(year or date.today().year),
        "seasontype": str(season_type),
    }
    if week is not None:
        params["week"] = str(week)
    return f"{ESPN_BASE_URL}{SCOREBOARD_PATH}?{urlencode(params)}"


def fetch_scoreboard(
    week: int | None = None,
    year: int | None = None,
    season_type: int = REGULAR_SEASON_TYPE,
) -> dict:
    """Fetch the ESPN scoreboard for a week (or the current week when omitted).

    Returns parsed JSON on success. On failure, returns a controlled error dict.
    """

    try:
        url = build_scoreboard_url(year, season_type, week)
    except ValueError as exc:
        return {
            "ok": False,
            "error": str(exc),
            "week": week,
            "year": year,
        }

    headers = {
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept": "application/json",
    }

    last_error: str | None = None
    last_status: int | None = None
    last_body_snippet: str | None = None
    for attempt in range(DEFAULT_RETRIES):
        try:
            request = Request(url, headers=headers)
            with urlopen(request, timeout=DEFAULT_TIMEOUT_SECONDS) as response:
                status = getattr(response, "status", None)
                payload = response.read().decode("utf-8")
                if status and status != 200:
                    body_snippet = payload[:300]
                    logger.error(
                        "ESPN scoreboard non-200 status=%s week=%s body=%s",
                        status,
                        week,
                        body_snippet,
                    )
                    return {
                        "ok": False,
                        "error": "ESPN returned non-200 response",
                        "status": status,
                        "body": body_snippet,
                        "week": week,
                        "year": year,
                        "url": url,
                    }
                return json.loads(payload)
        except HTTPError as exc:
            last_status = exc.code
            body = exc.read().decode("utf-8") if exc.fp else ""
            last_body_snippet = body[:300]
            logger.error(
                "ESPN scoreboard HTTPError status=%s week=%s body=%s",
                last_status,
                week,
                last_body_snippet,
            )
            last_error = str(exc)
            if attempt < DEFAULT_RETRIES - 1:
                time.sleep(DEFAULT_BACKOFF_SECONDS * (2**attempt))
        except (URLError, TimeoutError, json.JSONDecodeError) as exc:
            last_error = str(exc)
            logger.warning(
                "ESPN scoreboard attempt %s/%s failed week=%s error=%s",
                attempt + 1,
                DEFAULT_RETRIES,
                week,
                last_error,
            )
            if attempt < DEFAULT_RETRIES - 1:
                time.sleep(DEFAULT_BACKOFF_SECONDS * (2**attempt))

    return {
        "ok": False,
        "error": "Failed to fetch ESPN scoreboard",
        "details": last_error,
        "status": last_status,
        "body": last_body_snippet,
        "week": week,
        "year": year,
        "url": url,
    }
