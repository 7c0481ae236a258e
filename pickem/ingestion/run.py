"""CLI entrypoint for scheduled ESPN sync runs."""

from __future__ import annotations

import argparse
import logging

from pickem.ingestion.espn_client import fetch_scoreboard
from pickem.ingestion.espn_parser import detect_current_week
from pickem.ingestion.season import REGULAR_SEASON_WEEKS, is_regular_week
from pickem.ingestion.sync import sync_weeks


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Sync NFL regular-season weeks from ESPN into the local database.",
    )

    week_group = parser.add_mutually_exclusive_group(required=True)
    week_group.add_argument(
        "--weeks",
        type=str,
        help="Comma-separated list of weeks (e.g., 1,2,3).",
    )
    week_group.add_argument(
        "--all",
        action="store_true",
        help="Sync every regular-season week (1-18).",
    )
    week_group.add_argument(
        "--current",
        action="store_true",
        help="Sync the week ESPN reports as current.",
    )

    parser.add_argument(
        "--year",
        type=int,
        default=None,
        help="Season year (default: current year).",
    )

    return parser.parse_args(argv)


def _parse_weeks(raw: str) -> list[int]:
    weeks: list[int] = []
    invalid: list[str] = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            week = int(token)
        except ValueError:
            invalid.append(token)
            continue
        if not is_regular_week(week):
            invalid.append(token)
            continue
        weeks.append(week)
    if invalid:
        raise SystemExit(f"Unsupported weeks: {', '.join(invalid)}. Supported: 1-18")
    if not weeks:
        raise SystemExit("No weeks provided. Use --weeks 1,2,...")
    return weeks


def _resolve_weeks(args: argparse.Namespace) -> list[int]:
    if args.all:
        return list(REGULAR_SEASON_WEEKS)
    if args.current:
        week = detect_current_week(fetch_scoreboard(None, args.year))
        if week is None:
            logging.warning("Could not detect current week; falling back to week 1")
            week = 1
        return [week]
    return _parse_weeks(args.weeks)


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    args = _parse_args(argv)
    weeks = _resolve_weeks(args)

    logging.info("Starting sync year=%s weeks=%s", args.year, ",".join(map(str, weeks)))
    result = sync_weeks(weeks, year=args.year)
    logging.info(
        "Done: fetched=%s inserted=%s updated=%s skipped=%s errors=%s",
        result.total_fetched,
        result.inserted,
        result.updated,
        result.skipped,
        result.errors,
    )


if __name__ == "__main__":
    main()
