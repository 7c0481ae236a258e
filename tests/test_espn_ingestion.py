from __future__ import annotations

import unittest
from datetime import datetime, timezone
from unittest.mock import patch
from urllib.error import URLError

from pickem.ingestion.espn_client import build_scoreboard_url, fetch_scoreboard
from pickem.ingestion.espn_parser import detect_current_week, normalize_event, parse_scoreboard
from pickem.ingestion.merge import available_weeks, games_for_week, merge_all
from pickem.ingestion.run import _parse_weeks
from pickem.ingestion.schema import GameRecord, TeamSide


def _event(
    event_id: str,
    home: str = "KC",
    away: str = "BUF",
    home_score: str | None = None,
    away_score: str | None = None,
    completed: bool = False,
) -> dict:
    def competitor(side: str, team_id: str, score: str | None) -> dict:
        entry = {
            "homeAway": side,
            "team": {"id": team_id, "abbreviation": team_id, "displayName": f"{team_id} Team"},
        }
        if score is not None:
            entry["score"] = score
        return entry

    return {
        "id": event_id,
        "date": "2025-09-07T17:00Z",
        "status": {"type": {"completed": completed, "shortDetail": "Final" if completed else "Sun 1:00 PM"}},
        "competitions": [
            {
                "id": event_id,
                "competitors": [
                    competitor("away", away, away_score),
                    competitor("home", home, home_score),
                ],
            }
        ],
    }


class NormalizeEventTests(unittest.TestCase):
    def test_normalize_event_picks_sides_by_home_away(self) -> None:
        game = normalize_event(_event("401", home_score="24", away_score="20", completed=True), 1)

        self.assertEqual("401", game.id)
        self.assertEqual(1, game.week)
        self.assertEqual("KC", game.home.team_id)
        self.assertEqual("KC Team", game.home.name)
        self.assertEqual("BUF", game.away.abbrev)
        self.assertEqual("24", game.home.score)
        self.assertEqual("20", game.away.score)
        self.assertTrue(game.completed)
        self.assertEqual("Final", game.status_text)
        self.assertEqual(datetime(2025, 9, 7, 17, 0, tzinfo=timezone.utc), game.date)

    def test_normalize_event_keeps_missing_score_distinct_from_zero(self) -> None:
        game = normalize_event(_event("402", home_score="0"), 2)

        self.assertEqual("0", game.home.score)
        self.assertIsNone(game.away.score)
        self.assertFalse(game.completed)

    def test_normalize_event_tolerates_missing_competition_data(self) -> None:
        game = normalize_event({"id": "403"}, 3)

        self.assertEqual(TeamSide(), game.home)
        self.assertEqual(TeamSide(), game.away)
        self.assertFalse(game.completed)
        self.assertEqual("TBD", game.status_text)
        self.assertIsNone(game.date)

    def test_status_text_falls_back_to_description(self) -> None:
        event = _event("404")
        event["status"] = {"type": {"description": "Scheduled"}}

        self.assertEqual("Scheduled", normalize_event(event, 1).status_text)


class ParseScoreboardTests(unittest.TestCase):
    def test_parse_scoreboard_skips_non_dict_and_duplicate_events(self) -> None:
        payload = {"events": [_event("1"), "junk", _event("1"), _event("2"), {"competitions": []}]}

        games = parse_scoreboard(payload, 4)

        self.assertEqual(["1", "2"], [game.id for game in games])
        self.assertTrue(all(game.week == 4 for game in games))

    def test_parse_scoreboard_without_events_returns_empty_list(self) -> None:
        self.assertEqual([], parse_scoreboard({}, 1))

    def test_detect_current_week(self) -> None:
        self.assertEqual(5, detect_current_week({"week": {"number": 5}}))
        self.assertEqual(3, detect_current_week({"week": 3}))
        self.assertIsNone(detect_current_week({"week": {"number": 22}}))
        self.assertIsNone(detect_current_week({}))


class MergeTests(unittest.TestCase):
    def _game(self, game_id: str, week: int, home_score: str | None = None) -> GameRecord:
        return GameRecord(id=game_id, week=week, home=TeamSide(team_id="KC", score=home_score))

    def test_merge_all_is_idempotent_and_leaves_input_untouched(self) -> None:
        existing = {"1": self._game("1", 1)}
        new_games = [self._game("1", 1, "24"), self._game("2", 2)]

        once = merge_all(existing, new_games)
        twice = merge_all(once, new_games)

        self.assertEqual(once, twice)
        self.assertIsNone(existing["1"].home.score)
        self.assertEqual("24", once["1"].home.score)

    def test_merge_all_overwrites_in_full(self) -> None:
        existing = {"1": self._game("1", 1, "24")}

        merged = merge_all(existing, [self._game("1", 1)])

        self.assertIsNone(merged["1"].home.score)

    def test_week_helpers(self) -> None:
        games = [self._game("1", 2), self._game("2", 1), self._game("3", 2)]

        self.assertEqual(["1", "3"], [game.id for game in games_for_week(games, 2)])
        self.assertEqual([1, 2], available_weeks(games))


class EspnClientTests(unittest.TestCase):
    def test_build_scoreboard_url_includes_week_and_season(self) -> None:
        url = build_scoreboard_url(2025, 2, 3)

        self.assertIn("/football/nfl/scoreboard?", url)
        self.assertIn("year=2025", url)
        self.assertIn("seasontype=2", url)
        self.assertIn("week=3", url)

    def test_build_scoreboard_url_rejects_out_of_range_week(self) -> None:
        with self.assertRaises(ValueError):
            build_scoreboard_url(2025, 2, 19)

    def test_fetch_scoreboard_returns_error_dict_after_retries(self) -> None:
        with patch("pickem.ingestion.espn_client.urlopen", side_effect=URLError("down")) as urlopen, patch(
            "pickem.ingestion.espn_client.time.sleep"
        ):
            payload = fetch_scoreboard(1, 2025)

        self.assertFalse(payload["ok"])
        self.assertEqual("Failed to fetch ESPN scoreboard", payload["error"])
        self.assertEqual(3, urlopen.call_count)

    def test_fetch_scoreboard_invalid_week_does_not_hit_network(self) -> None:
        with patch("pickem.ingestion.espn_client.urlopen") as urlopen:
            payload = fetch_scoreboard(0, 2025)

        self.assertFalse(payload["ok"])
        urlopen.assert_not_called()


class CliWeeksTests(unittest.TestCase):
    def test_parse_weeks_accepts_comma_list(self) -> None:
        self.assertEqual([1, 2, 3], _parse_weeks("1, 2,3"))

    def test_parse_weeks_rejects_out_of_range(self) -> None:
        with self.assertRaises(SystemExit):
            _parse_weeks("0,2")


if __name__ == "__main__":
    unittest.main()
