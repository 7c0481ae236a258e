from __future__ import annotations

import unittest
from datetime import datetime, timezone
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pickem.db import Base, get_db
from pickem.log_buffer import install_buffer_handler
from pickem.main import IMPORT_FAILED_MESSAGE, app
from pickem.models import AppSettings, Game

ADMIN_HEADERS = {"X-Player-Id": "boss"}
PAT_HEADERS = {"X-Player-Id": "pat"}
SAM_HEADERS = {"X-Player-Id": "sam"}
XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _make_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


class ApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.Session = _make_session_factory()

        def _override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = _override_get_db
        self.client = TestClient(app)
        self.log_handler = install_buffer_handler()
        self.log_handler.clear()

        with self.Session() as db:
            db.add(
                AppSettings(
                    id=1,
                    season_year=2025,
                    season_type=2,
                    admin_email="boss@example.com",
                    auto_refresh_enabled=False,
                    auto_refresh_minutes=15,
                    hide_unpicked_default=False,
                )
            )
            db.add_all(
                [
                    Game(
                        id="401",
                        week=1,
                        start_time_utc=datetime(2025, 9, 7, 17, 0, tzinfo=timezone.utc),
                        completed=True,
                        status_text="Final",
                        home_team_id="KC",
                        away_team_id="BUF",
                        home_score="24",
                        away_score="20",
                        raw_json="",
                    ),
                    Game(
                        id="402",
                        week=1,
                        start_time_utc=datetime(2025, 9, 7, 20, 0, tzinfo=timezone.utc),
                        home_team_id="NE",
                        away_team_id="NYJ",
                        raw_json="",
                    ),
                    Game(
                        id="501",
                        week=2,
                        start_time_utc=datetime(2025, 9, 14, 17, 0, tzinfo=timezone.utc),
                        home_team_id="DAL",
                        away_team_id="PHI",
                        raw_json="",
                    ),
                ]
            )
            db.commit()

        self._sign_in("boss", "Commissioner", "Boss@Example.com")
        self._sign_in("pat", "pat", "pat@example.com")
        self._sign_in("sam", "Sam", None)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.log_handler.clear()

    def _sign_in(self, player_id: str, name: str, email: str | None) -> dict:
        response = self.client.post(
            "/api/players/sign-in",
            json={"player_id": player_id, "display_name": name, "email": email},
        )
        self.assertEqual(200, response.status_code, response.text)
        return response.json()

    def _pick(self, game_id: str, player_id: str, team_id: str, headers: dict | None):
        return self.client.put(f"/api/picks/{game_id}/{player_id}", json={"team_id": team_id}, headers=headers)

    def test_health(self) -> None:
        self.assertEqual({"ok": True}, self.client.get("/health").json())

    def test_sign_in_assigns_roles_and_initials(self) -> None:
        players = {player["id"]: player for player in self.client.get("/api/players").json()}

        self.assertEqual("admin", players["boss"]["role"])
        self.assertEqual("player", players["pat"]["role"])
        self.assertEqual("P", players["pat"]["initials"])
        self.assertEqual("#22c55e", players["sam"]["color"])

    def test_profile_edit_is_limited_to_self_or_admin(self) -> None:
        denied = self.client.patch("/api/players/pat", json={"nickname": "X"}, headers=SAM_HEADERS)
        own = self.client.patch("/api/players/pat", json={"name": "  zed ", "nickname": "Z"}, headers=PAT_HEADERS)
        anonymous = self.client.patch("/api/players/pat", json={"nickname": "Y"})

        self.assertEqual(403, denied.status_code)
        self.assertEqual(401, anonymous.status_code)
        self.assertEqual(200, own.status_code)
        self.assertEqual("zed", own.json()["name"])
        self.assertEqual("Z", own.json()["initials"])
        self.assertEqual("Z", own.json()["display_name"])

    def test_pick_permissions_map_to_status_codes(self) -> None:
        self.assertEqual(200, self._pick("402", "pat", "NE", PAT_HEADERS).status_code)

        locked = self._pick("402", "pat", "NYJ", PAT_HEADERS)
        self.assertEqual(409, locked.status_code)
        self.assertEqual("You already picked this game. Only the admin can change it.", locked.json()["detail"])

        self.assertEqual(403, self._pick("402", "pat", "NYJ", SAM_HEADERS).status_code)
        self.assertEqual(401, self._pick("402", "pat", "NYJ", None).status_code)
        self.assertEqual(401, self._pick("402", "pat", "NYJ", {"X-Player-Id": "nobody"}).status_code)

        overridden = self._pick("402", "pat", "NYJ", ADMIN_HEADERS)
        self.assertEqual(200, overridden.status_code)
        self.assertEqual("NYJ", overridden.json()["team_id"])

        picks = self.client.get("/api/picks", params={"week": 1}).json()["picks"]
        self.assertEqual({"402": {"pat": "NYJ"}}, picks)

    def test_games_for_week_with_hide_unpicked(self) -> None:
        self._pick("401", "pat", "KC", PAT_HEADERS)

        all_games = self.client.get("/api/games", params={"week": 1}).json()
        picked_only = self.client.get("/api/games", params={"week": 1, "hide_unpicked": True}).json()

        self.assertEqual(["401", "402"], [game["id"] for game in all_games["games"]])
        self.assertEqual(["401"], [game["id"] for game in picked_only["games"]])
        self.assertIsNotNone(all_games["last_updated"]["401"])
        self.assertEqual("24", all_games["games"][0]["home"]["score"])

    def test_standings_and_season_detail(self) -> None:
        self._pick("401", "pat", "KC", PAT_HEADERS)
        self._pick("401", "sam", "BUF", SAM_HEADERS)
        self._pick("501", "pat", "DAL", PAT_HEADERS)

        standings = self.client.get("/api/standings", params={"week": 1}).json()
        self.assertEqual(["pat", "boss", "sam"], [row["player_id"] for row in standings["weekly"]])
        self.assertEqual("pat", standings["weekly_winner"]["player_id"])
        self.assertEqual(1, standings["season_leader_margin"])

        detail = self.client.get("/api/players/pat/season", params={"week": 2}).json()
        self.assertEqual(["win", "pending"], [pick["result"] for pick in detail["picks"]])
        self.assertEqual(1, detail["stats"]["correct"])
        self.assertEqual(["501"], [pick["game"]["id"] for pick in detail["filtered_picks"]])
        self.assertEqual(0, detail["filtered_stats"]["total"])
        self.assertEqual(["501", "401"], [pick["game"]["id"] for pick in detail["recent"]])

        self.assertEqual(404, self.client.get("/api/players/ghost/season").status_code)

    def test_export_then_import_round_trip(self) -> None:
        self._pick("401", "pat", "KC", PAT_HEADERS)
        self._pick("501", "sam", "PHI", SAM_HEADERS)

        exported = self.client.get("/api/export/season")
        self.assertEqual(200, exported.status_code)
        self.assertTrue(exported.headers["content-type"].startswith(XLSX))

        files = {"file": ("picks.xlsx", exported.content, XLSX)}
        with patch("pickem.main.fetch_scoreboard", return_value={"events": []}) as fetch:
            imported = self.client.post("/api/import", files=files, headers=ADMIN_HEADERS)

        self.assertEqual(200, imported.status_code, imported.text)
        body = imported.json()
        self.assertEqual("Imported 3 games across 2 weeks.", body["message"])
        self.assertEqual([1, 2], body["weeks"])
        self.assertEqual(2, fetch.call_count)

        picks = self.client.get("/api/picks").json()["picks"]
        self.assertEqual("KC", picks["401"]["pat"])
        self.assertEqual("PHI", picks["501"]["sam"])

    def test_import_reports_feed_failure_without_losing_picks(self) -> None:
        exported = self.client.get("/api/export/week/1")
        self.assertEqual(200, exported.status_code)
        files = {"file": ("week1.xlsx", exported.content, XLSX)}

        with patch("pickem.main.fetch_scoreboard", return_value={"ok": False, "error": "down"}):
            imported = self.client.post("/api/import", files=files, headers=ADMIN_HEADERS)

        self.assertEqual(200, imported.status_code)
        self.assertEqual("Imported picks, but some weeks could not be loaded from ESPN.", imported.json()["message"])
        self.assertEqual(1, imported.json()["refresh"]["errors"])

    def test_import_requires_admin_and_valid_file(self) -> None:
        files = {"file": ("bad.xlsx", b"not a workbook", XLSX)}

        self.assertEqual(403, self.client.post("/api/import", files=files, headers=PAT_HEADERS).status_code)
        self.assertEqual(401, self.client.post("/api/import", files=files).status_code)

        bad = self.client.post("/api/import", files=files, headers=ADMIN_HEADERS)
        self.assertEqual(400, bad.status_code)
        self.assertEqual(IMPORT_FAILED_MESSAGE, bad.json()["detail"])

    def test_export_week_without_games(self) -> None:
        response = self.client.get("/api/export/week/9")

        self.assertEqual(404, response.status_code)
        self.assertEqual("No games to export for this week.", response.json()["detail"])

    def test_current_week_falls_back_to_first_week(self) -> None:
        with patch("pickem.main.fetch_scoreboard", return_value={"week": {"number": 7}}):
            self.assertEqual({"week": 7, "detected": True}, self.client.get("/api/weeks/current").json())
        with patch("pickem.main.fetch_scoreboard", return_value={"ok": False, "error": "down"}):
            self.assertEqual({"week": 1, "detected": False}, self.client.get("/api/weeks/current").json())

    def test_refresh_syncs_requested_weeks(self) -> None:
        payload = {
            "events": [
                {
                    "id": "402",
                    "status": {"type": {"completed": True, "shortDetail": "Final"}},
                    "competitions": [
                        {
                            "competitors": [
                                {"homeAway": "home", "team": {"id": "NE"}, "score": "13"},
                                {"homeAway": "away", "team": {"id": "NYJ"}, "score": "27"},
                            ]
                        }
                    ],
                }
            ]
        }
        with patch("pickem.main.fetch_scoreboard", return_value=payload):
            result = self.client.post("/api/games/refresh", json={"weeks": [1]}).json()

        self.assertEqual(1, result["updated"])
        game = {g["id"]: g for g in self.client.get("/api/games", params={"week": 1}).json()["games"]}["402"]
        self.assertTrue(game["completed"])
        self.assertEqual("27", game["away"]["score"])

    def test_activity_log_lists_notices_newest_first(self) -> None:
        self.assertEqual([], self.client.get("/api/logs", params={"notices_only": True}).json()["entries"])

        self.client.get("/api/export/week/1")
        self.client.get("/api/export/season")

        notices = self.client.get("/api/logs", params={"notices_only": True}).json()["entries"]
        self.assertEqual(
            ["Exported all loaded weeks to Excel.", "Exported week 1 to Excel."],
            [entry["message"] for entry in notices],
        )
        self.assertEqual({"success"}, {entry["notice"] for entry in notices})

    def test_settings_update_is_admin_only(self) -> None:
        denied = self.client.put("/api/settings", json={"hide_unpicked_default": True}, headers=PAT_HEADERS)
        allowed = self.client.put("/api/settings", json={"hide_unpicked_default": True}, headers=ADMIN_HEADERS)

        self.assertEqual(403, denied.status_code)
        self.assertEqual(200, allowed.status_code)
        self.assertTrue(self.client.get("/api/settings").json()["hide_unpicked_default"])


if __name__ == "__main__":
    unittest.main()
