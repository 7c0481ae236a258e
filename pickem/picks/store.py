from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Callable, Mapping

from pickem.picks.permissions import Actor, PickDecision, decide_pick

# {game_id: {player_id: team_id}}
PickMap = dict[str, dict[str, str]]


class PickPermissionError(Exception):
    """A pick write was denied; carries the decision so callers can report why."""

    def __init__(self, decision: PickDecision) -> None:
        super().__init__(decision.message)
        self.decision = decision

    @property
    def reason(self):
        return self.decision.reason


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PickStore:
    """In-memory pick store with the lock-once-set rule."""

    def __init__(
        self,
        picks: Mapping[str, Mapping[str, str]] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._picks: PickMap = {
            game_id: dict(predictions) for game_id, predictions in (picks or {}).items()
        }
        self._clock = clock
        self.updated_at: dict[str, datetime] = {}

    def get(self, game_id: str, player_id: str) -> str:
        return self._picks.get(game_id, {}).get(player_id, "")

    def picks_for(self, game_id: str) -> dict[str, str]:
        return dict(self._picks.get(game_id, {}))

    def snapshot(self) -> PickMap:
        return copy.deepcopy(self._picks)

    def set_pick(
        self,
        game_id: str,
        player_id: str,
        team_id: str | None,
        acting_player: Actor | None,
    ) -> PickDecision:
        decision = decide_pick(acting_player, self.get(game_id, player_id), player_id)
        if not decision.allowed:
            return decision
        self._picks.setdefault(game_id, {})[player_id] = team_id or ""
        self.updated_at[game_id] = self._clock()
        return decision
