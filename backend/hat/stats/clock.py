"""
Active-time accounting for a describer's turn.

Time only accrues while the turn is running: pausing folds the open interval
into ``accumulated_active_ms`` and resuming opens a new one. The clock never
expires a turn on its own; start, pause, resume and stop are all driven by
the caller.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

Clock = Callable[[], float]


def monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class Turn:
    """One describer's timed period within a round."""

    player_id: str
    round_index: int
    started_at: float
    last_resume_at: float
    accumulated_active_ms: float = 0
    paused: bool = False
    points_delta: int = 0
    guessed: int = 0
    passed: int = 0


class TurnClock:
    """Holds at most one open Turn and measures its active time."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._now = clock or monotonic_ms
        self._turn: Turn | None = None

    @property
    def current(self) -> Turn | None:
        return self._turn

    def now(self) -> float:
        return self._now()

    def start(self, player_id: str, round_index: int) -> Turn:
        """Open a new turn. Any turn still open must be stopped first."""
        now = self._now()
        self._turn = Turn(player_id=player_id, round_index=round_index, started_at=now, last_resume_at=now)
        return self._turn

    def pause(self) -> None:
        turn = self._turn
        if turn is None or turn.paused:
            return
        turn.accumulated_active_ms += max(0.0, self._now() - turn.last_resume_at)
        turn.paused = True

    def resume(self) -> None:
        turn = self._turn
        if turn is None or not turn.paused:
            return
        turn.last_resume_at = self._now()
        turn.paused = False

    def stop(self) -> Turn | None:
        """Fold any open interval and close the turn; return it (or None)."""
        turn = self._turn
        if turn is None:
            return None
        if not turn.paused:
            turn.accumulated_active_ms += max(0.0, self._now() - turn.last_resume_at)
        self._turn = None
        return turn
