"""
Per-match statistics built from the match's domain events.

StatsAggregator is an EventBus subscriber. It times each describer's turns
with a TurnClock, keeps per-round active time and guess/pass counts per
player, tracks how long each word stayed on screen and how often it was
passed, and at match end produces a SessionSummary together with the
per-player totals that feed the lifetime aggregates.

Event order it relies on (as emitted by MatchState):

- ``TurnEnded`` always precedes ``RoundEnded``, so a round's duration
  includes the turn that closed it;
- ``WordShown`` precedes the guess/pass of that word.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from hat.logic.events import (
    MatchEndedEvent,
    MatchEvent,
    MatchStartedEvent,
    RoundEndedEvent,
    TurnEndedEvent,
    TurnPausedEvent,
    TurnResumedEvent,
    TurnStartedEvent,
    WordGuessedEvent,
    WordPassedEvent,
    WordShownEvent,
)
from hat.stats.clock import Clock, TurnClock

if TYPE_CHECKING:
    from collections.abc import Iterable

    from hat.logic.events import RosterEntry

logger = structlog.get_logger()

MS_PER_SECOND = 1000


class WordFact(BaseModel):
    model_config = ConfigDict(frozen=True)

    word: str
    value: float


class SessionFacts(BaseModel):
    """Word-level trivia reported at match end."""

    model_config = ConfigDict(frozen=True)

    most_passed_word: WordFact | None = None
    hardest_word: WordFact | None = None


class PlayerSessionTotals(BaseModel):
    """One player's contribution to a finished match, ready for lifetime folding."""

    model_config = ConfigDict(frozen=True)

    player_id: str
    player_key: str
    display_name: str
    team_id: str
    words_guessed: int
    words_passed: int
    total_score: int
    active_ms_by_round: dict[int, float]
    guessed_by_round: dict[int, int]
    passed_by_round: dict[int, int]
    spw_by_round: dict[int, float | None]
    best_turn_by_round: dict[int, int]


class SessionSummary(BaseModel):
    """Read model of a match's statistics, live or final."""

    model_config = ConfigDict(frozen=True)

    match_id: str
    started_at: datetime | None
    ended_at: datetime | None
    players: list[PlayerSessionTotals]
    round_durations: dict[int, float]
    total_duration_seconds: float
    winners: list[str]
    facts: SessionFacts


@dataclass
class _PlayerTally:
    player_id: str
    player_key: str
    display_name: str
    team_id: str
    round_active_ms: dict[int, float] = field(default_factory=dict)
    guessed_by_round: dict[int, int] = field(default_factory=dict)
    passed_by_round: dict[int, int] = field(default_factory=dict)
    total_score: int = 0
    best_turn_by_round: dict[int, int] = field(default_factory=dict)


def seconds_per_word(active_ms: float, guessed: int) -> float | None:
    """Active seconds per guessed word; None when nothing was guessed."""
    if guessed <= 0:
        return None
    return (active_ms / MS_PER_SECOND) / guessed


def compute_winners(scores_by_team_and_round: dict[int, dict[str, int]]) -> list[str]:
    """Every team tied at the maximum summed per-round score."""
    totals: dict[str, int] = {}
    for round_scores in scores_by_team_and_round.values():
        for team_id, score in round_scores.items():
            totals[team_id] = totals.get(team_id, 0) + score
    if not totals:
        return []
    best = max(totals.values())
    return [team_id for team_id, score in totals.items() if score == best]


def _first_max(values: dict[str, float]) -> WordFact | None:
    best: WordFact | None = None
    for word, value in values.items():
        if value > (best.value if best else 0):
            best = WordFact(word=word, value=value)
    return best


class StatsAggregator:
    """Session statistics for one match.

    Call ``handle`` with every event of the match, in order. After the
    ``MatchEnded`` event ``is_finished`` is True and ``summary()`` is final.
    """

    def __init__(self, match_id: str, round_indices: Iterable[int], clock: Clock | None = None) -> None:
        self.match_id = match_id
        self._round_indices = tuple(round_indices)
        self._clock = TurnClock(clock)
        self._players: dict[str, _PlayerTally] = {}
        self._passed_counts: dict[str, int] = {}
        self._display_seconds: dict[str, float] = {}
        self._current_word: str | None = None
        self._word_shown_at: float | None = None
        self._round_durations: dict[int, float] = dict.fromkeys(self._round_indices, 0.0)
        self._started_at: datetime | None = None
        self._ended_at: datetime | None = None
        self._winners: list[str] = []
        self._facts = SessionFacts()

    @property
    def is_finished(self) -> bool:
        return self._ended_at is not None

    @property
    def winners(self) -> list[str]:
        return list(self._winners)

    @property
    def clock(self) -> TurnClock:
        return self._clock

    def handle(self, event: MatchEvent) -> None:  # noqa: C901, PLR0912
        """Fold one match event into the session statistics."""
        if self.is_finished:
            return
        if isinstance(event, MatchStartedEvent):
            self._start_session(event)
        elif isinstance(event, TurnStartedEvent):
            self._finalize_open_turn()
            self._clock.start(event.player_id, event.round_index)
        elif isinstance(event, TurnPausedEvent):
            self._clock.pause()
        elif isinstance(event, TurnResumedEvent):
            self._clock.resume()
        elif isinstance(event, WordShownEvent):
            self._current_word = event.word
            self._word_shown_at = self._clock.now()
        elif isinstance(event, WordGuessedEvent):
            self._on_word_scored(event.player_id, event.round_index, delta=1)
        elif isinstance(event, WordPassedEvent):
            self._on_word_scored(event.player_id, event.round_index, delta=-1)
        elif isinstance(event, TurnEndedEvent):
            self.end_turn(event.timer_remaining_at_show)
        elif isinstance(event, RoundEndedEvent):
            self._record_round_duration(event.round_index)
        elif isinstance(event, MatchEndedEvent):
            self._end_session(event)

    def end_turn(self, timer_remaining_at_show: float | None = None) -> None:
        """
        Close the open turn into its round's active time.

        When the turn ended on a timeout, ``timer_remaining_at_show`` seconds
        are attributed to the word that was on screen.
        """
        turn = self._clock.stop()
        if turn is None:
            return
        tally = self._players.get(turn.player_id)
        if tally is not None:
            r = turn.round_index
            tally.round_active_ms[r] = tally.round_active_ms.get(r, 0) + turn.accumulated_active_ms
            if turn.points_delta > tally.best_turn_by_round.get(r, 0):
                tally.best_turn_by_round[r] = turn.points_delta

        if timer_remaining_at_show is not None and self._current_word is not None:
            word = self._current_word
            self._display_seconds[word] = self._display_seconds.get(word, 0) + max(0.0, timer_remaining_at_show)
            self._current_word = None
            self._word_shown_at = None

    def player_totals(self) -> list[PlayerSessionTotals]:
        """Per-player totals over every configured round."""
        result = []
        for tally in self._players.values():
            active = {r: tally.round_active_ms.get(r, 0.0) for r in self._round_indices}
            guessed = {r: tally.guessed_by_round.get(r, 0) for r in self._round_indices}
            passed = {r: tally.passed_by_round.get(r, 0) for r in self._round_indices}
            result.append(
                PlayerSessionTotals(
                    player_id=tally.player_id,
                    player_key=tally.player_key,
                    display_name=tally.display_name,
                    team_id=tally.team_id,
                    words_guessed=sum(guessed.values()),
                    words_passed=sum(passed.values()),
                    total_score=tally.total_score,
                    active_ms_by_round=active,
                    guessed_by_round=guessed,
                    passed_by_round=passed,
                    spw_by_round={r: seconds_per_word(active[r], guessed[r]) for r in self._round_indices},
                    best_turn_by_round={r: tally.best_turn_by_round.get(r, 0) for r in self._round_indices},
                )
            )
        return result

    def summary(self) -> SessionSummary:
        return SessionSummary(
            match_id=self.match_id,
            started_at=self._started_at,
            ended_at=self._ended_at,
            players=self.player_totals(),
            round_durations=dict(self._round_durations),
            total_duration_seconds=sum(self._round_durations.values()),
            winners=list(self._winners),
            facts=self._facts,
        )

    # ------------------------------------------------------------------

    def register_players(self, players: Iterable[RosterEntry]) -> None:
        """Start tallies for a roster; used for matches restored from storage."""
        if self._started_at is None:
            self._started_at = datetime.now(tz=UTC)
        for entry in players:
            self._players.setdefault(
                entry.player_id,
                _PlayerTally(
                    player_id=entry.player_id,
                    player_key=entry.key,
                    display_name=entry.display_name,
                    team_id=entry.team_id,
                ),
            )

    def _start_session(self, event: MatchStartedEvent) -> None:
        self._started_at = datetime.now(tz=UTC)
        self._players = {}
        self.register_players(event.players)

    def _finalize_open_turn(self) -> None:
        turn = self._clock.stop()
        if turn is None:
            return
        tally = self._players.get(turn.player_id)
        if tally is not None:
            r = turn.round_index
            tally.round_active_ms[r] = tally.round_active_ms.get(r, 0) + turn.accumulated_active_ms

    def _on_word_scored(self, player_id: str | None, round_index: int, *, delta: int) -> None:
        tally = self._players.get(player_id) if player_id is not None else None
        if tally is not None:
            counts = tally.guessed_by_round if delta > 0 else tally.passed_by_round
            counts[round_index] = counts.get(round_index, 0) + 1
            tally.total_score += delta

        turn = self._clock.current
        if turn is not None and turn.player_id == player_id and turn.round_index == round_index:
            turn.points_delta += delta
            if delta > 0:
                turn.guessed += 1
            else:
                turn.passed += 1

        if delta < 0 and self._current_word is not None:
            self._passed_counts[self._current_word] = self._passed_counts.get(self._current_word, 0) + 1
        self._add_display_time()

    def _add_display_time(self) -> None:
        if self._current_word is not None and self._word_shown_at is not None:
            elapsed = max(0.0, (self._clock.now() - self._word_shown_at) / MS_PER_SECOND)
            word = self._current_word
            self._display_seconds[word] = self._display_seconds.get(word, 0) + elapsed
        self._current_word = None
        self._word_shown_at = None

    def _record_round_duration(self, round_index: int) -> None:
        total_ms = sum(t.round_active_ms.get(round_index, 0) for t in self._players.values())
        self._round_durations[round_index] = max(0.0, total_ms / MS_PER_SECOND)

    def _end_session(self, event: MatchEndedEvent) -> None:
        self._finalize_open_turn()
        self._ended_at = datetime.now(tz=UTC)
        self._winners = compute_winners(event.scores_by_team_and_round)
        most_passed = _first_max({w: float(c) for w, c in self._passed_counts.items()})
        self._facts = SessionFacts(most_passed_word=most_passed, hardest_word=_first_max(self._display_seconds))
        logger.info(
            "session stats finalized",
            match_id=self.match_id,
            winners=self._winners,
            total_duration_seconds=sum(self._round_durations.values()),
        )
