"""
Operation facade for hat matches.

HatGameService owns an explicit map of match id -> MatchState. Every
operation validates its preconditions first (raising a typed error with the
match untouched), applies the transition, publishes the drained domain
events on the match's EventBus, persists the match record and returns a
fresh MatchSnapshot.

When a transition completes the match, the service awaits the lifetime
statistics update and the session log write before returning, then drops
the match from memory.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from hat.logic.enums import HatAction, MatchPhase
from hat.logic.events import EventBus
from hat.logic.exceptions import (
    HatGameError,
    InsufficientWordsError,
    InvalidTransitionError,
    NoActiveMatchError,
)
from hat.logic.rng import create_match_rng, generate_seed
from hat.logic.settings import MatchSettings
from hat.logic.snapshot import build_snapshot, restore_match, to_record
from hat.logic.state import MatchState
from hat.stats.aggregator import StatsAggregator

if TYPE_CHECKING:
    import random
    from collections.abc import Callable, Iterable

    from hat.logic.events import MatchEvent
    from hat.logic.roster import PlayerSpec, TeamSpec
    from hat.logic.snapshot import MatchSnapshot
    from hat.logic.words import WordSource
    from hat.session.event_log import SessionEventLog
    from hat.stats.aggregator import SessionSummary
    from hat.stats.clock import Clock
    from hat.stats.leaderboard import LeaderboardEntry
    from hat.stats.lifetime import PlayerLifetimeAggregate
    from hat.stats.recorder import LifetimeStatsRecorder
    from shared.dal import MatchRepository

logger = structlog.get_logger()

# finished-match summaries kept for get_session_summary, oldest evicted first
_FINISHED_SUMMARY_LIMIT = 100


@dataclass
class ActiveMatch:
    """A running match together with its event plumbing."""

    state: MatchState
    bus: EventBus
    stats: StatsAggregator
    seed: str | None = None


class HatGameService:
    """
    Maintains match states for multiple concurrent matches.

    Operations on one match id must be serialized by the caller; distinct
    matches are independent.
    """

    def __init__(
        self,
        *,
        word_source: WordSource,
        match_repository: MatchRepository,
        recorder: LifetimeStatsRecorder,
        event_log: SessionEventLog | None = None,
        subscribers: Iterable[Callable[[MatchEvent], None]] = (),
        clock: Clock | None = None,
        rng_factory: Callable[[str], random.Random] = create_match_rng,
        finished_summary_limit: int = _FINISHED_SUMMARY_LIMIT,
    ) -> None:
        self._word_source = word_source
        self._match_repository = match_repository
        self._recorder = recorder
        self._event_log = event_log
        self._subscribers = list(subscribers)
        self._clock = clock
        self._rng_factory = rng_factory
        self._matches: dict[str, ActiveMatch] = {}
        self._finished_summaries: dict[str, SessionSummary] = {}
        self._finished_summary_limit = finished_summary_limit

    # ------------------------------------------------------------------
    # match lifecycle
    # ------------------------------------------------------------------

    async def start_match(
        self,
        match_id: str,
        players: list[PlayerSpec],
        teams: list[TeamSpec],
        settings: MatchSettings | None = None,
        *,
        seed: str | None = None,
    ) -> MatchSnapshot:
        """
        Create a match, sample its words and open round 0.

        The first describer is the first team's first member; their turn
        (and its timing) begins with ``start_next_player_turn``. A word
        source that runs short is accepted as long as it supplies a word.
        When seed is None a random seed is generated.
        """
        with structlog.contextvars.bound_contextvars(match_id=match_id):
            if match_id in self._matches:
                raise self._reject(HatAction.START_MATCH, "match is already running")

            settings = settings or MatchSettings()
            match_seed = seed if seed is not None else generate_seed()
            state = MatchState(match_id=match_id, settings=settings, rng=self._rng_factory(match_seed))
            state.initialize(players, teams, settings)

            try:
                words = self._word_source.select_words(settings.words_count, settings.filters)
            except InsufficientWordsError as exc:
                logger.warning("starting with fewer words", requested=exc.requested, available=len(exc.available))
                words = exc.available
            state.set_selected_words(words)
            state.initialize_turn_order()

            active = self._register(state, match_seed)
            if self._event_log is not None:
                self._event_log.start_match(match_id)
            state.draw_initial_pool()
            logger.info(
                "match started",
                players=len(state.players),
                teams=[t.id for t in state.teams],
                words=len(state.selected_words),
            )
            return await self._commit(active)

    async def abandon_match(self, match_id: str) -> None:
        """Drop a match without touching lifetime statistics or writing its log."""
        with structlog.contextvars.bound_contextvars(match_id=match_id):
            active = self._matches.pop(match_id, None)
            if active is None:
                raise NoActiveMatchError(match_id)
            if self._event_log is not None:
                self._event_log.cleanup_match(match_id)
            await self._match_repository.delete(match_id)
            logger.info("match abandoned", round_index=active.state.round_index)

    # ------------------------------------------------------------------
    # words
    # ------------------------------------------------------------------

    async def request_next_word(self, match_id: str) -> MatchSnapshot:
        with structlog.contextvars.bound_contextvars(match_id=match_id):
            active = await self._require(match_id)
            self._require_playable(active.state, HatAction.REQUEST_NEXT_WORD)
            active.state.get_next_word()
            return await self._commit(active)

    async def word_guessed(self, match_id: str, team_id: str | None) -> MatchSnapshot:
        """Score the current word; the snapshot shows ``words_remaining == 0`` when the round is exhausted."""
        with structlog.contextvars.bound_contextvars(match_id=match_id):
            active = await self._require(match_id)
            self._require_scorable(active, HatAction.WORD_GUESSED, team_id)
            active.state.word_guessed(team_id)
            return await self._commit(active)

    async def word_passed(self, match_id: str, team_id: str | None) -> MatchSnapshot:
        with structlog.contextvars.bound_contextvars(match_id=match_id):
            active = await self._require(match_id)
            self._require_scorable(active, HatAction.WORD_PASSED, team_id)
            active.state.word_passed(team_id)
            return await self._commit(active)

    # ------------------------------------------------------------------
    # pause
    # ------------------------------------------------------------------

    async def pause(self, match_id: str) -> MatchSnapshot:
        with structlog.contextvars.bound_contextvars(match_id=match_id):
            active = await self._require(match_id)
            active.state.pause()
            return await self._commit(active)

    async def resume(self, match_id: str) -> MatchSnapshot:
        with structlog.contextvars.bound_contextvars(match_id=match_id):
            active = await self._require(match_id)
            active.state.resume()
            return await self._commit(active)

    # ------------------------------------------------------------------
    # turns
    # ------------------------------------------------------------------

    async def end_player_turn(
        self,
        match_id: str,
        carried_time: float | None = None,
        timer_remaining_at_show: float | None = None,
    ) -> MatchSnapshot:
        """
        End the describer's turn and stage the next describer.

        ``timer_remaining_at_show`` is passed only when the turn ran out of
        time; it is added to the on-screen word's display time.
        """
        with structlog.contextvars.bound_contextvars(match_id=match_id):
            active = await self._require(match_id)
            state = active.state
            self._require_phase(state, HatAction.END_PLAYER_TURN, MatchPhase.ROUND_IN_PROGRESS)
            if state.is_handoff_pending:
                raise self._reject(HatAction.END_PLAYER_TURN, "turn already ended, handoff pending")
            state.end_player_turn(carried_time, timer_remaining_at_show)
            return await self._commit(active)

    async def start_next_player_turn(self, match_id: str) -> MatchSnapshot:
        """Start the staged describer's turn, or the current describer's when nothing is staged."""
        with structlog.contextvars.bound_contextvars(match_id=match_id):
            active = await self._require(match_id)
            state = active.state
            self._require_phase(state, HatAction.START_NEXT_PLAYER_TURN, MatchPhase.ROUND_IN_PROGRESS)
            if state.is_paused:
                raise self._reject(HatAction.START_NEXT_PLAYER_TURN, "match is paused")
            if not state.is_handoff_pending and active.stats.clock.current is not None:
                raise self._reject(HatAction.START_NEXT_PLAYER_TURN, "a turn is already in progress")
            state.start_next_player_turn()
            return await self._commit(active)

    async def use_carried_time(self, match_id: str) -> float | None:
        """Consume the current describer's carried seconds; None when nothing was carried."""
        with structlog.contextvars.bound_contextvars(match_id=match_id):
            active = await self._require(match_id)
            player_id = active.state.current_player_id
            if player_id is None:
                raise self._reject(HatAction.USE_CARRIED_TIME, "no current player")
            seconds = active.state.consume_carried_time(player_id)
            await self._commit(active)
            return seconds

    # ------------------------------------------------------------------
    # rounds
    # ------------------------------------------------------------------

    async def end_round(self, match_id: str, carried_time: float | None = None) -> MatchSnapshot:
        with structlog.contextvars.bound_contextvars(match_id=match_id):
            active = await self._require(match_id)
            self._require_phase(active.state, HatAction.END_ROUND, MatchPhase.ROUND_IN_PROGRESS)
            active.state.end_round(carried_time)
            return await self._commit(active)

    async def continue_to_next_round(self, match_id: str) -> MatchSnapshot:
        """Open the next round, or complete the match after the last one."""
        with structlog.contextvars.bound_contextvars(match_id=match_id):
            active = await self._require(match_id)
            self._require_phase(active.state, HatAction.CONTINUE_TO_NEXT_ROUND, MatchPhase.ROUND_COMPLETED)
            active.state.start_next_round()
            return await self._commit(active)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    async def get_match_snapshot(self, match_id: str) -> MatchSnapshot:
        active = await self._require(match_id)
        return build_snapshot(active.state)

    def get_session_summary(self, match_id: str) -> SessionSummary:
        """Live statistics of a running match, or the final ones of a finished match."""
        active = self._matches.get(match_id)
        if active is not None:
            return active.stats.summary()
        summary = self._finished_summaries.get(match_id)
        if summary is None:
            raise NoActiveMatchError(match_id, reason="no session statistics")
        return summary

    async def get_player_lifetime_stats(self, player_key: str) -> PlayerLifetimeAggregate | None:
        return await self._recorder.repository.read_player_aggregate(player_key)

    async def get_leaderboard(self, metric: str) -> list[LeaderboardEntry]:
        return await self._recorder.repository.read_leaderboard(metric)

    def get_match_seed(self, match_id: str) -> str | None:
        active = self._matches.get(match_id)
        return active.seed if active is not None else None

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _register(self, state: MatchState, seed: str | None) -> ActiveMatch:
        bus = EventBus()
        stats = StatsAggregator(state.match_id, state.settings.round_indices, clock=self._clock)
        bus.subscribe(stats.handle)
        if self._event_log is not None:
            bus.subscribe(self._event_log.collect)
        for subscriber in self._subscribers:
            bus.subscribe(subscriber)
        active = ActiveMatch(state=state, bus=bus, stats=stats, seed=seed)
        self._matches[state.match_id] = active
        return active

    async def _require(self, match_id: str) -> ActiveMatch:
        """Return the running match, restoring it from the repository if needed."""
        active = self._matches.get(match_id)
        if active is not None:
            return active

        record = await self._match_repository.load(match_id)
        if record is None:
            raise NoActiveMatchError(match_id)
        if record.phase == MatchPhase.MATCH_COMPLETED:
            raise NoActiveMatchError(match_id, reason="match already completed")

        # the original shuffle stream is not persisted; continue on a fresh seed
        seed = generate_seed()
        state = restore_match(record, rng=self._rng_factory(seed))
        active = self._register(state, seed)
        active.stats.register_players(state.roster_entries())
        logger.info("match restored from storage", round_index=state.round_index, phase=state.phase)
        return active

    async def _commit(self, active: ActiveMatch) -> MatchSnapshot:
        state = active.state
        active.bus.publish(state.drain_events())
        await self._match_repository.save(to_record(state))
        snapshot = build_snapshot(state)
        if state.is_match_completed:
            await self._finish(active)
        return snapshot

    async def _finish(self, active: ActiveMatch) -> None:
        match_id = active.state.match_id
        self._matches.pop(match_id, None)
        summary = active.stats.summary()
        self._finished_summaries[match_id] = summary
        while len(self._finished_summaries) > self._finished_summary_limit:
            del self._finished_summaries[next(iter(self._finished_summaries))]
        await self._recorder.record_session(match_id, summary.players, summary.winners)
        if self._event_log is not None:
            await self._event_log.save_and_cleanup(match_id)
        logger.info("match finished", winners=summary.winners, duration_seconds=summary.total_duration_seconds)

    def _require_phase(self, state: MatchState, action: HatAction, phase: MatchPhase) -> None:
        if state.phase != phase:
            raise self._reject(action, f"match is {state.phase.value}, expected {phase.value}")

    def _require_playable(self, state: MatchState, action: HatAction) -> None:
        self._require_phase(state, action, MatchPhase.ROUND_IN_PROGRESS)
        if state.is_paused:
            raise self._reject(action, "match is paused")
        if state.is_handoff_pending:
            raise self._reject(action, "turn handoff pending")

    def _require_scorable(self, active: ActiveMatch, action: HatAction, team_id: str | None) -> None:
        state = active.state
        self._require_playable(state, action)
        if active.stats.clock.current is None:
            raise self._reject(action, "no turn in progress, call start_next_player_turn")
        if state.current_word is None:
            raise self._reject(action, "no current word")
        if not team_id:
            raise self._reject(action, "team id is required")
        if state.get_team(team_id) is None:
            raise self._reject(action, f"unknown team {team_id!r}")

    @staticmethod
    def _reject(action: HatAction, reason: str) -> HatGameError:
        logger.warning("operation rejected", action=action, reason=reason)
        return InvalidTransitionError(action=action.value, reason=reason)
