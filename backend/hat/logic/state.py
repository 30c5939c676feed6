"""
Match state machine for the hat game.

MatchState is the authoritative in-memory representation of one match and
owns every game-rule invariant:

- ``available_words`` is always a subset of ``selected_words``;
- a word leaves ``available_words`` only when guessed, never when passed,
  so ``len(selected_words) == len(used_words) + len(available_words)``
  holds at every point within a round;
- a player's missed-word registry survives round changes and is cleared
  only when the match completes.

Each transition appends domain events to an outbox that the service drains
with ``drain_events()``; the state itself never calls its consumers.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from hat.logic.enums import MatchPhase
from hat.logic.events import (
    MatchEndedEvent,
    MatchEvent,
    MatchStartedEvent,
    RosterEntry,
    RoundEndedEvent,
    RoundExhaustedEvent,
    RoundStartedEvent,
    TurnEndedEvent,
    TurnPausedEvent,
    TurnResumedEvent,
    TurnStartedEvent,
    WordGuessedEvent,
    WordPassedEvent,
    WordShownEvent,
)
from hat.logic.exceptions import EmptyWordPoolError, InvalidRosterError
from hat.logic.rng import fisher_yates_shuffle
from hat.logic.roster import Player, PlayerSpec, Team, TeamSpec, build_roster
from hat.logic.settings import MatchSettings, validate_settings
from hat.logic.turn_order import TurnOrder

logger = structlog.get_logger()


@dataclass
class PassedWordEntry:
    """Audit record of one pass."""

    word: str
    player_id: str | None
    team_id: str
    timestamp: datetime


@dataclass
class PlayerMatchStats:
    """Per-player counters for the whole match."""

    guessed: int = 0
    passed: int = 0
    net_score: int = 0


@dataclass
class MatchState:
    """
    One match: rosters, round/turn progression, word pool and scores.

    Create with a match id (and optionally a seeded RNG), then call
    ``initialize``, ``set_selected_words``, ``initialize_turn_order`` and
    ``draw_initial_pool`` in that order.
    """

    match_id: str
    settings: MatchSettings = field(default_factory=MatchSettings)
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    # rosters
    players: tuple[Player, ...] = ()
    teams: tuple[Team, ...] = ()
    turn_order: TurnOrder = field(default_factory=TurnOrder)

    # progression
    phase: MatchPhase = MatchPhase.AWAITING_START
    round_index: int = 0
    current_player_id: str | None = None
    next_player_id: str | None = None
    is_paused: bool = False
    is_handoff_pending: bool = False

    # word pool
    current_word: str | None = None
    current_word_from_missed: bool = False
    selected_words: list[str] = field(default_factory=list)
    available_words: list[str] = field(default_factory=list)
    used_words: list[str] = field(default_factory=list)
    passed_log: list[PassedWordEntry] = field(default_factory=list)

    # scores
    scores_by_team: dict[str, int] = field(default_factory=dict)
    scores_by_team_and_round: dict[int, dict[str, int]] = field(default_factory=dict)
    player_stats: dict[str, PlayerMatchStats] = field(default_factory=dict)

    # cross-turn memory
    carried_time_by_player: dict[str, float] = field(default_factory=dict)
    missed_words_by_player: dict[str, list[str]] = field(default_factory=dict)

    _events: list[MatchEvent] = field(default_factory=list, repr=False, compare=False)

    # ------------------------------------------------------------------
    # setup
    # ------------------------------------------------------------------

    def initialize(
        self,
        players: list[PlayerSpec],
        teams: list[TeamSpec],
        settings: MatchSettings | None = None,
    ) -> None:
        """Build rosters and zero all scores and stats.

        Validation happens before any field is touched, so a failing call
        leaves the state unchanged.
        """
        settings = settings or self.settings
        validate_settings(settings)
        built_players, built_teams = build_roster(players, teams)

        self.settings = settings
        self.players = built_players
        self.teams = built_teams
        self.phase = MatchPhase.AWAITING_START
        self.round_index = 0
        self.current_player_id = None
        self.next_player_id = None
        self.is_paused = False
        self.is_handoff_pending = False
        self.current_word = None
        self.current_word_from_missed = False
        self.used_words = []
        self.passed_log = []
        self.carried_time_by_player = {}
        self.missed_words_by_player = {}
        self.scores_by_team = {t.id: 0 for t in built_teams}
        self.scores_by_team_and_round = {r: {t.id: 0 for t in built_teams} for r in settings.round_indices}
        self.player_stats = {p.id: PlayerMatchStats() for p in built_players}

    def set_selected_words(self, words: list[str]) -> None:
        """Fix the match's word sample and copy it into the round pool."""
        unique = list(dict.fromkeys(w for w in words if w))
        if not unique:
            raise EmptyWordPoolError(f"match {self.match_id} has no words to play")
        self.selected_words = unique
        self.available_words = list(unique)

    def initialize_turn_order(self) -> None:
        """Seed deterministic turn order; the first team's first member describes first."""
        order = TurnOrder.from_teams(self.teams)
        first = order.first_player_id()
        if first is None:
            raise InvalidRosterError("turn order cannot be seeded without a populated team")
        self.turn_order = order
        self.current_player_id = first
        self.next_player_id = None

    def draw_initial_pool(self) -> None:
        """Open round 0: shuffle the pool and show the first word."""
        if not self.selected_words:
            raise EmptyWordPoolError(f"match {self.match_id} has no words to play")
        self.available_words = list(self.selected_words)
        self.phase = MatchPhase.ROUND_IN_PROGRESS
        self._emit(
            MatchStartedEvent(
                match_id=self.match_id,
                players=self.roster_entries(),
                team_ids=[t.id for t in self.teams],
                word_count=len(self.selected_words),
            )
        )
        self._emit(RoundStartedEvent(match_id=self.match_id, round_index=self.round_index))
        self.shuffle_available_words()
        self.get_next_word()

    # ------------------------------------------------------------------
    # word pool
    # ------------------------------------------------------------------

    def shuffle_available_words(self) -> None:
        """Uniformly reorder the current round's pool."""
        if len(self.available_words) > 1:
            self.available_words = fisher_yates_shuffle(self.available_words, self.rng)

    def get_next_word(self) -> str | None:
        """
        Choose the word to show the current describer.

        Prefers the first pool word the describer has not passed before. When
        every remaining word is in their missed set, serves the pool head
        anyway and flags it, so a turn is never blocked by the player's own
        passes. Returns None (and clears the current word) on an empty pool.
        """
        if not self.available_words:
            self.current_word = None
            self.current_word_from_missed = False
            return None

        word = self.available_words[0]
        from_missed = False
        if self.current_player_id is not None:
            missed = set(self.missed_words_by_player.get(self.current_player_id, ()))
            preferred = next((w for w in self.available_words if w not in missed), None)
            if preferred is not None:
                word = preferred
            else:
                from_missed = True

        self.current_word = word
        self.current_word_from_missed = from_missed
        self._emit(
            WordShownEvent(
                match_id=self.match_id,
                word=word,
                player_id=self.current_player_id,
                from_missed=from_missed,
            )
        )
        return word

    def word_guessed(self, team_id: str | None) -> bool:
        """
        Score the current word for team_id and draw the next one.

        No-op without a current word or team. Returns True when this guess
        emptied the pool (the round is exhausted).
        """
        if self.current_word is None or not team_id:
            return False

        word = self.current_word
        self._add_team_points(team_id, 1)
        stats = self._current_player_stats()
        if stats is not None:
            stats.guessed += 1
            stats.net_score += 1

        self.available_words.remove(word)
        self.used_words.append(word)
        self._emit(
            WordGuessedEvent(
                match_id=self.match_id,
                word=word,
                player_id=self.current_player_id,
                team_id=team_id,
                round_index=self.round_index,
            )
        )

        exhausted = self.get_next_word() is None
        if exhausted:
            logger.info("round exhausted", match_id=self.match_id, round_index=self.round_index)
            self._emit(RoundExhaustedEvent(match_id=self.match_id, round_index=self.round_index))
        return exhausted

    def word_passed(self, team_id: str | None) -> None:
        """
        Penalize team_id and rotate the current word to the pool tail.

        The word stays in the pool and enters the describer's missed set.
        A pass can never end a round.
        """
        if self.current_word is None or not team_id:
            return

        word = self.current_word
        self._add_team_points(team_id, -1)
        stats = self._current_player_stats()
        if stats is not None:
            stats.passed += 1
            stats.net_score -= 1

        self.available_words.remove(word)
        self.available_words.append(word)

        if self.current_player_id is not None:
            missed = self.missed_words_by_player.setdefault(self.current_player_id, [])
            if word not in missed:
                missed.append(word)

        self.passed_log.append(
            PassedWordEntry(
                word=word,
                player_id=self.current_player_id,
                team_id=team_id,
                timestamp=datetime.now(tz=UTC),
            )
        )
        self._emit(
            WordPassedEvent(
                match_id=self.match_id,
                word=word,
                player_id=self.current_player_id,
                team_id=team_id,
                round_index=self.round_index,
            )
        )
        self.get_next_word()

    # ------------------------------------------------------------------
    # turns
    # ------------------------------------------------------------------

    def switch_to_next_player(self) -> None:
        """Advance the rotation and stage the next describer in next_player_id."""
        self.next_player_id = self.turn_order.advance()

    def end_player_turn(
        self,
        carried_time: float | None = None,
        timer_remaining_at_show: float | None = None,
    ) -> None:
        """
        Close the current turn and enter the handoff.

        The in-flight word is neither guessed nor passed: it stays in the
        pool for the next describer.
        """
        ending_player = self.current_player_id
        if ending_player is not None and carried_time is not None:
            self.carried_time_by_player[ending_player] = carried_time

        self.current_word = None
        self.current_word_from_missed = False
        self.switch_to_next_player()
        self.is_handoff_pending = True
        self._emit(
            TurnEndedEvent(
                match_id=self.match_id,
                player_id=ending_player,
                round_index=self.round_index,
                carried_time=carried_time,
                timer_remaining_at_show=timer_remaining_at_show,
            )
        )

    def start_next_player_turn(self) -> None:
        """
        Hand the turn to the staged describer (if any) and start it.

        The pool is reshuffled; a new word is drawn only if none is pending,
        so a word carried over from before the turn start keeps its place.
        """
        if self.next_player_id is not None:
            self.current_player_id = self.next_player_id
            self.next_player_id = None
        self.is_handoff_pending = False
        self.shuffle_available_words()
        if self.current_word is None:
            self.get_next_word()
        if self.current_player_id is not None:
            self._emit(
                TurnStartedEvent(
                    match_id=self.match_id,
                    player_id=self.current_player_id,
                    round_index=self.round_index,
                )
            )

    def consume_carried_time(self, player_id: str) -> float | None:
        """Return and forget the seconds stored for player_id."""
        return self.carried_time_by_player.pop(player_id, None)

    def carried_time_for(self, player_id: str) -> float:
        return self.carried_time_by_player.get(player_id, 0)

    # ------------------------------------------------------------------
    # rounds
    # ------------------------------------------------------------------

    def end_round(self, carried_time: float | None = None) -> None:
        """Close the current round, storing the describer's leftover seconds."""
        player_id = self.current_player_id
        if player_id is not None and carried_time is not None:
            self.carried_time_by_player[player_id] = carried_time

        self._emit(
            TurnEndedEvent(
                match_id=self.match_id,
                player_id=player_id,
                round_index=self.round_index,
                carried_time=carried_time,
            )
        )
        self._emit(
            RoundEndedEvent(
                match_id=self.match_id,
                round_index=self.round_index,
                round_scores=dict(self.scores_by_team_and_round.get(self.round_index, {})),
                total_scores=dict(self.scores_by_team),
            )
        )
        self.phase = MatchPhase.ROUND_COMPLETED
        logger.info("round completed", match_id=self.match_id, round_index=self.round_index)

    def start_next_round(self) -> bool:
        """
        Advance to the next round, or complete the match after the last one.

        Entering a floor round raises every positive carried time below the
        floor to exactly the floor. Returns True when the match completed.
        """
        self.round_index += 1

        if self.round_index in self.settings.carried_time_floor_rounds:
            floor = self.settings.carried_time_floor_seconds
            for player_id, seconds in self.carried_time_by_player.items():
                if 0 < seconds < floor:
                    self.carried_time_by_player[player_id] = floor

        if self.round_index > self.settings.last_round_index:
            self.current_word = None
            self.current_word_from_missed = False
            self.carried_time_by_player = {}
            self.missed_words_by_player = {}
            self.is_handoff_pending = False
            self.next_player_id = None
            self.phase = MatchPhase.MATCH_COMPLETED
            self._emit(
                MatchEndedEvent(
                    match_id=self.match_id,
                    players=self.roster_entries(),
                    scores_by_team_and_round={
                        r: dict(scores) for r, scores in self.scores_by_team_and_round.items()
                    },
                )
            )
            logger.info("match completed", match_id=self.match_id, scores=self.scores_by_team)
            return True

        self.used_words = []
        self.passed_log = []
        self.available_words = list(self.selected_words)
        self.scores_by_team_and_round[self.round_index] = {t.id: 0 for t in self.teams}
        self.phase = MatchPhase.ROUND_IN_PROGRESS
        self._emit(RoundStartedEvent(match_id=self.match_id, round_index=self.round_index))
        self.shuffle_available_words()
        self.current_word = None
        self.get_next_word()
        return False

    # ------------------------------------------------------------------
    # pause
    # ------------------------------------------------------------------

    def pause(self) -> None:
        if self.is_paused:
            return
        self.is_paused = True
        self._emit(TurnPausedEvent(match_id=self.match_id))

    def resume(self) -> None:
        if not self.is_paused:
            return
        self.is_paused = False
        self._emit(TurnResumedEvent(match_id=self.match_id))

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    @property
    def is_round_exhausted(self) -> bool:
        return self.phase == MatchPhase.ROUND_IN_PROGRESS and not self.available_words

    @property
    def is_match_completed(self) -> bool:
        return self.phase == MatchPhase.MATCH_COMPLETED

    def get_team(self, team_id: str) -> Team | None:
        return next((t for t in self.teams if t.id == team_id), None)

    def roster_entries(self) -> list[RosterEntry]:
        return [
            RosterEntry(player_id=p.id, display_name=p.display_name, team_id=p.team_id, key=p.key)
            for p in self.players
        ]

    def drain_events(self) -> list[MatchEvent]:
        """Return the events recorded since the last drain, oldest first."""
        events, self._events = self._events, []
        return events

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _emit(self, event: MatchEvent) -> None:
        self._events.append(event)

    def _current_player_stats(self) -> PlayerMatchStats | None:
        if self.current_player_id is None:
            return None
        return self.player_stats.setdefault(self.current_player_id, PlayerMatchStats())

    def _add_team_points(self, team_id: str, delta: int) -> None:
        self.scores_by_team[team_id] = self.scores_by_team.get(team_id, 0) + delta
        round_scores = self.scores_by_team_and_round.setdefault(self.round_index, {})
        round_scores[team_id] = round_scores.get(team_id, 0) + delta
