"""Domain event models and the synchronous event bus.

MatchState records one event per state transition; the service drains them
after each operation and publishes them on the match's EventBus. Subscribers
(the stats aggregator, the session event log, a transport notifier) receive
events in order, synchronously, on the caller's stack. MatchState never knows
who is listening.

All layers import exclusively from this module for event types.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Annotated, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger()


class EventType(StrEnum):
    """Types of match events."""

    MATCH_STARTED = "match_started"
    ROUND_STARTED = "round_started"
    TURN_STARTED = "turn_started"
    TURN_PAUSED = "turn_paused"
    TURN_RESUMED = "turn_resumed"
    WORD_SHOWN = "word_shown"
    WORD_GUESSED = "word_guessed"
    WORD_PASSED = "word_passed"
    ROUND_EXHAUSTED = "round_exhausted"
    TURN_ENDED = "turn_ended"
    ROUND_ENDED = "round_ended"
    MATCH_ENDED = "match_ended"


class RosterEntry(BaseModel):
    """Player identity as carried by lifecycle events."""

    model_config = ConfigDict(frozen=True)

    player_id: str
    display_name: str
    team_id: str
    key: str


class MatchEvent(BaseModel):
    """Base class for all domain match events."""

    model_config = ConfigDict(frozen=True)

    type: EventType
    match_id: str


class MatchStartedEvent(MatchEvent):
    """The match was initialized and its first round is ready."""

    type: Literal[EventType.MATCH_STARTED] = EventType.MATCH_STARTED
    players: list[RosterEntry]
    team_ids: list[str]
    word_count: int


class RoundStartedEvent(MatchEvent):
    """A new round began with the full pool restored."""

    type: Literal[EventType.ROUND_STARTED] = EventType.ROUND_STARTED
    round_index: int


class TurnStartedEvent(MatchEvent):
    """A describer's turn began."""

    type: Literal[EventType.TURN_STARTED] = EventType.TURN_STARTED
    player_id: str
    round_index: int


class TurnPausedEvent(MatchEvent):
    """The match was paused mid-turn."""

    type: Literal[EventType.TURN_PAUSED] = EventType.TURN_PAUSED


class TurnResumedEvent(MatchEvent):
    """The match was resumed."""

    type: Literal[EventType.TURN_RESUMED] = EventType.TURN_RESUMED


class WordShownEvent(MatchEvent):
    """A word became the current word for the describer."""

    type: Literal[EventType.WORD_SHOWN] = EventType.WORD_SHOWN
    word: str
    player_id: str | None = None
    from_missed: bool = False


class WordGuessedEvent(MatchEvent):
    """The current word was guessed."""

    type: Literal[EventType.WORD_GUESSED] = EventType.WORD_GUESSED
    word: str
    player_id: str | None
    team_id: str
    round_index: int


class WordPassedEvent(MatchEvent):
    """The current word was passed and rotated to the pool tail."""

    type: Literal[EventType.WORD_PASSED] = EventType.WORD_PASSED
    word: str
    player_id: str | None
    team_id: str
    round_index: int


class RoundExhaustedEvent(MatchEvent):
    """The last word of the pool was guessed."""

    type: Literal[EventType.ROUND_EXHAUSTED] = EventType.ROUND_EXHAUSTED
    round_index: int


class TurnEndedEvent(MatchEvent):
    """A turn finished (time up, round end, or early cancellation).

    timer_remaining_at_show is set only when the turn ended on a timeout; it is
    attributed to the on-screen word's cumulative display time.
    """

    type: Literal[EventType.TURN_ENDED] = EventType.TURN_ENDED
    player_id: str | None
    round_index: int
    carried_time: float | None = None
    timer_remaining_at_show: float | None = None


class RoundEndedEvent(MatchEvent):
    """A round was closed; scores are that round's per-team totals."""

    type: Literal[EventType.ROUND_ENDED] = EventType.ROUND_ENDED
    round_index: int
    round_scores: dict[str, int]
    total_scores: dict[str, int]


class MatchEndedEvent(MatchEvent):
    """The match completed its last round."""

    type: Literal[EventType.MATCH_ENDED] = EventType.MATCH_ENDED
    players: list[RosterEntry]
    scores_by_team_and_round: dict[int, dict[str, int]]


Event = Annotated[
    MatchStartedEvent
    | RoundStartedEvent
    | TurnStartedEvent
    | TurnPausedEvent
    | TurnResumedEvent
    | WordShownEvent
    | WordGuessedEvent
    | WordPassedEvent
    | RoundExhaustedEvent
    | TurnEndedEvent
    | RoundEndedEvent
    | MatchEndedEvent,
    Field(discriminator="type"),
]

EVENT_ADAPTER: TypeAdapter[Event] = TypeAdapter(Event)


def parse_event(data: dict[str, object]) -> MatchEvent:
    """Rebuild a typed event from its JSON-compatible dict form."""
    return EVENT_ADAPTER.validate_python(data)


class EventBus:
    """Synchronous in-order fan-out of match events to subscribers.

    A subscriber that raises aborts the publish: the exception propagates to
    the caller so a broken consumer is never silently skipped.
    """

    def __init__(self) -> None:
        self._subscribers: list[Callable[[MatchEvent], None]] = []

    def subscribe(self, handler: Callable[[MatchEvent], None]) -> None:
        self._subscribers.append(handler)

    def unsubscribe(self, handler: Callable[[MatchEvent], None]) -> None:
        if handler in self._subscribers:
            self._subscribers.remove(handler)

    def publish(self, events: list[MatchEvent]) -> None:
        for event in events:
            logger.debug("event published", event_type=event.type, match_id=event.match_id)
            for handler in list(self._subscribers):
                handler(event)
