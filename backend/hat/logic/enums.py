"""
String enum definitions for hat game concepts.
"""

from enum import Enum


class MatchPhase(str, Enum):
    """Lifecycle phase of a match."""

    AWAITING_START = "awaiting_start"
    ROUND_IN_PROGRESS = "round_in_progress"
    ROUND_COMPLETED = "round_completed"
    MATCH_COMPLETED = "match_completed"


class HatAction(str, Enum):
    """Operations a transport layer maps onto its own message format."""

    START_MATCH = "start_match"
    REQUEST_NEXT_WORD = "request_next_word"
    WORD_GUESSED = "word_guessed"
    WORD_PASSED = "word_passed"
    PAUSE = "pause"
    RESUME = "resume"
    END_ROUND = "end_round"
    CONTINUE_TO_NEXT_ROUND = "continue_to_next_round"
    END_PLAYER_TURN = "end_player_turn"
    START_NEXT_PLAYER_TURN = "start_next_player_turn"
    USE_CARRIED_TIME = "use_carried_time"
    ABANDON_MATCH = "abandon_match"


class LeaderboardKind(str, Enum):
    """Families of leaderboards; per-round kinds expand to one board per round."""

    SPW_ALL = "spw_all"
    SPW_ROUND = "spw_r"
    BEST_ROUND_SPW = "best_round_spw_r"
    BEST_STREAK = "best_streak"
    MAX_POINTS_PER_GAME = "max_points_per_game"
    MAX_PASSED_PER_GAME = "max_passed_per_game"
    BEST_TURN_ROUND = "best_turn_r"

    @property
    def is_per_round(self) -> bool:
        return self in _PER_ROUND_KINDS

    def metric_name(self, round_index: int | None = None) -> str:
        """Return the storage name, e.g. ``spw_r1`` for round index 0."""
        if not self.is_per_round:
            return self.value
        if round_index is None:
            raise ValueError(f"{self.value} requires a round index")
        return f"{self.value}{round_index + 1}"


_PER_ROUND_KINDS = frozenset(
    {
        LeaderboardKind.SPW_ROUND,
        LeaderboardKind.BEST_ROUND_SPW,
        LeaderboardKind.BEST_TURN_ROUND,
    }
)
