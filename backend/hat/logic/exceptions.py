"""Typed domain exceptions for the hat match engine.

Every domain failure is a subclass of HatGameError so the service boundary
can catch-and-convert uniformly. All of them are raised before any state
mutation: a match that raised is left exactly as it was.
"""


class HatGameError(Exception):
    """Base exception for match engine failures."""


class InvalidRosterError(HatGameError):
    """Players/teams supplied at match start are malformed.

    Raised when a team references an unknown player, a team is empty,
    ids are duplicated, or no turn order can be seeded.
    """


class EmptyWordPoolError(HatGameError):
    """No words are available to start a round."""


class NoActiveMatchError(HatGameError):
    """Operation on a match id that does not exist or is already completed."""

    def __init__(self, match_id: str, reason: str = "no active match") -> None:
        self.match_id = match_id
        self.reason = reason
        super().__init__(f"{reason}: {match_id}")


class InvalidTransitionError(HatGameError):
    """Operation is not valid in the current match state.

    Attributes:
        action: The operation that was attempted (e.g. "word_guessed").
        reason: Human-readable explanation of why it was rejected.

    """

    def __init__(self, *, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(f"cannot {action}: {reason}")


class InsufficientWordsError(HatGameError):
    """The word source holds fewer words than requested.

    Carries whatever the source could supply so the caller may accept a
    shorter list instead of failing the match start.
    """

    def __init__(self, requested: int, available: list[str]) -> None:
        self.requested = requested
        self.available = list(available)
        super().__init__(f"requested {requested} words, only {len(self.available)} available")


class UnsupportedSettingsError(HatGameError):
    """Match settings contain values the engine cannot honor."""
