"""Centralized match settings - all configurable gameplay rules."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from hat.logic.exceptions import UnsupportedSettingsError

MAX_WORDS_PER_MATCH = 200


class WordFilters(BaseModel):
    """Category/difficulty filters handed to the word source."""

    model_config = ConfigDict(frozen=True)

    categories: tuple[str, ...] | None = None
    levels: tuple[str, ...] | None = None
    hard_percentage: int = 0


class MatchSettings(BaseModel):
    """
    Configuration for one match.

    Defaults match the reference behavior: 30-second turns, 100 sampled
    words, and rounds 0..3 before the match completes.
    """

    model_config = ConfigDict(frozen=True)

    # --- Pacing ---
    round_duration_seconds: int = 30
    words_count: int = 100

    # --- Word selection ---
    filters: WordFilters = Field(default_factory=WordFilters)

    # --- Round structure ---
    # Round index that is still played; start_next_round past it completes the match.
    last_round_index: int = 3

    # --- Carried time ---
    carried_time_floor_seconds: float = 5
    carried_time_floor_rounds: tuple[int, ...] = (1, 2)

    @property
    def round_count(self) -> int:
        return self.last_round_index + 1

    @property
    def round_indices(self) -> range:
        return range(self.round_count)


def validate_settings(settings: MatchSettings) -> None:
    """Validate that all settings values are supported by the engine.

    Raises UnsupportedSettingsError listing every offending value.
    """
    errors: list[str] = []

    if settings.round_duration_seconds <= 0:
        errors.append(f"round_duration_seconds={settings.round_duration_seconds} must be positive")

    if not (1 <= settings.words_count <= MAX_WORDS_PER_MATCH):
        errors.append(f"words_count={settings.words_count} must be within 1..{MAX_WORDS_PER_MATCH}")

    if settings.last_round_index < 0:
        errors.append(f"last_round_index={settings.last_round_index} must not be negative")

    if not (0 <= settings.filters.hard_percentage <= 100):  # noqa: PLR2004
        errors.append(f"hard_percentage={settings.filters.hard_percentage} must be within 0..100")

    if settings.carried_time_floor_seconds < 0:
        errors.append("carried_time_floor_seconds must not be negative")

    if errors:
        raise UnsupportedSettingsError("; ".join(errors))
