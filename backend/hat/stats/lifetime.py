"""
Durable per-player statistics folded from finished matches.

A PlayerLifetimeAggregate is keyed by the player's stable key and is only
ever touched when a match finished with at least one winning team.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from hat.stats.aggregator import PlayerSessionTotals

LIFETIME_SCHEMA_VERSION = 1


def median(values: Sequence[float]) -> float | None:
    """Middle value of the sorted samples; mean of the two middles for even counts."""
    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


class LifetimeTotals(BaseModel):
    games_played: int = 0
    wins: int = 0
    words_guessed: int = 0
    words_passed: int = 0
    total_score: int = 0
    max_points_per_game: int = 0


class PlayerLifetimeAggregate(BaseModel):
    """All-time statistics of one player key."""

    schema_version: int = LIFETIME_SCHEMA_VERSION
    player_key: str
    display_name: str
    totals: LifetimeTotals = Field(default_factory=LifetimeTotals)
    per_round_spw_samples: dict[int, list[float]] = Field(default_factory=dict)
    best_round_spw: dict[int, float] = Field(default_factory=dict)
    best_turn_by_round: dict[int, int] = Field(default_factory=dict)
    median_spw_by_round: dict[int, float | None] = Field(default_factory=dict)
    max_passed_per_game: int = 0
    best_win_streak: int = 0
    current_win_streak: int = 0
    last_played_at: datetime | None = None

    def has_spw_samples(self) -> bool:
        return any(self.per_round_spw_samples.values())


def apply_session_totals(
    existing: PlayerLifetimeAggregate | None,
    session: PlayerSessionTotals,
    winners: Iterable[str],
    now: datetime | None = None,
) -> PlayerLifetimeAggregate:
    """
    Fold one finished match into a player's aggregate and return the new aggregate.

    Raises ValueError when no winners are given: a match without winners
    must not touch lifetime statistics.
    """
    winner_set = set(winners)
    if not winner_set:
        raise ValueError("lifetime stats are only updated for matches with winners")

    aggregate = (
        existing.model_copy(deep=True)
        if existing is not None
        else PlayerLifetimeAggregate(player_key=session.player_key, display_name=session.display_name)
    )
    aggregate.display_name = session.display_name

    totals = aggregate.totals
    totals.games_played += 1
    totals.words_guessed += session.words_guessed
    totals.words_passed += session.words_passed
    totals.total_score += session.total_score
    totals.max_points_per_game = max(totals.max_points_per_game, session.total_score)
    aggregate.last_played_at = now or datetime.now(tz=UTC)

    # ties count as wins
    if session.team_id in winner_set:
        totals.wins += 1
        aggregate.current_win_streak += 1
        aggregate.best_win_streak = max(aggregate.best_win_streak, aggregate.current_win_streak)
    else:
        aggregate.current_win_streak = 0

    for round_index, spw in session.spw_by_round.items():
        if spw is None or not math.isfinite(spw):
            continue
        aggregate.per_round_spw_samples.setdefault(round_index, []).append(spw)
        best = aggregate.best_round_spw.get(round_index)
        if best is None or spw < best:
            aggregate.best_round_spw[round_index] = spw

    for round_index, points in session.best_turn_by_round.items():
        best_turn = aggregate.best_turn_by_round.get(round_index)
        if best_turn is None or points > best_turn:
            aggregate.best_turn_by_round[round_index] = points

    aggregate.max_passed_per_game = max(aggregate.max_passed_per_game, session.words_passed)
    aggregate.median_spw_by_round = {r: median(s) for r, s in aggregate.per_round_spw_samples.items()}
    return aggregate
