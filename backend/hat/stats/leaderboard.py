"""
Leaderboard recomputation from the full set of lifetime aggregates.

Boards are never patched incrementally: each rebuild sorts every aggregate
again. Every board breaks ties by player key ascending so that the order is
stable between rebuilds. Speed boards (seconds per word, lower is better)
leave out players without a sample.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from hat.logic.enums import LeaderboardKind
from hat.stats.lifetime import median

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from hat.stats.lifetime import PlayerLifetimeAggregate

logger = structlog.get_logger()


class LeaderboardEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    rank: int
    player_key: str
    display_name: str
    value: float
    # words guessed, reported on the overall speed board
    guessed: int | None = None


def metric_names(round_indices: Iterable[int]) -> list[str]:
    """Every leaderboard metric name for the given rounds."""
    rounds = list(round_indices)
    names: list[str] = []
    for kind in LeaderboardKind:
        if kind.is_per_round:
            names.extend(kind.metric_name(r) for r in rounds)
        else:
            names.append(kind.metric_name())
    return names


def _ranked(rows: list[tuple[str, str, float, int | None]]) -> list[LeaderboardEntry]:
    return [
        LeaderboardEntry(rank=i, player_key=key, display_name=name, value=value, guessed=guessed)
        for i, (key, name, value, guessed) in enumerate(rows, start=1)
    ]


def _board(
    aggregates: list[PlayerLifetimeAggregate],
    value_of: Callable[[PlayerLifetimeAggregate], float | None],
    *,
    descending: bool,
) -> list[LeaderboardEntry]:
    rows = []
    for agg in aggregates:
        value = value_of(agg)
        if value is None:
            continue
        rows.append((agg.player_key, agg.display_name, value, None))
    sign = -1 if descending else 1
    rows.sort(key=lambda row: (sign * row[2], row[0]))
    return _ranked(rows)


def overall_spw(aggregate: PlayerLifetimeAggregate) -> float | None:
    """Median of the player's per-round median SPW values."""
    values = [v for v in aggregate.median_spw_by_round.values() if v is not None]
    return median(values)


def _spw_all_board(aggregates: list[PlayerLifetimeAggregate]) -> list[LeaderboardEntry]:
    rows = []
    for agg in aggregates:
        value = overall_spw(agg)
        if value is None:
            continue
        rows.append((agg.player_key, agg.display_name, value, agg.totals.words_guessed))
    rows.sort(key=lambda row: (row[2], -row[3], row[0]))
    return _ranked(rows)


def rebuild_leaderboards(
    aggregates: Iterable[PlayerLifetimeAggregate],
    round_indices: Iterable[int],
) -> dict[str, list[LeaderboardEntry]]:
    """Recompute every leaderboard; returns metric name -> ranked entries."""
    players = list(aggregates)
    rounds = list(round_indices)

    boards: dict[str, list[LeaderboardEntry]] = {
        LeaderboardKind.SPW_ALL.metric_name(): _spw_all_board(players),
        LeaderboardKind.BEST_STREAK.metric_name(): _board(players, lambda a: a.best_win_streak, descending=True),
        LeaderboardKind.MAX_POINTS_PER_GAME.metric_name(): _board(
            players, lambda a: a.totals.max_points_per_game, descending=True
        ),
        LeaderboardKind.MAX_PASSED_PER_GAME.metric_name(): _board(
            players, lambda a: a.max_passed_per_game, descending=True
        ),
    }
    for r in rounds:
        boards[LeaderboardKind.SPW_ROUND.metric_name(r)] = _board(
            players, lambda a, r=r: a.median_spw_by_round.get(r), descending=False
        )
        boards[LeaderboardKind.BEST_ROUND_SPW.metric_name(r)] = _board(
            players, lambda a, r=r: a.best_round_spw.get(r), descending=False
        )
        boards[LeaderboardKind.BEST_TURN_ROUND.metric_name(r)] = _board(
            players, lambda a, r=r: a.best_turn_by_round.get(r, 0), descending=True
        )

    logger.debug("leaderboards computed", players=len(players), boards=len(boards))
    return boards
