"""
Folds finished matches into lifetime aggregates and rebuilds leaderboards.

Two matches ending for the same player at once must not interleave their
read-modify-write of that player's aggregate. The recorder keeps one
asyncio.Lock per player key and takes every lock a match needs in sorted
key order, so concurrent recordings serialize without deadlocking.
Leaderboard rebuilds run under a separate lock.
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from hat.logic.settings import MatchSettings
from hat.stats.leaderboard import LeaderboardEntry, rebuild_leaderboards
from hat.stats.lifetime import PlayerLifetimeAggregate, apply_session_totals

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable

    from hat.stats.aggregator import PlayerSessionTotals
    from shared.dal import StatsRepository

logger = structlog.get_logger()


class LifetimeStatsRecorder:
    def __init__(self, repository: StatsRepository, round_indices: Iterable[int] | None = None) -> None:
        self._repository = repository
        self._round_indices = tuple(round_indices if round_indices is not None else MatchSettings().round_indices)
        self._key_locks: dict[str, asyncio.Lock] = {}
        # holders and waiters per key; a lock is dropped when this reaches zero
        self._key_users: dict[str, int] = {}
        self._rebuild_lock = asyncio.Lock()

    @property
    def repository(self) -> StatsRepository:
        return self._repository

    @asynccontextmanager
    async def _player_lock(self, player_key: str) -> AsyncIterator[None]:
        lock = self._key_locks.get(player_key)
        if lock is None:
            lock = asyncio.Lock()
            self._key_locks[player_key] = lock
        self._key_users[player_key] = self._key_users.get(player_key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._key_users[player_key] -= 1
            if not self._key_users[player_key]:
                del self._key_users[player_key]
                del self._key_locks[player_key]

    @property
    def held_keys(self) -> list[str]:
        """Player keys that currently have a lock allocated."""
        return sorted(self._key_locks)

    async def record_session(
        self,
        match_id: str,
        players: list[PlayerSessionTotals],
        winners: list[str],
    ) -> list[PlayerLifetimeAggregate]:
        """
        Update every player's lifetime aggregate, then rebuild all leaderboards.

        A match without winners leaves lifetime data untouched and returns an
        empty list.
        """
        if not winners:
            logger.info("lifetime update skipped, no winners", match_id=match_id)
            return []

        now = datetime.now(tz=UTC)
        ordered = sorted(players, key=lambda p: p.player_key)
        updated: list[PlayerLifetimeAggregate] = []
        async with AsyncExitStack() as stack:
            for key in sorted({p.player_key for p in ordered}):
                await stack.enter_async_context(self._player_lock(key))
            for session in ordered:
                existing = await self._repository.read_player_aggregate(session.player_key)
                aggregate = apply_session_totals(existing, session, winners, now=now)
                await self._repository.write_player_aggregate(session.player_key, aggregate)
                updated.append(aggregate)

        logger.info("lifetime stats updated", match_id=match_id, players=len(updated), winners=winners)
        await self.rebuild_leaderboards()
        return updated

    async def rebuild_leaderboards(self) -> dict[str, list[LeaderboardEntry]]:
        """Recompute and store every leaderboard from all stored aggregates."""
        async with self._rebuild_lock:
            aggregates = await self._repository.list_player_aggregates()
            rounds = set(self._round_indices)
            for aggregate in aggregates:
                rounds.update(aggregate.per_round_spw_samples)
                rounds.update(aggregate.best_turn_by_round)
            boards = rebuild_leaderboards(aggregates, sorted(rounds))
            for metric, entries in boards.items():
                await self._repository.write_leaderboard(metric, entries)
        logger.info("leaderboards rebuilt", players=len(aggregates), boards=len(boards))
        return boards
