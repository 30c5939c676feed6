"""Abstract interface for lifetime statistics and leaderboard persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hat.stats.leaderboard import LeaderboardEntry
    from hat.stats.lifetime import PlayerLifetimeAggregate


class StatsRepository(ABC):
    """Abstract interface for per-player aggregates and computed leaderboards.

    Callers serialize read-modify-write cycles per player key; implementations
    only need to make each single write atomic.
    """

    @abstractmethod
    async def read_player_aggregate(self, player_key: str) -> PlayerLifetimeAggregate | None: ...

    @abstractmethod
    async def write_player_aggregate(self, player_key: str, aggregate: PlayerLifetimeAggregate) -> None: ...

    @abstractmethod
    async def list_player_aggregates(self) -> list[PlayerLifetimeAggregate]: ...

    @abstractmethod
    async def read_leaderboard(self, metric: str) -> list[LeaderboardEntry]: ...

    @abstractmethod
    async def write_leaderboard(self, metric: str, entries: list[LeaderboardEntry]) -> None: ...
