"""In-memory repositories for tests and single-process deployments."""

from hat.logic.snapshot import MatchRecord
from hat.stats.leaderboard import LeaderboardEntry
from hat.stats.lifetime import PlayerLifetimeAggregate
from shared.dal import MatchRepository, StatsRepository


class InMemoryMatchRepository(MatchRepository):
    """Keeps copies of saved records so later mutation cannot leak in."""

    def __init__(self) -> None:
        self._records: dict[str, MatchRecord] = {}

    async def save(self, record: MatchRecord) -> None:
        self._records[record.match_id] = record.model_copy(deep=True)

    async def load(self, match_id: str) -> MatchRecord | None:
        record = self._records.get(match_id)
        return record.model_copy(deep=True) if record is not None else None

    async def delete(self, match_id: str) -> None:
        self._records.pop(match_id, None)


class InMemoryStatsRepository(StatsRepository):
    def __init__(self) -> None:
        self._aggregates: dict[str, PlayerLifetimeAggregate] = {}
        self._leaderboards: dict[str, list[LeaderboardEntry]] = {}

    async def read_player_aggregate(self, player_key: str) -> PlayerLifetimeAggregate | None:
        aggregate = self._aggregates.get(player_key)
        return aggregate.model_copy(deep=True) if aggregate is not None else None

    async def write_player_aggregate(self, player_key: str, aggregate: PlayerLifetimeAggregate) -> None:
        self._aggregates[player_key] = aggregate.model_copy(deep=True)

    async def list_player_aggregates(self) -> list[PlayerLifetimeAggregate]:
        return [self._aggregates[k].model_copy(deep=True) for k in sorted(self._aggregates)]

    async def read_leaderboard(self, metric: str) -> list[LeaderboardEntry]:
        return list(self._leaderboards.get(metric, []))

    async def write_leaderboard(self, metric: str, entries: list[LeaderboardEntry]) -> None:
        self._leaderboards[metric] = list(entries)
