"""File-backed lifetime statistics repository.

Layout under the base directory::

    players/<quoted player key>.json
    leaderboards/<metric>.json
"""

import asyncio
from pathlib import Path
from urllib.parse import quote

import structlog
from pydantic import TypeAdapter

from hat.stats.leaderboard import LeaderboardEntry
from hat.stats.lifetime import PlayerLifetimeAggregate
from shared.dal import StatsRepository
from shared.files.atomic import resolve_inside, write_atomic

logger = structlog.get_logger()

_ENTRIES_ADAPTER = TypeAdapter(list[LeaderboardEntry])


class FileStatsRepository(StatsRepository):
    """Stores each player aggregate and each leaderboard as its own JSON file.

    Player keys contain characters such as ``:`` and are percent-quoted to
    form file names. Unreadable or corrupt files raise OSError instead of
    being treated as missing, so a later write never clobbers data that
    could not be read.
    """

    def __init__(self, base_dir: str | Path) -> None:
        self._base_dir = Path(base_dir)
        self._players_dir = self._base_dir / "players"
        self._leaderboards_dir = self._base_dir / "leaderboards"
        self._lock = asyncio.Lock()

    def _player_path(self, player_key: str) -> Path:
        return resolve_inside(self._players_dir, f"{quote(player_key, safe='')}.json")

    def _leaderboard_path(self, metric: str) -> Path:
        return resolve_inside(self._leaderboards_dir, f"{metric}.json")

    @staticmethod
    def _load_aggregate(path: Path) -> PlayerLifetimeAggregate:
        try:
            return PlayerLifetimeAggregate.model_validate_json(path.read_text(encoding="utf-8"))
        except (ValueError, OSError) as exc:
            msg = f"Failed to load player stats from {path}"
            raise OSError(msg) from exc

    async def read_player_aggregate(self, player_key: str) -> PlayerLifetimeAggregate | None:
        path = self._player_path(player_key)
        if not path.exists():
            return None
        return self._load_aggregate(path)

    async def write_player_aggregate(self, player_key: str, aggregate: PlayerLifetimeAggregate) -> None:
        path = self._player_path(player_key)
        async with self._lock:
            write_atomic(path, aggregate.model_dump_json(indent=2).encode("utf-8"), prefix=".player_")

    async def list_player_aggregates(self) -> list[PlayerLifetimeAggregate]:
        if not self._players_dir.is_dir():
            return []
        return [self._load_aggregate(path) for path in sorted(self._players_dir.glob("*.json"))]

    async def read_leaderboard(self, metric: str) -> list[LeaderboardEntry]:
        """Return the stored board; a metric never written yields an empty list."""
        path = self._leaderboard_path(metric)
        if not path.exists():
            return []
        try:
            return _ENTRIES_ADAPTER.validate_json(path.read_text(encoding="utf-8"))
        except (ValueError, OSError) as exc:
            msg = f"Failed to load leaderboard from {path}"
            raise OSError(msg) from exc

    async def write_leaderboard(self, metric: str, entries: list[LeaderboardEntry]) -> None:
        path = self._leaderboard_path(metric)
        content = _ENTRIES_ADAPTER.dump_json(entries, indent=2)
        async with self._lock:
            write_atomic(path, content, prefix=".leaderboard_")
        logger.debug("leaderboard written", metric=metric, entries=len(entries))
