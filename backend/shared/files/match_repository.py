"""File-backed match repository storing one JSON file per match."""

import asyncio
from pathlib import Path

import structlog

from hat.logic.snapshot import MatchRecord
from shared.dal import MatchRepository
from shared.files.atomic import resolve_inside, write_atomic

logger = structlog.get_logger()


class FileMatchRepository(MatchRepository):
    """File-backed match repository.

    Each match is written to ``<directory>/<match_id>.json``. Uses an
    asyncio.Lock for write safety within a single process; multiple
    processes sharing the directory would race.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        self._lock = asyncio.Lock()

    def _path(self, match_id: str) -> Path:
        return resolve_inside(self._directory, f"{match_id}.json")

    async def save(self, record: MatchRecord) -> None:
        target = self._path(record.match_id)
        content = record.model_dump_json(indent=2).encode("utf-8")
        async with self._lock:
            write_atomic(target, content, prefix=".match_")
        logger.debug("match saved", match_id=record.match_id, path=str(target))

    async def load(self, match_id: str) -> MatchRecord | None:
        """Return the stored record, or None when the match was never saved.

        Raises OSError for a file that exists but cannot be read or parsed.
        """
        target = self._path(match_id)
        if not target.exists():
            return None
        try:
            return MatchRecord.model_validate_json(target.read_text(encoding="utf-8"))
        except (ValueError, OSError) as exc:
            msg = f"Failed to load match from {target}"
            raise OSError(msg) from exc

    async def delete(self, match_id: str) -> None:
        target = self._path(match_id)
        async with self._lock:
            target.unlink(missing_ok=True)
