"""Reference repository adapters: JSON files on disk and in-memory dicts."""

from shared.files.match_repository import FileMatchRepository
from shared.files.memory import InMemoryMatchRepository, InMemoryStatsRepository
from shared.files.stats_repository import FileStatsRepository

__all__ = [
    "FileMatchRepository",
    "FileStatsRepository",
    "InMemoryMatchRepository",
    "InMemoryStatsRepository",
]
