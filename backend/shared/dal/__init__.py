"""Data access layer: repository interfaces for matches and statistics."""

from shared.dal.match_repository import MatchRepository
from shared.dal.stats_repository import StatsRepository

__all__ = [
    "MatchRepository",
    "StatsRepository",
]
