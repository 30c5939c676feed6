"""Wiring of a HatGameService from HatSettings."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from hat.app.settings import HatSettings
from hat.logic.service import HatGameService
from hat.logic.words import CsvWordSource
from hat.session.event_log import SessionEventLog
from hat.stats.recorder import LifetimeStatsRecorder
from shared.files import FileMatchRepository, FileStatsRepository, InMemoryMatchRepository, InMemoryStatsRepository
from shared.logging import setup_logging
from shared.storage import LocalSessionLogStorage

if TYPE_CHECKING:
    from hat.logic.words import WordSource
    from shared.dal import MatchRepository, StatsRepository

logger = structlog.get_logger()


def configure_logging(settings: HatSettings) -> Path | None:
    """Set up logging with the configured log directory; returns the log file path."""
    return setup_logging(log_dir=settings.log_dir)


def create_repositories(settings: HatSettings) -> tuple[MatchRepository, StatsRepository]:
    if settings.storage_backend == "memory":
        return InMemoryMatchRepository(), InMemoryStatsRepository()
    data_dir = Path(settings.data_dir)
    return FileMatchRepository(data_dir / "matches"), FileStatsRepository(data_dir / "stats")


def create_recorder(settings: HatSettings, stats_repository: StatsRepository) -> LifetimeStatsRecorder:
    return LifetimeStatsRecorder(stats_repository, round_indices=range(settings.last_round_index + 1))


def create_service(
    settings: HatSettings | None = None,
    *,
    word_source: WordSource | None = None,
) -> HatGameService:
    """
    Build a service with repositories, recorder and session log from settings.

    The CSV dictionary at ``settings.words_file`` is loaded unless a word
    source is passed in.
    """
    settings = settings or HatSettings()
    match_repository, stats_repository = create_repositories(settings)
    source = word_source if word_source is not None else CsvWordSource(settings.words_file)
    event_log = SessionEventLog(LocalSessionLogStorage(settings.session_log_dir))

    logger.info(
        "hat service configured",
        storage_backend=settings.storage_backend,
        data_dir=settings.data_dir,
    )
    return HatGameService(
        word_source=source,
        match_repository=match_repository,
        recorder=create_recorder(settings, stats_repository),
        event_log=event_log,
    )
