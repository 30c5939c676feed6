import pytest

from hat.logic.service import HatGameService
from hat.session.event_log import SessionEventLog
from hat.stats.recorder import LifetimeStatsRecorder
from hat.tests.helpers import FakeClock, NoShuffleRandom, ordered_source
from shared.files import InMemoryMatchRepository, InMemoryStatsRepository


class FakeSessionLogStorage:
    """In-memory storage for session log persistence."""

    def __init__(self) -> None:
        self.saved: dict[str, str] = {}

    def save_session_log(self, match_id: str, content: str) -> None:
        self.saved[match_id] = content


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stats_repository() -> InMemoryStatsRepository:
    return InMemoryStatsRepository()


@pytest.fixture
def match_repository() -> InMemoryMatchRepository:
    return InMemoryMatchRepository()


@pytest.fixture
def log_storage() -> FakeSessionLogStorage:
    return FakeSessionLogStorage()


@pytest.fixture
def service(clock, stats_repository, match_repository, log_storage) -> HatGameService:
    return HatGameService(
        word_source=ordered_source(["A", "B", "C"]),
        match_repository=match_repository,
        recorder=LifetimeStatsRecorder(stats_repository),
        event_log=SessionEventLog(log_storage),
        clock=clock,
        rng_factory=lambda _seed: NoShuffleRandom(),
    )
