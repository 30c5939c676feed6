"""Abstract interface for match persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hat.logic.snapshot import MatchRecord


class MatchRepository(ABC):
    """Abstract interface for match persistence.

    Stores the versioned MatchRecord of each match under its match id.
    """

    @abstractmethod
    async def save(self, record: MatchRecord) -> None: ...

    @abstractmethod
    async def load(self, match_id: str) -> MatchRecord | None: ...

    @abstractmethod
    async def delete(self, match_id: str) -> None: ...
