"""Session event log: every domain event of a match, persisted at match end.

Each event is buffered as one JSON line (its model dump plus a ``ts``
timestamp). The first line of a stored log is a version tag. Logs of
abandoned matches are discarded without being written.
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from hat.logic.events import parse_event

if TYPE_CHECKING:
    from hat.logic.events import MatchEvent
    from shared.storage import SessionLogStorage

logger = structlog.get_logger()

SESSION_LOG_VERSION = 1


def parse_session_log(content: str) -> list[MatchEvent]:
    """Rebuild the typed events of a stored log, validating its version tag."""
    lines = [line for line in content.splitlines() if line.strip()]
    if not lines:
        raise ValueError("empty session log")
    header = json.loads(lines[0])
    if header.get("version") != SESSION_LOG_VERSION:
        raise ValueError(f"unsupported session log version {header.get('version')!r}")
    events = []
    for line in lines[1:]:
        payload = json.loads(line)
        payload.pop("ts", None)
        events.append(parse_event(payload))
    return events


class SessionEventLog:
    """Buffers match events per match id and persists them on completion.

    Lifecycle per match:
    1. start_match(match_id) - begin buffering
    2. collect(event) - EventBus subscriber, appends one line per event
    3. save_and_cleanup(match_id) - persist to storage and discard buffer
    4. cleanup_match(match_id) - discard buffer without persisting (abandoned match)
    """

    def __init__(self, storage: SessionLogStorage) -> None:
        self._storage = storage
        self._buffers: dict[str, list[str]] = {}

    def start_match(self, match_id: str) -> None:
        self._buffers[match_id] = []

    def is_tracking(self, match_id: str) -> bool:
        return match_id in self._buffers

    def collect(self, event: MatchEvent) -> None:
        buffer = self._buffers.get(event.match_id)
        if buffer is None:
            return
        payload = {"ts": datetime.now(tz=UTC).isoformat(), **event.model_dump(mode="json")}
        buffer.append(json.dumps(payload, ensure_ascii=False))

    async def save_and_cleanup(self, match_id: str) -> None:
        """Persist the buffered events and discard the buffer.

        File I/O runs in a worker thread. Storage errors are logged and not
        raised: a failed log write must not fail the match completion.
        """
        buffer = self._buffers.pop(match_id, None)
        if buffer is None:
            return

        try:
            version_tag = json.dumps({"version": SESSION_LOG_VERSION})
            content = "\n".join([version_tag, *buffer]) + "\n"
            await asyncio.to_thread(self._storage.save_session_log, match_id, content)
        except (OSError, ValueError):
            logger.exception("failed to save session log", match_id=match_id)

    def cleanup_match(self, match_id: str) -> None:
        """Discard the buffer without persisting (abandoned match)."""
        self._buffers.pop(match_id, None)
