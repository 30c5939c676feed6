"""Storage abstraction for session event logs.

A session log is the gzip-compressed NDJSON record of every domain event of
one finished match. Files are written with owner-only permissions (0o600)
inside an owner-only directory (0o700).
"""

import contextlib
import gzip
import os
import tempfile
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()

_LOG_DIR_MODE = 0o700
_LOG_FILE_MODE = 0o600

SESSION_LOG_SUFFIX = ".ndjson.gz"


class SessionLogStorage(Protocol):
    """Protocol for persisting session logs."""

    def save_session_log(self, match_id: str, content: str) -> None: ...


class LocalSessionLogStorage:
    """Writes gzip-compressed session logs to the local filesystem."""

    def __init__(self, log_dir: str | Path) -> None:
        self._log_dir = Path(log_dir).resolve()

    def path_for(self, match_id: str) -> Path:
        """Resolve the log file of a match, rejecting ids that escape the log directory."""
        target = (self._log_dir / f"{match_id}{SESSION_LOG_SUFFIX}").resolve()
        if not target.is_relative_to(self._log_dir):
            raise ValueError(f"Path traversal rejected: '{match_id}' resolves outside session log directory")
        return target

    def save_session_log(self, match_id: str, content: str) -> None:
        """Save gzip-compressed log content atomically.

        Creates the directory lazily on first write. Writes via
        temp-file-then-rename so a crash never leaves a truncated log.
        """
        target = self.path_for(match_id)

        self._log_dir.mkdir(mode=_LOG_DIR_MODE, parents=True, exist_ok=True)
        self._log_dir.chmod(_LOG_DIR_MODE)

        compressed = gzip.compress(content.encode("utf-8"))

        fd, tmp_path = tempfile.mkstemp(dir=str(self._log_dir), suffix=".tmp", prefix=".session_")
        fd_owned = True
        try:
            with os.fdopen(fd, "wb") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(compressed)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _LOG_FILE_MODE)  # noqa: PTH101
            Path(tmp_path).replace(target)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
        logger.info("saved session log", match_id=match_id, path=str(target))

    def load_session_log(self, match_id: str) -> str:
        """Return the decompressed NDJSON text of a stored log."""
        return gzip.decompress(self.path_for(match_id).read_bytes()).decode("utf-8")
