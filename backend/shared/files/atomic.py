"""Atomic owner-only file writes shared by the JSON file repositories."""

import contextlib
import os
import tempfile
from pathlib import Path

FILE_PERMISSIONS = 0o600  # owner read/write only


def write_atomic(target: Path, content: bytes, prefix: str) -> None:
    """Write content to target via temp-file-then-rename.

    Readers never see a partial file. The parent directory is created on
    demand; the file gets owner-only permissions.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=target.parent, prefix=prefix, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fchmod(f.fileno(), FILE_PERMISSIONS)
        Path(tmp_path).replace(target)
    except BaseException:
        with contextlib.suppress(OSError):
            Path(tmp_path).unlink()
        raise


def resolve_inside(root: Path, name: str) -> Path:
    """Return root/name, rejecting names that escape root."""
    target = (root / name).resolve()
    if not target.is_relative_to(root.resolve()):
        raise ValueError(f"Path traversal rejected: '{name}' resolves outside {root}")
    return target
