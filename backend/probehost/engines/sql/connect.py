"""
SQLite connections for the storage capability.

Stores are plain SQLite files owned by other applications (or by the plugin
itself). Reads open the file read-only through a ``file:`` URI so a query can
never create or modify a store.
"""

import sqlite3
from pathlib import Path
from typing import Any

# Seconds to wait on a locked store before failing
BUSY_TIMEOUT_SECONDS = 5.0


def resolve_store_path(path: object) -> Path:
    """Expand ``~`` and make *path* absolute. Raises ValueError on malformed input."""
    if not isinstance(path, str) or not path.strip():
        raise ValueError("store path must be a non-empty string")
    if "\x00" in path:
        raise ValueError("store path contains a NUL byte")
    if path.strip() == ":memory:":
        raise ValueError("in-memory stores are not supported")
    return Path(path.strip()).expanduser().resolve()


def open_store(
    path: Path, *, read_only: bool, timeout: float = BUSY_TIMEOUT_SECONDS
) -> sqlite3.Connection:
    """
    Open the SQLite file at *path*. Read-only connections require the file to
    exist; writable ones create it when missing.
    """
    if read_only:
        if not path.is_file():
            raise FileNotFoundError(f"store not found: {path}")
        uri = f"{path.as_uri()}?mode=ro"
    else:
        uri = f"{path.as_uri()}?mode=rwc"
    return sqlite3.connect(uri, uri=True, timeout=timeout, isolation_level=None)


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor result to list of dicts."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]
