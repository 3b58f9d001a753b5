"""
Storage module for probe scripts: query, exec against local SQLite files.

Statements go through check_statement before any store is opened; every
failure reaches the script as CapabilityError. Stores may live anywhere on
disk except the data dir of another plugin. An exec that fails on a store it
had to create leaves nothing behind.
"""

import logging
import sqlite3
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace
from typing import Any

from probehost.engines.script.errors import CapabilityError
from probehost.engines.sql import (
    StatementRejected,
    check_statement,
    cursor_to_dicts,
    open_store,
    resolve_store_path,
)

_log = logging.getLogger(__name__)


def _within(path: Path, root: Path) -> bool:
    return path == root or path.is_relative_to(root)


def _missing_dirs(path: Path) -> list[Path]:
    """Ancestors of *path* that do not exist yet, deepest first."""
    missing = []
    parent = path.parent
    while parent != parent.parent and not parent.exists():
        missing.append(parent)
        parent = parent.parent
    return missing


def _discard(store: Path, dirs: list[Path]) -> None:
    try:
        store.unlink(missing_ok=True)
    except OSError as e:
        _log.debug("storage: could not remove %s: %s", store, e)
    for d in dirs:
        try:
            d.rmdir()
        except OSError:
            break


def make_storage_module(
    *,
    plugin_data_dir: Path,
    plugins_data_root: Path,
    check_open: Callable[[], None],
) -> Any:
    """
    Build the `storage` object: query(path, statement) -> rows, exec(path, statement) -> True.
    Both roots must already be resolved absolute paths. check_open() raises once
    the run is disposed.
    """

    def _prepare(path: Any, statement: Any, *, read_only: bool) -> Path:
        check_open()
        try:
            check_statement(statement, read_only=read_only)
        except StatementRejected as e:
            raise CapabilityError(f"storage: {e}") from e
        try:
            store = resolve_store_path(path)
        except (ValueError, OSError) as e:
            raise CapabilityError(f"storage: invalid path: {e}") from e
        if _within(store, plugins_data_root) and not _within(store, plugin_data_dir):
            raise CapabilityError(f"storage: path belongs to another plugin: {path}")
        return store

    def query(path: str, statement: str) -> list[dict[str, Any]]:
        store = _prepare(path, statement, read_only=True)
        try:
            conn = open_store(store, read_only=True)
        except (OSError, sqlite3.Error) as e:
            raise CapabilityError(f"storage: cannot open {store}: {e}") from e
        try:
            cur = conn.execute(statement)
            return cursor_to_dicts(cur)
        except sqlite3.Error as e:
            raise CapabilityError(f"storage: query failed: {e}") from e
        finally:
            conn.close()

    def exec_(path: str, statement: str) -> bool:
        store = _prepare(path, statement, read_only=False)
        created = not store.exists()
        new_dirs = _missing_dirs(store) if created else []
        try:
            store.parent.mkdir(parents=True, exist_ok=True)
            conn = open_store(store, read_only=False)
        except (OSError, sqlite3.Error) as e:
            if created:
                _discard(store, new_dirs)
            raise CapabilityError(f"storage: cannot open {store}: {e}") from e
        try:
            try:
                rowcount = conn.execute(statement).rowcount
            finally:
                conn.close()
        except sqlite3.Error as e:
            if created:
                _discard(store, new_dirs)
            raise CapabilityError(f"storage: exec failed: {e}") from e
        _log.debug("storage exec on %s affected %s rows", store, rowcount)
        return True

    return SimpleNamespace(query=query, exec=exec_)
