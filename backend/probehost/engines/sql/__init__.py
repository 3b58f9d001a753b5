"""
SQL helpers for the storage capability: statement guard and SQLite access.
"""

from probehost.engines.sql.connect import cursor_to_dicts, open_store, resolve_store_path
from probehost.engines.sql.safety import StatementRejected, check_statement

__all__ = [
    "check_statement",
    "StatementRejected",
    "cursor_to_dicts",
    "open_store",
    "resolve_store_path",
]
