"""
Statement guard for the storage capability.

Plugins hand raw SQL to ``storage.query`` / ``storage.exec``. Before a store is
opened the statement is classified by its leading keyword:

- sqlite3 shell meta-commands (``.schema``, ``.tables``, ...) are rejected,
- administrative / schema-mutating statements (ATTACH, PRAGMA, CREATE, ...)
  are rejected,
- ``query`` additionally accepts only SELECT / WITH statements.

Usage::

    check_statement("SELECT value FROM ItemTable", read_only=True)
"""

import re

BLOCKED_KEYWORDS = frozenset({
    "ALTER",
    "ANALYZE",
    "ATTACH",
    "CREATE",
    "DETACH",
    "DROP",
    "PRAGMA",
    "REINDEX",
    "VACUUM",
})

READ_KEYWORDS = frozenset({"SELECT", "WITH"})

# Leading whitespace plus any number of -- line or /* block */ comments
_LEADING_NOISE = re.compile(r"\A(?:\s+|--[^\n]*(?:\n|\Z)|/\*.*?\*/)*", re.DOTALL)
_KEYWORD = re.compile(r"[A-Za-z]+")


class StatementRejected(ValueError):
    """Raised when a statement is not allowed through the storage capability."""

    pass


def strip_leading_noise(statement: str) -> str:
    """Drop leading whitespace and SQL comments."""
    return _LEADING_NOISE.sub("", statement, count=1)


def leading_keyword(statement: str) -> str:
    """Upper-cased first keyword of *statement*, or "" when there is none."""
    m = _KEYWORD.match(strip_leading_noise(statement))
    return m.group(0).upper() if m else ""


def check_statement(statement: object, *, read_only: bool) -> str:
    """
    Validate *statement* and return it unchanged. Raises StatementRejected when
    it is empty, a meta-command, administrative, or (read_only) not a read.
    """
    if not isinstance(statement, str):
        raise StatementRejected("statement must be a string")
    body = strip_leading_noise(statement)
    if not body.strip():
        raise StatementRejected("statement is empty")
    if body.startswith("."):
        command = body.split(None, 1)[0]
        raise StatementRejected(f"meta-command '{command}' is not allowed")
    keyword = leading_keyword(body)
    if not keyword:
        raise StatementRejected("statement has no leading keyword")
    if keyword in BLOCKED_KEYWORDS:
        raise StatementRejected(f"{keyword} statements are not allowed")
    if read_only and keyword not in READ_KEYWORDS:
        raise StatementRejected(
            f"{keyword} is not a read-only statement; use exec for writes"
        )
    return statement
