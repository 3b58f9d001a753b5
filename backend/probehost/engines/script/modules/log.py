"""
Log module for probe scripts: debug, info, warn, error.

Best effort: a log call never raises into the script, also after the run is
disposed.
"""

import logging
from types import SimpleNamespace
from typing import Any

logger = logging.getLogger(__name__)

MAX_MESSAGE_CHARS = 2000


def _as_text(message: Any) -> str:
    try:
        text = message if isinstance(message, str) else repr(message)
    except Exception:
        text = f"<unprintable {type(message).__name__}>"
    if len(text) > MAX_MESSAGE_CHARS:
        text = text[:MAX_MESSAGE_CHARS] + "..."
    return text


def make_log_module(
    *,
    plugin_id: str,
    logger_instance: logging.Logger | None = None,
) -> Any:
    """Build the `log` object. Messages are tagged with the plugin id."""
    log = logger_instance or logger

    def _log(level: int, message: Any) -> None:
        try:
            log.log(level, "[%s] %s", plugin_id, _as_text(message), extra={"plugin_id": plugin_id})
        except Exception:
            pass

    def debug(message: Any) -> None:
        _log(logging.DEBUG, message)

    def info(message: Any) -> None:
        _log(logging.INFO, message)

    def warn(message: Any) -> None:
        _log(logging.WARNING, message)

    def error(message: Any) -> None:
        _log(logging.ERROR, message)

    return SimpleNamespace(debug=debug, info=info, warn=warn, error=error)
