"""
Health-check helpers for liveness and readiness probes.

Liveness:  is the process alive and not deadlocked?  (cheap, no I/O)
Readiness: can it run probes?  (plugins dir readable, app data dir writable)
"""

import logging
import os

from probehost.core.config import settings

logger = logging.getLogger(__name__)


def check_plugins_dir() -> bool:
    """Plugins dir exists and is listable."""
    path = settings.PLUGINS_DIR
    return path.is_dir() and os.access(path, os.R_OK | os.X_OK)


def check_app_data_dir() -> bool:
    """App data dir exists (or can be created) and is writable."""
    path = settings.app_data_path
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        logger.warning("App data dir %s cannot be created", path, exc_info=True)
        return False
    return os.access(path, os.W_OK)


def liveness_check() -> tuple[bool, list[str]]:
    """
    Lightweight liveness probe, just confirms the Python process is responsive.
    No I/O.  Return format matches readiness_check for consistency.
    """
    return (True, [])


def readiness_check() -> tuple[bool, list[str]]:
    """
    Returns (ok, list of failure messages). ok is False if any check fails.
    """
    failures: list[str] = []

    if not check_plugins_dir():
        failures.append("plugins_dir")

    if not check_app_data_dir():
        failures.append("app_data_dir")

    return (len(failures) == 0, failures)
