"""
RunContext: clock, app paths and host capabilities for exactly one probe run.

A RunContext is created fresh per invocation, handed to the isolate manager and
closed when the run settles. Once closed every capability (except log) raises
CapabilityError, so a script abandoned on timeout cannot keep acting.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import httpx

from .errors import CapabilityError
from .modules import (
    make_fs_module,
    make_http_module,
    make_log_module,
    make_storage_module,
)
from .modules.http import DEFAULT_HTTP_TIMEOUT_MS

_log = logging.getLogger(__name__)

# Per-plugin data dirs live under <app data dir>/plugins_data/<plugin id>
PLUGINS_DATA_DIRNAME = "plugins_data"


@dataclass(frozen=True)
class AppPaths:
    plugin_data_dir: Path
    app_data_dir: Path
    plugins_data_root: Path


class RunContext:
    """
    Per-run state. `now` is fixed at construction; `app_paths` are resolved and
    the plugin data dir is created. to_probe_ctx() builds the object passed to
    probe(ctx).
    """

    def __init__(
        self,
        *,
        plugin_id: str,
        app_data_dir: Path | str,
        app_version: str = "",
        now: datetime | None = None,
        http_timeout_ms: int = DEFAULT_HTTP_TIMEOUT_MS,
        http_allowed_hosts: frozenset[str] | None = None,
        http_block_private: bool = False,
        http_transport: httpx.BaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.plugin_id = plugin_id
        self.app_version = app_version
        self.now = now or datetime.now(timezone.utc)
        self._closed = False
        self._lock = threading.Lock()

        app_root = Path(app_data_dir).expanduser().resolve()
        plugins_root = app_root / PLUGINS_DATA_DIRNAME
        plugin_dir = plugins_root / plugin_id
        plugin_dir.mkdir(parents=True, exist_ok=True)
        self.app_paths = AppPaths(
            plugin_data_dir=plugin_dir,
            app_data_dir=app_root,
            plugins_data_root=plugins_root,
        )

        self.storage = make_storage_module(
            plugin_data_dir=plugin_dir,
            plugins_data_root=plugins_root,
            check_open=self._check_open,
        )
        self.http = make_http_module(
            check_open=self._check_open,
            default_timeout_ms=http_timeout_ms,
            allowed_hosts=http_allowed_hosts,
            block_private=http_block_private,
            transport=http_transport,
        )
        self.fs = make_fs_module(
            plugin_data_dir=plugin_dir,
            app_data_dir=app_root,
            plugins_data_root=plugins_root,
            check_open=self._check_open,
        )
        self.log = make_log_module(plugin_id=plugin_id, logger_instance=logger)

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise CapabilityError("run context disposed")

    def close(self) -> None:
        """Disable capabilities and release the HTTP client. Safe to call repeatedly."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        try:
            self.http.close()
        except Exception as e:
            _log.warning("closing http client for %s failed: %s", self.plugin_id, e)

    def to_probe_ctx(self) -> SimpleNamespace:
        """The `ctx` argument of probe(ctx): plain data plus the capability bridge."""
        return SimpleNamespace(
            plugin_id=self.plugin_id,
            now=self.now,
            now_iso=self.now.isoformat().replace("+00:00", "Z"),
            app=SimpleNamespace(
                plugin_data_dir=str(self.app_paths.plugin_data_dir),
                app_data_dir=str(self.app_paths.app_data_dir),
                version=self.app_version,
            ),
            host=SimpleNamespace(
                storage=self.storage,
                http=self.http,
                fs=self.fs,
                log=self.log,
            ),
        )

