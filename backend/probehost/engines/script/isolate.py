"""
Isolate manager: one fresh, disposable script context per run.

create_context() compiles the script, executes the module body in brand-new
restricted globals and locates the ``probe`` entry point. Nothing is cached
between runs, so module-level state in a script starts over every time.
dispose() clears the globals and closes the run's capabilities; it is
idempotent and must be reached on every exit path.
"""

import logging
import re
import threading
from dataclasses import dataclass
from typing import Any

from .context import RunContext
from .errors import ScriptLoadError
from .sandbox import build_restricted_globals, compile_script

_log = logging.getLogger(__name__)

PROBE_ENTRY_POINT = "probe"

# Plugin ids double as directory names
_PLUGIN_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,63}$")


def is_valid_plugin_id(plugin_id: object) -> bool:
    return (
        isinstance(plugin_id, str)
        and bool(_PLUGIN_ID_RE.match(plugin_id))
        and ".." not in plugin_id
    )


@dataclass(frozen=True)
class PluginDescriptor:
    """What the runtime needs to run one plugin: its id and script source."""

    id: str
    script: str
    name: str = ""

    def __post_init__(self) -> None:
        if not is_valid_plugin_id(self.id):
            raise ValueError(f"invalid plugin id: {self.id!r}")

    @property
    def display_name(self) -> str:
        return self.name or self.id


class IsolateHandle:
    """A loaded script bound to one RunContext."""

    __slots__ = ("_disposed", "_globals", "_lock", "_probe", "plugin_id", "run_context")

    def __init__(
        self,
        *,
        plugin_id: str,
        probe: Any,
        script_globals: dict[str, Any],
        run_context: RunContext,
    ) -> None:
        self.plugin_id = plugin_id
        self.run_context = run_context
        self._probe = probe
        self._globals = script_globals
        self._disposed = False
        self._lock = threading.Lock()

    @property
    def disposed(self) -> bool:
        return self._disposed

    def invoke(self) -> Any:
        """Call probe(ctx) with a freshly built ctx."""
        if self._disposed:
            raise RuntimeError(f"isolate for {self.plugin_id} already disposed")
        return self._probe(self.run_context.to_probe_ctx())


class IsolateManager:
    """Builds and tears down per-run script contexts."""

    def create_context(
        self, descriptor: PluginDescriptor, run_context: RunContext
    ) -> IsolateHandle:
        """
        Load descriptor.script into fresh restricted globals and return a handle.
        Raises ScriptLoadError when the script does not compile, raises while
        loading, or does not define a callable probe().
        """
        filename = f"<plugin:{descriptor.id}>"
        try:
            code = compile_script(descriptor.script, filename=filename)
        except SyntaxError as e:
            raise ScriptLoadError(f"script does not compile: {e}") from e

        g = build_restricted_globals({})
        try:
            exec(code, g)  # noqa: S102 - restricted environment
        except Exception as e:
            g.clear()
            raise ScriptLoadError(
                f"script failed to load: {type(e).__name__}: {e}"
            ) from e

        entry = g.get(PROBE_ENTRY_POINT)
        if not callable(entry):
            g.clear()
            raise ScriptLoadError(
                f"script does not define a {PROBE_ENTRY_POINT}(ctx) function"
            )
        return IsolateHandle(
            plugin_id=descriptor.id,
            probe=entry,
            script_globals=g,
            run_context=run_context,
        )

    def dispose(self, handle: IsolateHandle) -> None:
        """Release everything tied to *handle*. Later calls are no-ops."""
        with handle._lock:
            if handle._disposed:
                return
            handle._disposed = True
        handle._globals.clear()
        handle._probe = None
        handle.run_context.close()
        _log.debug("disposed isolate for %s", handle.plugin_id)
