"""
Probe runtime: the caller-facing entry point of the plugin host.

run_probe(descriptor, timeout_ms) -> RunOk(output) | RunError(kind, detail)

Builds a fresh RunContext, lets the ExecutionSupervisor run the script under
the deadline, then validates a settled value. Every failure is converted into
a RunError here; nothing from one run propagates to the caller or to other
runs. run_batch() runs several plugins concurrently.
"""

import logging
import time
import uuid
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import httpx

from probehost.core.config import settings
from probehost.engines.output import (
    BadgeLine,
    Output,
    ValidationFailure,
    validate_output,
)
from probehost.engines.script import (
    ExecutionSupervisor,
    LoadFailed,
    PluginDescriptor,
    RunContext,
    ThrownError,
    Timeout,
    Value,
)

_log = logging.getLogger(__name__)

ERROR_BADGE_LABEL = "Error"
ERROR_BADGE_COLOR = "#ef4444"


class ErrorKind(str, Enum):
    LOAD_ERROR = "LoadError"
    THROWN_ERROR = "ThrownError"
    TIMEOUT = "Timeout"
    NON_OBJECT_RETURN = "NonObjectReturn"
    MISSING_LINES = "MissingLines"
    UNKNOWN_LINE_TYPE = "UnknownLineType"


# Short, stable strings for display; raw details go to logs and API detail fields
DIAGNOSTICS: dict[ErrorKind, str] = {
    ErrorKind.LOAD_ERROR: "probe() failed",
    ErrorKind.THROWN_ERROR: "probe() failed",
    ErrorKind.TIMEOUT: "probe() failed",
    ErrorKind.NON_OBJECT_RETURN: "invalid output: expected an object",
    ErrorKind.MISSING_LINES: "invalid output: missing lines",
    ErrorKind.UNKNOWN_LINE_TYPE: "invalid output: unknown line type",
}


@dataclass(frozen=True)
class RunOk:
    output: Output
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class RunError:
    kind: ErrorKind
    detail: str
    ok: bool = field(default=False, init=False)

    @property
    def diagnostic(self) -> str:
        return DIAGNOSTICS[self.kind]

    def as_output(self) -> Output:
        """Single error badge, the way a failed plugin is shown."""
        return Output(
            lines=[
                BadgeLine(label=ERROR_BADGE_LABEL, text=self.diagnostic, color=ERROR_BADGE_COLOR)
            ]
        )


RunResult = RunOk | RunError


@dataclass(frozen=True)
class ProbeRunRecord:
    plugin_id: str
    display_name: str
    result: RunResult
    elapsed_ms: int


@dataclass(frozen=True)
class ProbeBatch:
    batch_id: str
    results: list[ProbeRunRecord]

    @property
    def plugin_ids(self) -> list[str]:
        return [r.plugin_id for r in self.results]


def normalize_batch_id(batch_id: str | None) -> str:
    """Trimmed batch id, or a new uuid4 when blank."""
    trimmed = (batch_id or "").strip()
    return trimmed or str(uuid.uuid4())


class ProbeRuntime:
    """
    Runs probes with per-run isolation. Defaults come from settings; tests pass
    their own app_data_dir and an httpx transport.
    """

    def __init__(
        self,
        *,
        app_data_dir: Path | str | None = None,
        app_version: str | None = None,
        default_timeout_ms: int | None = None,
        http_timeout_ms: int | None = None,
        http_allowed_hosts: frozenset[str] | None = None,
        http_block_private: bool | None = None,
        http_transport: httpx.BaseTransport | None = None,
        max_workers: int | None = None,
        supervisor: ExecutionSupervisor | None = None,
    ) -> None:
        self.app_data_dir = Path(
            app_data_dir if app_data_dir is not None else settings.app_data_path
        )
        self.app_version = app_version if app_version is not None else settings.APP_VERSION
        self.default_timeout_ms = default_timeout_ms or settings.PROBE_TIMEOUT_MS
        self._http_timeout_ms = http_timeout_ms or settings.PROBE_HTTP_TIMEOUT_MS
        self._http_allowed_hosts = (
            http_allowed_hosts if http_allowed_hosts is not None else settings.http_allowed_hosts
        )
        self._http_block_private = (
            http_block_private
            if http_block_private is not None
            else settings.PROBE_HTTP_BLOCK_PRIVATE_NETWORKS
        )
        self._http_transport = http_transport
        self._max_workers = max_workers or settings.PROBE_BATCH_MAX_WORKERS
        self._supervisor = supervisor or ExecutionSupervisor()

    def _new_run_context(self, descriptor: PluginDescriptor) -> RunContext:
        return RunContext(
            plugin_id=descriptor.id,
            app_data_dir=self.app_data_dir,
            app_version=self.app_version,
            http_timeout_ms=self._http_timeout_ms,
            http_allowed_hosts=self._http_allowed_hosts,
            http_block_private=self._http_block_private,
            http_transport=self._http_transport,
        )

    def run_probe(
        self, descriptor: PluginDescriptor, timeout_ms: int | None = None
    ) -> RunResult:
        """Run one probe and return its validated output or a classified error."""
        timeout = timeout_ms if timeout_ms is not None else self.default_timeout_ms
        if timeout <= 0:
            raise ValueError("timeout_ms must be positive")

        try:
            run_context = self._new_run_context(descriptor)
        except OSError as e:
            _log.error("probe %s: cannot prepare plugin data dir: %s", descriptor.id, e)
            return RunError(ErrorKind.LOAD_ERROR, f"cannot prepare plugin data dir: {e}")

        settlement = self._supervisor.run(descriptor, run_context, timeout)

        if isinstance(settlement, LoadFailed):
            result: RunResult = RunError(ErrorKind.LOAD_ERROR, settlement.message)
        elif isinstance(settlement, ThrownError):
            result = RunError(ErrorKind.THROWN_ERROR, settlement.message)
        elif isinstance(settlement, Timeout):
            result = RunError(
                ErrorKind.TIMEOUT,
                f"probe did not settle within {timeout}ms",
            )
        elif isinstance(settlement, Value):
            checked = validate_output(settlement.value)
            if isinstance(checked, ValidationFailure):
                result = RunError(ErrorKind(checked.reason.value), checked.detail)
            else:
                result = RunOk(checked)
        else:  # pragma: no cover - Settlement is a closed union
            raise TypeError(f"unexpected settlement {settlement!r}")

        if isinstance(result, RunError):
            _log.warning("probe %s failed: %s: %s", descriptor.id, result.kind.value, result.detail)
        else:
            _log.info("probe %s completed ok (%d lines)", descriptor.id, len(result.output.lines))
        return result

    def _timed_run(
        self, descriptor: PluginDescriptor, timeout_ms: int | None
    ) -> ProbeRunRecord:
        started = time.monotonic()
        try:
            result = self.run_probe(descriptor, timeout_ms)
        except Exception as e:
            # run_probe converts script failures itself; this only guards host bugs
            _log.exception("probe %s crashed the host runtime", descriptor.id)
            result = RunError(ErrorKind.THROWN_ERROR, f"host error: {e}")
        return ProbeRunRecord(
            plugin_id=descriptor.id,
            display_name=descriptor.display_name,
            result=result,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )

    def run_batch(
        self,
        descriptors: Iterable[PluginDescriptor],
        timeout_ms: int | None = None,
        batch_id: str | None = None,
    ) -> ProbeBatch:
        """
        Run several probes concurrently. Results keep input order; a plugin id
        listed twice runs once.
        """
        bid = normalize_batch_id(batch_id)
        unique: list[PluginDescriptor] = []
        seen: set[str] = set()
        for d in descriptors:
            if d.id in seen:
                continue
            seen.add(d.id)
            unique.append(d)

        _log.info("probe batch %s starting: %s", bid, [d.id for d in unique])
        if not unique:
            return ProbeBatch(batch_id=bid, results=[])

        workers = min(self._max_workers, len(unique))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="probe-batch") as pool:
            records = list(pool.map(lambda d: self._timed_run(d, timeout_ms), unique))
        _log.info("probe batch %s complete", bid)
        return ProbeBatch(batch_id=bid, results=records)
