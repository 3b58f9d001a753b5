"""
Execution supervisor: run probe(ctx) under a deadline and classify how it settled.

The script is loaded and invoked on a daemon worker thread. The caller waits
on that thread's outcome, and on any deferred result the probe returns, for at
most the remaining budget. When the deadline passes first the run is reported
as Timeout, its context is disposed and the worker is abandoned; a CPU-bound
script keeps its thread until it next touches a capability or a global.

Deferred results are ``concurrent.futures.Future`` objects (scripts get
``Future`` in their globals). Host-side probes may also return awaitables,
which the worker drives to completion with asyncio.
"""

import asyncio
import inspect
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from concurrent.futures import Future, wait
from dataclasses import dataclass
from typing import Any

from .context import RunContext
from .errors import ScriptLoadError
from .isolate import IsolateHandle, IsolateManager, PluginDescriptor

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Value:
    value: Any


@dataclass(frozen=True)
class ThrownError:
    message: str


@dataclass(frozen=True)
class Timeout:
    elapsed_ms: int


@dataclass(frozen=True)
class LoadFailed:
    message: str


Settlement = Value | ThrownError | Timeout | LoadFailed


def describe_error(err: object) -> str:
    """String form of a raised or rejected value; a generic text when it has none."""
    if isinstance(err, BaseException):
        text = str(err).strip()
        return text or f"probe raised {type(err).__name__}"
    try:
        text = str(err).strip()
    except Exception:
        text = ""
    return text or f"probe rejected with {type(err).__name__}"


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


class _SupervisedRun:
    """Worker-side half of one run. The outcome future carries a Settlement."""

    def __init__(
        self,
        isolates: IsolateManager,
        descriptor: PluginDescriptor,
        run_context: RunContext,
    ) -> None:
        self._isolates = isolates
        self._descriptor = descriptor
        self._run_context = run_context
        self._handle: IsolateHandle | None = None
        self._abandoned = False
        self._lock = threading.Lock()
        self.outcome: Future = Future()

    def work(self) -> None:
        try:
            handle = self._isolates.create_context(self._descriptor, self._run_context)
        except ScriptLoadError as e:
            self.outcome.set_result(LoadFailed(str(e)))
            return
        except BaseException as e:
            self.outcome.set_result(ThrownError(describe_error(e)))
            return

        with self._lock:
            if self._abandoned:
                self._isolates.dispose(handle)
                return
            self._handle = handle

        try:
            value = handle.invoke()
            if inspect.isawaitable(value):
                value = asyncio.run(_await(value))
        except BaseException as e:
            self.outcome.set_result(ThrownError(describe_error(e)))
            return
        self.outcome.set_result(Value(value))

    def dispose(self) -> None:
        with self._lock:
            self._abandoned = True
            handle = self._handle
        if handle is not None:
            self._isolates.dispose(handle)
        self._run_context.close()


def _wait_until(fut: Future, deadline: float) -> bool:
    """Wait for *fut* until the monotonic *deadline*. True when it finished."""
    while not fut.done():
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        wait([fut], timeout=remaining)
    return True


class ExecutionSupervisor:
    """
    run(descriptor, run_context, timeout_ms) -> Settlement.

    Never blocks longer than timeout_ms (plus scheduling jitter) and always
    disposes the run's context before returning.
    """

    def __init__(self, isolates: IsolateManager | None = None) -> None:
        self._isolates = isolates or IsolateManager()

    def run(
        self,
        descriptor: PluginDescriptor,
        run_context: RunContext,
        timeout_ms: int,
    ) -> Settlement:
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        started = time.monotonic()
        deadline = started + timeout_ms / 1000

        def _elapsed_ms() -> int:
            # Only read once the deadline has passed; float rounding may land a hair under it
            return max(timeout_ms, int((time.monotonic() - started) * 1000))

        run = _SupervisedRun(self._isolates, descriptor, run_context)
        worker = threading.Thread(
            target=run.work, name=f"probe-{descriptor.id}", daemon=True
        )
        try:
            worker.start()
            if not _wait_until(run.outcome, deadline):
                _log.warning(
                    "probe %s did not settle within %sms; abandoning",
                    descriptor.id,
                    timeout_ms,
                )
                return Timeout(_elapsed_ms())
            settlement: Settlement = run.outcome.result()
            if isinstance(settlement, Value):
                return self._settle_deferred(settlement, deadline, _elapsed_ms, descriptor.id)
            return settlement
        finally:
            run.dispose()

    @staticmethod
    def _settle_deferred(
        settlement: Value, deadline: float, elapsed_ms: Callable[[], int], plugin_id: str
    ) -> Settlement:
        value = settlement.value
        # A deferred result may itself fulfil with another deferred result
        while isinstance(value, Future):
            if not _wait_until(value, deadline):
                _log.warning("deferred result of probe %s never settled", plugin_id)
                return Timeout(elapsed_ms())
            if value.cancelled():
                return ThrownError("deferred result was cancelled")
            err = value.exception()
            if err is not None:
                return ThrownError(describe_error(err))
            try:
                value = value.result()
            except BaseException as e:
                return ThrownError(describe_error(e))
        if value is settlement.value:
            return settlement
        return Value(value)
