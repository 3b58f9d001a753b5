"""
Engines: script host (RestrictedPython), output validator, probe runtime.
"""

from probehost.engines.output import Output, ValidationFailure, validate_output
from probehost.engines.runtime import (
    ErrorKind,
    ProbeBatch,
    ProbeRunRecord,
    ProbeRuntime,
    RunError,
    RunOk,
    RunResult,
)
from probehost.engines.script import PluginDescriptor

__all__ = [
    "Output",
    "ValidationFailure",
    "validate_output",
    "ErrorKind",
    "ProbeBatch",
    "ProbeRunRecord",
    "ProbeRuntime",
    "RunError",
    "RunOk",
    "RunResult",
    "PluginDescriptor",
]
