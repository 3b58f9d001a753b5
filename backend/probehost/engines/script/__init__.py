"""
Script engine for probe plugins (Python, RestrictedPython).

Exports: IsolateManager, ExecutionSupervisor, RunContext, PluginDescriptor,
the Settlement variants, compile_script, build_restricted_globals.
"""

from .context import RunContext
from .errors import CapabilityError, ScriptLoadError
from .isolate import IsolateHandle, IsolateManager, PluginDescriptor, is_valid_plugin_id
from .sandbox import build_restricted_globals, compile_script
from .supervisor import (
    ExecutionSupervisor,
    LoadFailed,
    Settlement,
    ThrownError,
    Timeout,
    Value,
)

__all__ = [
    "RunContext",
    "CapabilityError",
    "ScriptLoadError",
    "IsolateHandle",
    "IsolateManager",
    "PluginDescriptor",
    "is_valid_plugin_id",
    "compile_script",
    "build_restricted_globals",
    "ExecutionSupervisor",
    "Settlement",
    "Value",
    "ThrownError",
    "Timeout",
    "LoadFailed",
]
