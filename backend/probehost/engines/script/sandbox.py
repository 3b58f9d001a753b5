"""
RestrictedPython sandbox for probe scripts.

Allowed: dict, list, str, int, float, bool, range, enumerate, zip, sorted,
len, round, min, max, sum, abs, any, all, isinstance, common exceptions,
json, re, math, base64, datetime/date/time/timedelta/timezone, Future (for
deferred results) and whatever the isolate manager injects.

Blocked: open, exec, eval, __import__, compile, os, subprocess, attribute
names starting with an underscore, attribute assignment on host objects.
"""

import base64
import builtins
import json
import math
import operator
import re
from concurrent.futures import Future
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from RestrictedPython import compile_restricted
from RestrictedPython.Eval import default_guarded_getitem, default_guarded_getiter
from RestrictedPython.Guards import (
    full_write_guard,
    guarded_iter_unpack_sequence,
    guarded_unpack_sequence,
    safe_builtins,
    safer_getattr,
)
from RestrictedPython.PrintCollector import PrintCollector

_INPLACE_OPS = {
    "+=": operator.iadd,
    "-=": operator.isub,
    "*=": operator.imul,
    "/=": operator.itruediv,
    "//=": operator.ifloordiv,
    "%=": operator.imod,
    "**=": operator.ipow,
    "|=": operator.ior,
    "&=": operator.iand,
    "^=": operator.ixor,
}

# Common builtins exposed as top-level names; taken from safe_builtins when present
_EXTRA_BUILTIN_NAMES = (
    "list",
    "dict",
    "set",
    "tuple",
    "len",
    "range",
    "enumerate",
    "min",
    "max",
    "sum",
    "abs",
    "sorted",
    "reversed",
    "any",
    "all",
    "isinstance",
)


def _inplacevar(op: str, x: Any, y: Any) -> Any:
    fn = _INPLACE_OPS.get(op)
    if fn is None:
        raise SyntaxError(f"unsupported in-place operator {op}")
    return fn(x, y)


def _make_safe_builtins() -> dict[str, Any]:
    """safe_builtins already has str, int, range, exceptions, etc."""
    safe = dict(safe_builtins)
    for name in _EXTRA_BUILTIN_NAMES:
        obj = safe.get(name, getattr(builtins, name, None))
        if obj is not None:
            safe[name] = obj
    return safe


def _make_guard_globals() -> dict[str, Any]:
    """Guards required by RestrictedPython's rewritten bytecode."""
    return {
        "_getattr_": safer_getattr,
        "_getiter_": default_guarded_getiter,
        "_getitem_": default_guarded_getitem,
        "_iter_unpack_sequence_": guarded_iter_unpack_sequence,
        "_unpack_sequence_": guarded_unpack_sequence,
        "_write_": full_write_guard,
        "_inplacevar_": _inplacevar,
        "_print_": PrintCollector,
    }


def _make_extra_globals() -> dict[str, Any]:
    """Extra safe symbols available to every script."""
    return {
        "json": json,
        "re": re,
        "math": math,
        "base64": base64,
        "datetime": datetime,
        "date": date,
        "time": time,
        "timedelta": timedelta,
        "timezone": timezone,
        "Future": Future,
    }


def compile_script(script: str, filename: str = "<script>") -> Any:
    """
    Compile script with RestrictedPython. Raises SyntaxError on failure.

    Returns a code object suitable for exec(bytecode, globals).
    """
    if not isinstance(script, str):
        raise SyntaxError("script source must be text")
    code = compile_restricted(script, filename, "exec")
    if code is None:
        raise SyntaxError("RestrictedPython: compile failed")
    return code


def build_restricted_globals(context_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Build a fresh globals dict for exec(compiled, globals): safe builtins,
    guards, extra modules, then *context_dict* on top.
    """
    safe = _make_safe_builtins()
    g: dict[str, Any] = {
        "__builtins__": safe,
        "__name__": "probe_script",
    }
    g.update(_make_guard_globals())
    g.update(_make_extra_globals())
    for name in _EXTRA_BUILTIN_NAMES:
        g[name] = safe[name]
    g.update(context_dict)
    return g
