"""Test helpers for plugins: probe scripts and on-disk plugin directories."""

import json
import textwrap
from pathlib import Path
from typing import Any

from probehost.engines.script import PluginDescriptor

OK_SCRIPT = """
def probe(ctx):
    return {
        "lines": [
            {"type": "text", "label": "Plugin", "value": ctx.plugin_id},
            {"type": "progress", "label": "Used", "value": 42, "max": 100, "unit": "percent"},
            {"type": "badge", "label": "Plan", "text": "pro"},
        ]
    }
"""

THROW_SCRIPT = """
def probe(ctx):
    raise RuntimeError("boom")
"""

UNRESOLVED_SCRIPT = """
def probe(ctx):
    return Future()
"""

UNKNOWN_LINE_SCRIPT = """
def probe(ctx):
    return {"lines": [{"type": "nope", "label": "Bad", "value": "data"}]}
"""

# Keeps touching a capability, so it stops once its context is disposed
BUSY_SCRIPT = """
def probe(ctx):
    while True:
        ctx.host.fs.exists("spin")
"""

# Module state, a plugin-dir file and an http echo; the transport decides when http returns
ISOLATION_SCRIPT = """
calls = []

def probe(ctx):
    seen = ctx.plugin_id
    calls.append(seen)
    ctx.host.fs.write_text("who.txt", seen)
    resp = ctx.host.http.request("GET", "https://sync.example.com/?who=" + seen)
    return {
        "lines": [
            {"type": "text", "label": "seen", "value": ctx.plugin_id},
            {"type": "text", "label": "echo", "value": resp["body_text"]},
            {"type": "text", "label": "file", "value": ctx.host.fs.read_text("who.txt")},
            {"type": "text", "label": "calls", "value": str(len(calls))},
            {"type": "text", "label": "first", "value": calls[0]},
        ]
    }
"""


def script(source: str) -> str:
    return textwrap.dedent(source)


def make_descriptor(source: str, plugin_id: str = "test-plugin", name: str = "") -> PluginDescriptor:
    return PluginDescriptor(id=plugin_id, script=script(source), name=name)


def write_plugin(
    plugins_dir: Path,
    plugin_id: str,
    source: str = OK_SCRIPT,
    *,
    name: str | None = None,
    dirname: str | None = None,
    lines: list[dict[str, Any]] | None = None,
    **manifest: Any,
) -> Path:
    """Write plugin.json and plugin.py under plugins_dir/<dirname or id>."""
    root = plugins_dir / (dirname or plugin_id)
    root.mkdir(parents=True, exist_ok=True)
    data: dict[str, Any] = {
        "schemaVersion": 1,
        "id": plugin_id,
        "name": name or plugin_id.title(),
        "lines": lines or [],
    }
    data.update(manifest)
    (root / "plugin.json").write_text(json.dumps(data), encoding="utf-8")
    (root / data.get("entry", "plugin.py")).write_text(script(source), encoding="utf-8")
    return root
