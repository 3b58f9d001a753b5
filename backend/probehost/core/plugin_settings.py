"""
Plugin order and disabled list, persisted in a JSON settings store.

The store is a JSON object; plugin settings live under the ``plugins`` key so
other keys in the same file survive a save. New plugins are appended to the
order and enabled by default.
"""

import json
import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

_log = logging.getLogger(__name__)

PLUGIN_SETTINGS_KEY = "plugins"


class PluginSettings(BaseModel):
    order: list[str] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)


def _read_store(path: Path) -> dict[str, Any]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as e:
        _log.warning("settings store %s unreadable, using defaults: %s", path, e)
        return {}
    return raw if isinstance(raw, dict) else {}


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def load_plugin_settings(path: Path) -> PluginSettings:
    """Stored settings, or empty defaults when missing or malformed."""
    stored = _read_store(path).get(PLUGIN_SETTINGS_KEY)
    if not isinstance(stored, dict):
        return PluginSettings()
    return PluginSettings(
        order=_str_list(stored.get("order")),
        disabled=_str_list(stored.get("disabled")),
    )


def save_plugin_settings(path: Path, plugin_settings: PluginSettings) -> None:
    """Write *plugin_settings* into the store at *path*, keeping other keys."""
    store = _read_store(path)
    store[PLUGIN_SETTINGS_KEY] = plugin_settings.model_dump()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".settings-", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(store, fh, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        os.unlink(tmp_name)
        raise


def normalize_plugin_settings(
    plugin_settings: PluginSettings, known_ids: Sequence[str]
) -> PluginSettings:
    """
    Drop unknown and repeated ids from the order, append known ids that are
    missing, and keep only known ids in the disabled list.
    """
    known = set(known_ids)
    order: list[str] = []
    seen: set[str] = set()
    for pid in plugin_settings.order:
        if pid not in known or pid in seen:
            continue
        seen.add(pid)
        order.append(pid)
    for pid in known_ids:
        if pid not in seen:
            seen.add(pid)
            order.append(pid)

    disabled = [pid for pid in plugin_settings.disabled if pid in known]
    return PluginSettings(order=order, disabled=disabled)


def are_plugin_settings_equal(a: PluginSettings, b: PluginSettings) -> bool:
    return a.order == b.order and a.disabled == b.disabled


def get_enabled_plugin_ids(plugin_settings: PluginSettings) -> list[str]:
    disabled = set(plugin_settings.disabled)
    return [pid for pid in plugin_settings.order if pid not in disabled]
