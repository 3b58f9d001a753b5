"""Tests for core.plugin_settings: order and disabled list."""

import json
from pathlib import Path

from probehost.core.plugin_settings import (
    PluginSettings,
    are_plugin_settings_equal,
    get_enabled_plugin_ids,
    load_plugin_settings,
    normalize_plugin_settings,
    save_plugin_settings,
)


class TestNormalize:
    def test_drops_unknown_and_duplicates_appends_missing(self) -> None:
        stored = PluginSettings(order=["b", "x", "b", "a"], disabled=["x", "c"])
        normalized = normalize_plugin_settings(stored, ["a", "b", "c"])
        assert normalized.order == ["b", "a", "c"]
        assert normalized.disabled == ["c"]

    def test_empty_settings_take_known_order(self) -> None:
        normalized = normalize_plugin_settings(PluginSettings(), ["mock", "cursor"])
        assert normalized.order == ["mock", "cursor"]
        assert normalized.disabled == []

    def test_idempotent(self) -> None:
        once = normalize_plugin_settings(PluginSettings(order=["z", "a"]), ["a", "b"])
        twice = normalize_plugin_settings(once, ["a", "b"])
        assert are_plugin_settings_equal(once, twice)


class TestEnabled:
    def test_enabled_follows_order(self) -> None:
        s = PluginSettings(order=["c", "a", "b"], disabled=["a"])
        assert get_enabled_plugin_ids(s) == ["c", "b"]

    def test_equality(self) -> None:
        assert are_plugin_settings_equal(PluginSettings(order=["a"]), PluginSettings(order=["a"]))
        assert not are_plugin_settings_equal(
            PluginSettings(order=["a", "b"]), PluginSettings(order=["b", "a"])
        )


class TestStore:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_plugin_settings(tmp_path / "settings.json") == PluginSettings()

    def test_corrupt_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        path.write_text("{oops")
        assert load_plugin_settings(path) == PluginSettings()

    def test_ignores_non_string_entries(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"plugins": {"order": ["a", 1, None], "disabled": "b"}}))
        loaded = load_plugin_settings(path)
        assert loaded.order == ["a"]
        assert loaded.disabled == []

    def test_save_roundtrip_keeps_other_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "settings.json"
        path.parent.mkdir()
        path.write_text(json.dumps({"theme": "dark"}))
        save_plugin_settings(path, PluginSettings(order=["b", "a"], disabled=["a"]))
        stored = json.loads(path.read_text())
        assert stored["theme"] == "dark"
        assert stored["plugins"] == {"order": ["b", "a"], "disabled": ["a"]}
        assert load_plugin_settings(path) == PluginSettings(order=["b", "a"], disabled=["a"])
        assert sorted(p.name for p in path.parent.iterdir()) == ["settings.json"]
