"""Tests for core.registry: plugin discovery and manifests."""

import json
from pathlib import Path

import pytest

from probehost.core.config import BACKEND_ROOT
from probehost.core.registry import PluginRegistry, discover_plugins, load_plugin
from tests.utils.plugins import OK_SCRIPT, write_plugin


class TestLoadPlugin:
    def test_bundled_mock(self) -> None:
        plugin = load_plugin(BACKEND_ROOT / "plugins" / "mock")
        assert plugin.id == "mock"
        assert plugin.manifest.name == "Mock"
        assert plugin.primary_candidates == ["Percent", "Dollars"]
        assert plugin.icon_data_url.startswith("data:image/svg+xml;base64,")
        assert "def probe(ctx)" in plugin.script

    def test_primary_candidates_sorted(self, tmp_path: Path) -> None:
        root = write_plugin(
            tmp_path,
            "p",
            lines=[
                {"type": "progress", "label": "Weekly", "primaryOrder": 3},
                {"type": "text", "label": "Note", "primaryOrder": 1},
                {"type": "progress", "label": "Session", "primaryOrder": 1},
                {"type": "progress", "label": "Credits"},
            ],
        )
        assert load_plugin(root).primary_candidates == ["Session", "Weekly"]

    def test_descriptor(self, tmp_path: Path) -> None:
        root = write_plugin(tmp_path, "alpha", OK_SCRIPT, name="Alpha")
        descriptor = load_plugin(root).descriptor
        assert descriptor.id == "alpha"
        assert descriptor.display_name == "Alpha"
        assert "def probe" in descriptor.script

    def test_custom_entry(self, tmp_path: Path) -> None:
        root = write_plugin(tmp_path, "alpha", entry="main.py")
        assert "def probe" in load_plugin(root).script

    def test_missing_manifest(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="cannot read"):
            load_plugin(tmp_path)

    def test_bad_json(self, tmp_path: Path) -> None:
        (tmp_path / "plugin.json").write_text("{not json")
        with pytest.raises(ValueError, match="cannot read"):
            load_plugin(tmp_path)

    def test_invalid_id(self, tmp_path: Path) -> None:
        root = write_plugin(tmp_path, "ok-dir")
        data = json.loads((root / "plugin.json").read_text())
        data["id"] = "../escape"
        (root / "plugin.json").write_text(json.dumps(data))
        with pytest.raises(ValueError, match="invalid manifest"):
            load_plugin(root)

    def test_unsupported_schema_version(self, tmp_path: Path) -> None:
        root = write_plugin(tmp_path, "alpha", schemaVersion=2)
        with pytest.raises(ValueError, match="invalid manifest"):
            load_plugin(root)

    def test_entry_escape(self, tmp_path: Path) -> None:
        root = write_plugin(tmp_path / "plugins", "alpha")
        (tmp_path / "evil.py").write_text("def probe(ctx):\n    return {}\n")
        data = json.loads((root / "plugin.json").read_text())
        data["entry"] = "../../evil.py"
        (root / "plugin.json").write_text(json.dumps(data))
        with pytest.raises(ValueError, match="escapes"):
            load_plugin(root)

    def test_missing_icon_is_not_fatal(self, tmp_path: Path) -> None:
        root = write_plugin(tmp_path, "alpha", icon="icon.png")
        assert load_plugin(root).icon_data_url == ""


class TestDiscoverPlugins:
    def test_sorted_and_skips_invalid(self, tmp_path: Path) -> None:
        write_plugin(tmp_path, "zeta")
        write_plugin(tmp_path, "alpha")
        (tmp_path / "broken").mkdir()
        (tmp_path / "broken" / "plugin.json").write_text("[]")
        (tmp_path / "not-a-plugin").mkdir()
        (tmp_path / "README.md").write_text("hi")
        assert [p.id for p in discover_plugins(tmp_path)] == ["alpha", "zeta"]

    def test_duplicate_id_first_wins(self, tmp_path: Path) -> None:
        write_plugin(tmp_path, "same", name="First", dirname="a-dir")
        write_plugin(tmp_path, "same", name="Second", dirname="b-dir")
        plugins = discover_plugins(tmp_path)
        assert len(plugins) == 1
        assert plugins[0].manifest.name == "First"

    def test_missing_dir(self, tmp_path: Path) -> None:
        assert discover_plugins(tmp_path / "nope") == []


class TestPluginRegistry:
    def test_select(self, plugins_dir: Path) -> None:
        registry = PluginRegistry.from_dir(plugins_dir)
        assert registry.ids == ["alpha", "beta", "gamma"]
        assert [p.id for p in registry.select(None)] == ["alpha", "beta", "gamma"]
        assert [p.id for p in registry.select(["gamma", "nope", "alpha", "gamma"])] == ["gamma", "alpha"]
        assert registry.select([]) == []

    def test_get(self, plugins_dir: Path) -> None:
        registry = PluginRegistry.from_dir(plugins_dir)
        assert registry.get("beta").manifest.name == "Beta"
        assert registry.get("missing") is None
