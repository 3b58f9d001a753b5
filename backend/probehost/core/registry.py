"""
Plugin registry: discover plugins on disk and describe them.

Layout::

    <PLUGINS_DIR>/
        mock/
            plugin.json     manifest
            plugin.py       probe script (manifest "entry")
            icon.svg        optional (manifest "icon")

Invalid plugins are skipped with a warning; when two directories declare the
same id the first one (by directory name) wins.
"""

import base64
import json
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from probehost.engines.script import PluginDescriptor, is_valid_plugin_id

_log = logging.getLogger(__name__)

MANIFEST_FILENAME = "plugin.json"
SUPPORTED_SCHEMA_VERSION = 1


class ManifestLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(..., pattern="^(text|progress|badge)$")
    label: str = Field(..., min_length=1)
    scope: str = "overview"
    primary_order: int | None = Field(default=None, alias="primaryOrder")


class PluginManifest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_version: int = Field(default=SUPPORTED_SCHEMA_VERSION, alias="schemaVersion")
    id: str
    name: str = Field(..., min_length=1)
    version: str = "0.0.0"
    entry: str = "plugin.py"
    icon: str | None = None
    brand_color: str | None = Field(default=None, alias="brandColor")
    lines: list[ManifestLine] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def id_is_safe(cls, v: str) -> str:
        if not is_valid_plugin_id(v):
            raise ValueError("id must be 1-64 chars of letters, digits, '.', '_' or '-'")
        return v

    @field_validator("schema_version")
    @classmethod
    def schema_supported(cls, v: int) -> int:
        if v != SUPPORTED_SCHEMA_VERSION:
            raise ValueError(f"unsupported schema_version {v}")
        return v


@dataclass(frozen=True)
class LoadedPlugin:
    manifest: PluginManifest
    script: str
    root: Path
    icon_data_url: str = ""

    @property
    def id(self) -> str:
        return self.manifest.id

    @property
    def descriptor(self) -> PluginDescriptor:
        return PluginDescriptor(id=self.manifest.id, script=self.script, name=self.manifest.name)

    @property
    def primary_candidates(self) -> list[str]:
        """Labels of progress lines with a primary order, lowest order first."""
        candidates = [
            line
            for line in self.manifest.lines
            if line.type == "progress" and line.primary_order is not None
        ]
        candidates.sort(key=lambda line: line.primary_order)
        return [line.label for line in candidates]


def _inside(path: Path, root: Path) -> bool:
    return path.resolve().is_relative_to(root.resolve())


def _icon_data_url(icon_path: Path) -> str:
    mime = mimetypes.guess_type(icon_path.name)[0] or "application/octet-stream"
    if icon_path.suffix == ".svg":
        mime = "image/svg+xml"
    encoded = base64.b64encode(icon_path.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def load_plugin(plugin_dir: Path) -> LoadedPlugin:
    """Load one plugin directory. Raises ValueError describing what is wrong."""
    manifest_path = plugin_dir / MANIFEST_FILENAME
    try:
        raw = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"cannot read {manifest_path}: {e}") from e
    try:
        manifest = PluginManifest.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"invalid manifest {manifest_path}: {e}") from e

    entry_path = plugin_dir / manifest.entry
    if not _inside(entry_path, plugin_dir):
        raise ValueError(f"entry {manifest.entry!r} escapes {plugin_dir}")
    try:
        script = entry_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ValueError(f"cannot read entry script {entry_path}: {e}") from e

    icon_data_url = ""
    if manifest.icon:
        icon_path = plugin_dir / manifest.icon
        if not _inside(icon_path, plugin_dir):
            raise ValueError(f"icon {manifest.icon!r} escapes {plugin_dir}")
        try:
            icon_data_url = _icon_data_url(icon_path)
        except OSError as e:
            _log.warning("plugin %s: icon unreadable: %s", manifest.id, e)

    return LoadedPlugin(manifest=manifest, script=script, root=plugin_dir, icon_data_url=icon_data_url)


def discover_plugins(plugins_dir: Path) -> list[LoadedPlugin]:
    """Load every valid plugin under *plugins_dir*, sorted by directory name."""
    if not plugins_dir.is_dir():
        _log.warning("plugins dir %s does not exist", plugins_dir)
        return []

    plugins: list[LoadedPlugin] = []
    seen: set[str] = set()
    for child in sorted(plugins_dir.iterdir()):
        if not child.is_dir() or not (child / MANIFEST_FILENAME).is_file():
            continue
        try:
            plugin = load_plugin(child)
        except ValueError as e:
            _log.warning("skipping plugin at %s: %s", child, e)
            continue
        if plugin.id in seen:
            _log.warning("skipping plugin at %s: duplicate id %s", child, plugin.id)
            continue
        seen.add(plugin.id)
        plugins.append(plugin)
    _log.info("loaded %d plugins from %s", len(plugins), plugins_dir)
    return plugins


class PluginRegistry:
    """In-memory view of discovered plugins, in discovery order."""

    def __init__(self, plugins: list[LoadedPlugin]) -> None:
        self._plugins = list(plugins)
        self._by_id = {p.id: p for p in self._plugins}

    @classmethod
    def from_dir(cls, plugins_dir: Path) -> "PluginRegistry":
        return cls(discover_plugins(plugins_dir))

    @property
    def plugins(self) -> list[LoadedPlugin]:
        return list(self._plugins)

    @property
    def ids(self) -> list[str]:
        return [p.id for p in self._plugins]

    def get(self, plugin_id: str) -> LoadedPlugin | None:
        return self._by_id.get(plugin_id)

    def select(self, plugin_ids: list[str] | None) -> list[LoadedPlugin]:
        """Plugins for *plugin_ids* in the given order (unknown and repeated ids dropped); all when None."""
        if plugin_ids is None:
            return self.plugins
        selected: list[LoadedPlugin] = []
        seen: set[str] = set()
        for pid in plugin_ids:
            if pid in seen or pid not in self._by_id:
                continue
            seen.add(pid)
            selected.append(self._by_id[pid])
        return selected
