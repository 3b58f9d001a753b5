from fastapi import APIRouter

from probehost.api.deps import RegistryDep, SettingsPathDep
from probehost.core.plugin_settings import (
    PluginSettings,
    are_plugin_settings_equal,
    load_plugin_settings,
    normalize_plugin_settings,
    save_plugin_settings,
)
from probehost.schemas import PluginMetaPublic

router = APIRouter(prefix="/plugins", tags=["plugins"])


@router.get("/")
def list_plugins(registry: RegistryDep) -> list[PluginMetaPublic]:
    """
    Every loaded plugin, in discovery order.
    """
    return [PluginMetaPublic.from_plugin(p) for p in registry.plugins]


@router.get("/settings")
def read_plugin_settings(
    registry: RegistryDep, settings_path: SettingsPathDep
) -> PluginSettings:
    """
    Stored order and disabled list, normalized against the loaded plugins.
    The normalized form is written back when it differs from what is stored.
    """
    stored = load_plugin_settings(settings_path)
    normalized = normalize_plugin_settings(stored, registry.ids)
    if not are_plugin_settings_equal(stored, normalized):
        save_plugin_settings(settings_path, normalized)
    return normalized


@router.put("/settings")
def update_plugin_settings(
    body: PluginSettings, registry: RegistryDep, settings_path: SettingsPathDep
) -> PluginSettings:
    """
    Replace order and disabled list. Unknown ids are dropped, missing ones appended.
    """
    normalized = normalize_plugin_settings(body, registry.ids)
    save_plugin_settings(settings_path, normalized)
    return normalized
