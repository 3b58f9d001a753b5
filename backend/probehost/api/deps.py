from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends

from probehost.core.config import settings
from probehost.core.registry import PluginRegistry
from probehost.engines import ProbeRuntime


@lru_cache
def get_registry() -> PluginRegistry:
    return PluginRegistry.from_dir(settings.PLUGINS_DIR)


@lru_cache
def get_runtime() -> ProbeRuntime:
    return ProbeRuntime()


def get_settings_path() -> Path:
    return settings.plugin_settings_path


RegistryDep = Annotated[PluginRegistry, Depends(get_registry)]
RuntimeDep = Annotated[ProbeRuntime, Depends(get_runtime)]
SettingsPathDep = Annotated[Path, Depends(get_settings_path)]
