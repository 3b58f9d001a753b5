from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from probehost.api.deps import get_registry, get_runtime, get_settings_path
from probehost.core.registry import PluginRegistry
from probehost.engines import ProbeRuntime
from probehost.main import app
from tests.utils.plugins import OK_SCRIPT, THROW_SCRIPT, UNRESOLVED_SCRIPT, write_plugin


@pytest.fixture
def app_data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "app-data"
    path.mkdir()
    return path


@pytest.fixture
def plugins_dir(tmp_path: Path) -> Path:
    path = tmp_path / "plugins"
    write_plugin(
        path,
        "alpha",
        OK_SCRIPT,
        name="Alpha",
        lines=[
            {"type": "progress", "label": "Used", "primaryOrder": 2},
            {"type": "badge", "label": "Plan"},
            {"type": "progress", "label": "Session", "primaryOrder": 1},
        ],
    )
    write_plugin(path, "beta", THROW_SCRIPT, name="Beta")
    write_plugin(path, "gamma", UNRESOLVED_SCRIPT, name="Gamma")
    return path


@pytest.fixture
def runtime(app_data_dir: Path) -> ProbeRuntime:
    return ProbeRuntime(app_data_dir=app_data_dir, app_version="9.9.9", default_timeout_ms=2_000)


@pytest.fixture
def client(
    plugins_dir: Path, app_data_dir: Path, runtime: ProbeRuntime
) -> Generator[TestClient, None, None]:
    registry = PluginRegistry.from_dir(plugins_dir)
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_runtime] = lambda: runtime
    app.dependency_overrides[get_settings_path] = lambda: app_data_dir / "settings.json"
    yield TestClient(app)
    app.dependency_overrides.clear()
