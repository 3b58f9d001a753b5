"""Tests for /api/v1/plugins routes."""

import json
from pathlib import Path

from fastapi.testclient import TestClient

from probehost.core.config import settings


def test_list_plugins(client: TestClient) -> None:
    r = client.get(f"{settings.API_V1_STR}/plugins/")
    assert r.status_code == 200
    data = r.json()
    assert [p["id"] for p in data] == ["alpha", "beta", "gamma"]
    alpha = data[0]
    assert alpha["name"] == "Alpha"
    assert alpha["primary_candidates"] == ["Session", "Used"]
    assert alpha["lines"][1] == {"type": "badge", "label": "Plan", "scope": "overview"}
    assert alpha["icon_url"] == ""


def test_read_settings_defaults_to_discovery_order(client: TestClient, app_data_dir: Path) -> None:
    r = client.get(f"{settings.API_V1_STR}/plugins/settings")
    assert r.status_code == 200
    assert r.json() == {"order": ["alpha", "beta", "gamma"], "disabled": []}
    stored = json.loads((app_data_dir / "settings.json").read_text())
    assert stored["plugins"]["order"] == ["alpha", "beta", "gamma"]


def test_read_settings_normalizes_stored(client: TestClient, app_data_dir: Path) -> None:
    (app_data_dir / "settings.json").write_text(
        json.dumps({"plugins": {"order": ["gamma", "removed"], "disabled": ["removed", "beta"]}})
    )
    r = client.get(f"{settings.API_V1_STR}/plugins/settings")
    assert r.json() == {"order": ["gamma", "alpha", "beta"], "disabled": ["beta"]}


def test_update_settings(client: TestClient, app_data_dir: Path) -> None:
    r = client.put(
        f"{settings.API_V1_STR}/plugins/settings",
        json={"order": ["beta", "beta", "unknown"], "disabled": ["gamma"]},
    )
    assert r.status_code == 200
    assert r.json() == {"order": ["beta", "alpha", "gamma"], "disabled": ["gamma"]}
    stored = json.loads((app_data_dir / "settings.json").read_text())
    assert stored["plugins"] == {"order": ["beta", "alpha", "gamma"], "disabled": ["gamma"]}


def test_update_settings_validation_error(client: TestClient) -> None:
    r = client.put(f"{settings.API_V1_STR}/plugins/settings", json={"order": "alpha"})
    assert r.status_code == 422
    assert "order" in r.json()["detail"]
