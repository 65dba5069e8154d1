from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from plughost.web.api import create_app
from tests.helpers.plugins import make_manager, manifest, write_plugin


@pytest.fixture
def client(tmp_path):
    ext = tmp_path / "data" / "plugins"
    write_plugin(ext / "acme-panel", manifest("acme-panel", "panel"), extra_files={"README.md": "# Acme"})
    write_plugin(ext / "acme-ds", manifest("acme-ds", dependencies={"grafanaVersion": "7.x"}))
    write_plugin(ext / "raw-ds", manifest("raw-ds", backend=True))
    pm = make_manager(tmp_path)
    pm.init()
    return TestClient(create_app(pm))


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "plugins": 2}


def test_list_plugins_and_filter(client):
    r = client.get("/api/plugins")
    assert r.status_code == 200
    assert [p["id"] for p in r.json()] == ["acme-ds", "acme-panel"]

    r = client.get("/api/plugins", params={"type": "panel"})
    assert [p["id"] for p in r.json()] == ["acme-panel"]
    assert r.json()[0]["signature"] == "unsigned"
    assert r.json()[0]["module"] == "plugins/acme-panel/module"


def test_plugin_detail(client):
    r = client.get("/api/plugins/acme-ds")
    assert r.status_code == 200
    body = r.json()
    assert body["dependencies"]["grafanaVersion"] == "7.x"
    assert body["dependencies"]["plugins"] == []
    assert body["has_root"] is False


def test_unknown_plugin_is_404(client):
    r = client.get("/api/plugins/nope")
    assert r.status_code == 404
    assert r.json()["code"] == "plugin_not_found"

    r = client.get("/api/plugins/nope/markdown/readme")
    assert r.status_code == 404


def test_scanning_errors(client):
    r = client.get("/api/plugins/errors")
    assert r.status_code == 200
    assert r.json() == [{"plugin_id": "raw-ds", "error_code": "signatureMissing"}]


def test_markdown(client):
    r = client.get("/api/plugins/acme-panel/markdown/readme")
    assert r.status_code == 200
    assert r.text == "# Acme"

    r = client.get("/api/plugins/acme-panel/markdown/changelog")
    assert r.status_code == 200
    assert r.text == ""


def test_update_status(client):
    r = client.get("/api/plugins/updates")
    assert r.status_code == 200
    body = r.json()
    assert body["host_has_update"] is False
    assert body["plugins"] == {}
