from __future__ import annotations

import os

import pytest

from plughost.core.errors import MalformedManifestError, PluginScanError
from plughost.core.plugins.scanner import PluginScanner
from tests.helpers.plugins import DummyLogger, manifest, write_plugin


def _scan(root):
    s = PluginScanner(plugin_path=str(root), logger=DummyLogger())
    return s, s.scan()


def test_missing_root_yields_nothing(tmp_path):
    s, plugins = _scan(tmp_path / "does-not-exist")
    assert plugins == {}
    assert s.errors == []


def test_root_that_is_a_file_yields_nothing(tmp_path):
    f = tmp_path / "file"
    f.write_text("x", encoding="utf-8")
    _, plugins = _scan(f)
    assert plugins == {}


@pytest.mark.skipif(os.name == "nt" or (hasattr(os, "geteuid") and os.geteuid() == 0), reason="needs POSIX permissions as non-root")
def test_unreadable_root_yields_nothing(tmp_path):
    root = tmp_path / "locked"
    write_plugin(root / "p", manifest("p"))
    os.chmod(root, 0)
    try:
        s, plugins = _scan(root)
        assert plugins == {}
        assert s.errors == []
    finally:
        os.chmod(root, 0o755)


@pytest.mark.skipif(os.name == "nt" or (hasattr(os, "geteuid") and os.geteuid() == 0), reason="needs POSIX permissions as non-root")
def test_unreadable_subdirectory_aborts_scan(tmp_path):
    write_plugin(tmp_path / "root" / "locked" / "p", manifest("p"))
    os.chmod(tmp_path / "root" / "locked", 0)
    try:
        with pytest.raises(PluginScanError):
            _scan(tmp_path / "root")
    finally:
        os.chmod(tmp_path / "root" / "locked", 0o755)


def test_finds_nested_plugins_keyed_by_directory(tmp_path):
    write_plugin(tmp_path / "app", manifest("acme-app", "app"))
    write_plugin(tmp_path / "app" / "panels" / "p1", manifest("acme-p1", "panel"))
    write_plugin(tmp_path / "other", manifest("other-ds"))

    _, plugins = _scan(tmp_path)
    by_id = {p.id: d for d, p in plugins.items()}
    assert set(by_id) == {"acme-app", "acme-p1", "other-ds"}
    assert by_id["acme-p1"] == os.path.normpath(os.path.abspath(str(tmp_path / "app" / "panels" / "p1")))
    assert "plugin.json" in plugins[by_id["acme-app"]].files
    assert "panels/p1/plugin.json" in plugins[by_id["acme-app"]].files


def test_skips_excluded_directories(tmp_path):
    write_plugin(tmp_path / "p", manifest("p", "panel"))
    write_plugin(tmp_path / "p" / "node_modules" / "dep", manifest("dep", "panel"))
    write_plugin(tmp_path / "renderer" / "Chromium.app" / "x", manifest("chrome", "panel"))

    _, plugins = _scan(tmp_path)
    assert sorted(p.id for p in plugins.values()) == ["p"]


def test_malformed_manifest_is_recorded_and_scan_continues(tmp_path):
    write_plugin(tmp_path / "bad", {"id": "", "type": "panel"})
    write_plugin(tmp_path / "good", manifest("good", "panel"))

    s, plugins = _scan(tmp_path)
    assert [p.id for p in plugins.values()] == ["good"]
    assert len(s.errors) == 1
    assert isinstance(s.errors[0], MalformedManifestError)


def test_only_exact_manifest_name_is_loaded(tmp_path):
    d = tmp_path / "p"
    d.mkdir()
    (d / "plugin.json.bak").write_text('{"id": "x", "type": "panel"}', encoding="utf-8")
    (d / "Plugin.JSON").write_text('{"id": "y", "type": "panel"}', encoding="utf-8")
    _, plugins = _scan(tmp_path)
    assert plugins == {}
