from __future__ import annotations

import os

import pytest

from plughost.core.errors import MalformedManifestError
from plughost.core.plugins.files import collect_plugin_files_within
from plughost.core.plugins.manifest import read_plugin_base
from plughost.core.plugins.models import SignatureStatus
from tests.helpers.plugins import manifest, write_plugin


def test_reads_base_fields_and_sets_plugin_dir(tmp_path):
    path = write_plugin(
        tmp_path / "ds",
        manifest(
            "acme-ds",
            backend=True,
            includes=[{"type": "dashboard", "name": "Overview"}],
            dependencies={"grafanaVersion": "7.x", "plugins": [{"id": "acme-panel", "version": "1.0"}]},
            extra_unknown_field=True,
        ),
    )
    base = read_plugin_base(path)
    assert base.id == "acme-ds"
    assert base.type == "datasource"
    assert base.backend is True
    assert base.is_core is False
    assert base.plugin_dir == os.path.abspath(str(tmp_path / "ds"))
    assert base.dependencies.grafana_version == "7.x"
    assert base.dependencies.plugins[0].id == "acme-panel"
    assert base.includes[0].name == "Overview"
    assert base.signature == SignatureStatus.unsigned


def test_core_flag_is_read(tmp_path):
    path = write_plugin(tmp_path / "p", manifest("graph", "panel", core=True))
    assert read_plugin_base(path).is_core is True


@pytest.mark.parametrize(
    "obj",
    [
        {"id": "", "type": "panel"},
        {"id": "x", "type": ""},
        {"type": "panel"},
        {"id": "x"},
    ],
)
def test_missing_id_or_type_is_malformed(tmp_path, obj):
    path = write_plugin(tmp_path / "bad", obj)
    with pytest.raises(MalformedManifestError):
        read_plugin_base(path)


def test_non_object_manifest_is_malformed(tmp_path):
    d = tmp_path / "bad"
    d.mkdir()
    (d / "plugin.json").write_text("[1, 2]\n", encoding="utf-8")
    with pytest.raises(MalformedManifestError):
        read_plugin_base(str(d / "plugin.json"))

    (d / "plugin.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(MalformedManifestError):
        read_plugin_base(str(d / "plugin.json"))


def test_file_listing_excludes_envelope_and_uses_forward_slashes(tmp_path):
    d = tmp_path / "p"
    write_plugin(d, manifest("p", "panel"), extra_files={"module.js": "x", "img/logo.svg": "<svg/>", "nested/MANIFEST.txt": "{}"})
    (d / "MANIFEST.txt").write_text("{}", encoding="utf-8")

    files = collect_plugin_files_within(str(d))
    assert files == ["img/logo.svg", "module.js", "plugin.json"]
