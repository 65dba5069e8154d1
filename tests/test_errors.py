from __future__ import annotations

from plughost.core.errors import (
    DuplicatePluginError,
    MalformedManifestError,
    PlugHostError,
    PluginNotFoundError,
    PluginScanError,
    Severity,
    SignatureStateError,
    UnknownPluginTypeError,
)


def test_user_message_is_str():
    e = MalformedManifestError()
    assert str(e) == "did not find type or id properties in plugin.json"
    assert e.code == "malformed_manifest"
    assert e.recoverable is True


def test_fatal_errors_are_not_recoverable():
    for e in (UnknownPluginTypeError("widget"), SignatureStateError("x", "internal"), PluginScanError()):
        assert isinstance(e, PlugHostError)
        assert e.recoverable is False
        assert e.severity == Severity.CRITICAL


def test_duplicate_carries_ids():
    e = DuplicatePluginError("acme-ds", existing_dir="/a", plugin_dir="/b")
    assert e.plugin_id == "acme-ds"
    assert "acme-ds" in str(e)
    assert e.to_dict()["context"] == {"plugin_id": "acme-ds", "existing_dir": "/a", "plugin_dir": "/b"}


def test_to_dict_redacts_context():
    e = PluginScanError("boom", token="abc", plugin_path="/p")
    d = e.to_dict()
    assert d["code"] == "plugin_scan_error"
    assert d["severity"] == "CRITICAL"
    assert d["context"]["token"] != "abc"
    assert d["context"]["plugin_path"] == "/p"


def test_not_found():
    e = PluginNotFoundError("nope")
    assert e.code == "plugin_not_found"
    assert e.plugin_id == "nope"
