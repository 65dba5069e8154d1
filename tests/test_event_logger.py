from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from plughost.core.events import PluginEvent, EventLogger, EventSeverity, SourceSubsystem


def test_publish_nowait_appends_jsonl(tmp_path):
    path = tmp_path / "logs" / "events.jsonl"
    el = EventLogger(path=str(path))
    el.publish_nowait(
        PluginEvent(
            event_type="plugin.rejected",
            trace_id="t1",
            source_subsystem=SourceSubsystem.plugins,
            severity=EventSeverity.WARN,
            plugin_id="raw-ds",
            payload={"error_code": "signatureMissing", "token": "abc"},
        )
    )
    el.log("t2", "plugin.discovery_completed", {"registered": 0})

    lines = [json.loads(x) for x in path.read_text(encoding="utf-8").splitlines()]
    assert [x["event"] for x in lines] == ["plugin.rejected", "plugin.discovery_completed"]
    assert lines[0]["trace_id"] == "t1"
    assert lines[0]["details"]["severity"] == "WARN"
    assert lines[0]["details"]["plugin_id"] == "raw-ds"
    assert lines[0]["details"]["source"] == "plugins"
    assert lines[0]["details"]["token"] == "***REDACTED***"


def test_event_requires_type_and_json_payload():
    with pytest.raises(ValidationError):
        PluginEvent(event_type=" ", source_subsystem=SourceSubsystem.plugins)
    with pytest.raises(ValidationError):
        PluginEvent(event_type="x", source_subsystem=SourceSubsystem.plugins, payload={"o": object()})


def test_redaction_is_recursive_and_keeps_signature_state(tmp_path):
    path = tmp_path / "events.jsonl"
    EventLogger(path=str(path)).log("t", "plugin.registered", {"signature": "valid", "settings": [{"Password": "x"}]})
    details = json.loads(path.read_text(encoding="utf-8"))["details"]
    assert details["signature"] == "valid"
    assert details["settings"] == [{"Password": "***REDACTED***"}]
