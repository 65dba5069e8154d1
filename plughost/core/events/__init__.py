"""
Plugin lifecycle events and the JSONL event log.

Exports:
- `EventLogger`, `redact`
- `PluginEvent`, `EventSeverity`, `SourceSubsystem`
"""

from plughost.core.events.jsonl import EventLogger, redact
from plughost.core.events.models import PluginEvent, EventSeverity, SourceSubsystem

__all__ = [
    "EventLogger",
    "redact",
    "PluginEvent",
    "EventSeverity",
    "SourceSubsystem",
]
