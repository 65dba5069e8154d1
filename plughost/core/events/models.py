from __future__ import annotations

import json
import time
import uuid
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from plughost.core.events.jsonl import redact


class EventSeverity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class SourceSubsystem(str, Enum):
    scanner = "scanner"
    plugins = "plugins"
    updates = "updates"
    web = "web"


class PluginEvent(BaseModel):
    """
    One discovery decision (registered, rejected, duplicate, ...).

    `plugin_id` is empty for scan-level events such as
    `plugin.discovery_completed`.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    event_type: str
    timestamp: float = Field(default_factory=time.time)
    trace_id: Optional[str] = None
    source_subsystem: SourceSubsystem = SourceSubsystem.plugins
    severity: EventSeverity = EventSeverity.INFO
    plugin_id: str = ""
    payload: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("event_type")
    @classmethod
    def _event_type(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v:
            raise ValueError("event_type required")
        return v

    @field_validator("payload")
    @classmethod
    def _payload(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        safe = redact(v)
        try:
            json.dumps(safe, ensure_ascii=False)
        except TypeError as e:
            raise ValueError("payload must be JSON-serializable") from e
        return safe

    def to_record(self) -> Dict[str, Any]:
        details: Dict[str, Any] = dict(self.payload)
        if self.plugin_id:
            details.setdefault("plugin_id", self.plugin_id)
        details["severity"] = self.severity.value
        details["source"] = self.source_subsystem.value
        return details
