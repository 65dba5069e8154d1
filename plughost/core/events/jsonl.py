from __future__ import annotations

import json
import os
import threading
import time
from typing import Any, Dict, Optional


# Keys that may show up in plugin settings payloads.
REDACT_KEYS = frozenset({"token", "password", "private_key", "authorization"})
REDACTED = "***REDACTED***"


def redact(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: REDACTED if str(k).lower() in REDACT_KEYS else redact(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [redact(x) for x in obj]
    return obj


class EventLogger:
    """
    Append-only JSONL log of plugin lifecycle events, one object per line:
    {"ts", "trace_id", "event", "details"}.

    `publish_nowait` lets it stand in as the plugin manager's event bus.
    """

    def __init__(self, path: str):
        self.path = str(path)
        self._lock = threading.Lock()

    def log(self, trace_id: str, event_type: str, details: Optional[Dict[str, Any]] = None) -> None:
        record = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "trace_id": trace_id,
            "event": event_type,
            "details": redact(details or {}),
        }
        with self._lock:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, ensure_ascii=False) + "\n")

    def publish_nowait(self, ev: Any) -> None:
        to_record = getattr(ev, "to_record", None)
        details = to_record() if callable(to_record) else dict(getattr(ev, "payload", {}) or {})
        self.log(str(getattr(ev, "trace_id", "") or "plugins"), str(getattr(ev, "event_type", "event")), details)
