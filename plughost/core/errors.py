from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from plughost.core.events import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class PlugHostError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def __str__(self) -> str:
        return self.user_message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Core types ----
class ConfigError(PlugHostError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


# ---- Plugin discovery ----
class MalformedManifestError(PlugHostError):
    def __init__(self, user_message: str = "did not find type or id properties in plugin.json", **ctx: Any):
        super().__init__("malformed_manifest", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class PluginScanError(PlugHostError):
    def __init__(self, user_message: str = "Failed to scan plugin directory.", **ctx: Any):
        super().__init__("plugin_scan_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class UnknownPluginTypeError(PlugHostError):
    def __init__(self, plugin_type: str, **ctx: Any):
        super().__init__(
            "unknown_plugin_type",
            f"unknown plugin type {plugin_type!r}",
            severity=Severity.CRITICAL,
            recoverable=False,
            context={"plugin_type": plugin_type, **ctx},
        )


class SignatureStateError(PlugHostError):
    def __init__(self, plugin_id: str, state: Any, **ctx: Any):
        super().__init__(
            "unrecognized_signature_state",
            f"plugin {plugin_id!r} has unrecognized plugin signature state {str(state)!r}",
            severity=Severity.CRITICAL,
            recoverable=False,
            context={"plugin_id": plugin_id, "state": str(state), **ctx},
        )


class DuplicatePluginError(PlugHostError):
    def __init__(self, plugin_id: str, *, existing_dir: str = "", plugin_dir: str = ""):
        super().__init__(
            "duplicate_plugin",
            f"plugin with ID {plugin_id!r} already loaded from {existing_dir!r}",
            severity=Severity.WARN,
            recoverable=True,
            context={"plugin_id": plugin_id, "existing_dir": existing_dir, "plugin_dir": plugin_dir},
        )
        self.plugin_id = plugin_id


class PluginNotFoundError(PlugHostError):
    def __init__(self, plugin_id: str):
        super().__init__(
            "plugin_not_found",
            f"plugin {plugin_id!r} not found",
            severity=Severity.WARN,
            recoverable=False,
            context={"plugin_id": plugin_id},
        )
        self.plugin_id = plugin_id
