from __future__ import annotations

import base64
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    config_version: int = Field(default=1, ge=1)
    log_dir: str = "logs"
    event_log_path: str = "logs/plugin_events.jsonl"
    backups: Dict[str, Any] = Field(default_factory=lambda: {"max_backups_per_file": 10})


class UpdateCheckConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    enabled: bool = True
    interval_seconds: float = Field(default=600.0, gt=0)
    timeout_seconds: float = Field(default=10.0, gt=0)
    host_version: str = "0.0.0"
    latest_url: str = "https://raw.githubusercontent.com/grafana/grafana/main/latest.json"
    plugins_url: str = "https://grafana.com/api/plugins/versioncheck"


class PluginsConfig(BaseModel):
    """
    config/plugins.json schema.

    `env` set to "development" turns on development mode, which lets unsigned
    backend plugins load under signing-required scans.
    """

    model_config = ConfigDict(extra="forbid")

    schema_version: int = Field(default=1, ge=1, le=10)
    env: str = "production"
    static_root_path: str = "public"
    bundled_plugins_path: str = "plugins-bundled"
    plugins_path: str = "data/plugins"
    plugin_settings: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    allow_unsigned: List[str] = Field(default_factory=list)
    # keyId -> base64 raw Ed25519 public key
    public_keys: Dict[str, str] = Field(default_factory=dict)
    update_check: UpdateCheckConfig = Field(default_factory=UpdateCheckConfig)

    @field_validator("env", mode="before")
    @classmethod
    def _norm_env(cls, v: Any) -> str:
        vv = str(v or "").strip().lower()
        if vv in {"dev", "development"}:
            return "development"
        return vv or "production"

    @field_validator("allow_unsigned", mode="before")
    @classmethod
    def _norm_allow_unsigned(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, list):
            out: List[str] = []
            for item in v:
                s = str(item or "").strip()
                if s and s not in out:
                    out.append(s)
            return out
        return []

    @field_validator("public_keys")
    @classmethod
    def _keys_are_base64(cls, v: Dict[str, str]) -> Dict[str, str]:
        for key_id, raw in v.items():
            try:
                decoded = base64.b64decode(str(raw), validate=True)
            except ValueError as e:
                raise ValueError(f"public key {key_id!r} is not valid base64") from e
            if len(decoded) != 32:
                raise ValueError(f"public key {key_id!r} must be a raw 32-byte Ed25519 key")
        return v

    @property
    def dev_mode(self) -> bool:
        return self.env == "development"
