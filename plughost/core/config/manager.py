from __future__ import annotations

"""
ConfigManager: load, validate and persist config/*.json.

Missing files are created from model defaults (unless read-only). Nothing
is written back until it validates against its model.
"""

from typing import Any, Dict, Optional

from pydantic import ValidationError

from plughost.core.config.io import ConfigFileStore
from plughost.core.config.models import AppConfig, PluginsConfig
from plughost.core.config.paths import ConfigFsPaths
from plughost.core.errors import ConfigError


_MODELS = {
    "app.json": AppConfig,
    "plugins.json": PluginsConfig,
}


class ConfigManager:
    def __init__(self, *, fs: Optional[ConfigFsPaths] = None, logger=None, read_only: bool = False):
        self.fs = fs or ConfigFsPaths(".")
        self.store = ConfigFileStore(self.fs)
        self.logger = logger
        self.read_only = read_only
        self._app: Optional[AppConfig] = None
        self._plugins: Optional[PluginsConfig] = None

    def load_all(self) -> PluginsConfig:
        if not self.read_only:
            self.store.ensure_dirs()

        raw: Dict[str, Dict[str, Any]] = {name: self._read(name) for name in _MODELS}
        if not self.read_only:
            for name, model in _MODELS.items():
                if raw[name] is None:
                    raw[name] = model().model_dump()
                    self.store.write(name, raw[name])
                    self._info(f"Created default config {name}")

        self._app = self._validate("app.json", raw["app.json"] or {})
        self.store.max_backups = int((self._app.backups or {}).get("max_backups_per_file", 10))
        self._plugins = self._validate("plugins.json", raw["plugins.json"] or {})

        if not self.read_only:
            self.store.snapshot_last_known_good()
        return self._plugins

    def get(self) -> PluginsConfig:
        if self._plugins is None:
            raise ConfigError("Config not loaded.")
        return self._plugins

    def app(self) -> AppConfig:
        if self._app is None:
            raise ConfigError("Config not loaded.")
        return self._app

    def save_non_sensitive(self, filename: str, data: Dict[str, Any]) -> None:
        if self.read_only:
            raise ConfigError("Config manager is read-only.")
        if not isinstance(data, dict):
            raise ConfigError("Config data must be an object.")
        self._validate(filename, data)
        self.store.write(filename, data)
        self.load_all()

    # ---- internals ----
    def _info(self, msg: str) -> None:
        if self.logger:
            self.logger.info(msg)

    def _read(self, name: str) -> Optional[Dict[str, Any]]:
        """None means the file is absent (or corrupt and unrecoverable)."""
        rr = self.store.read(name)
        if rr.ok:
            return rr.data
        if not rr.corrupt:
            return None
        if self.logger:
            self.logger.warning(f"Config file {name} is corrupt; attempting recovery.")
        if self.read_only:
            return None
        data, recovered = self.store.recover(name)
        return data if recovered else None

    @staticmethod
    def _validate(name: str, raw: Dict[str, Any]) -> Any:
        model = _MODELS.get(name)
        if model is None:
            raise ConfigError(f"Unknown config file {name}.", file=name)
        try:
            return model.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(f"{name} invalid: {e.errors()[0].get('msg', 'validation failed')}", file=name) from e
