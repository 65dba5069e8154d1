from __future__ import annotations

"""
Periodic host/plugin update check.

Runs alongside request serving. It only writes its own fields, never the
plugin registry, so it needs no coordination with readers of the registry.
"""

import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests
from packaging.version import InvalidVersion, Version

from plughost.core.config.models import UpdateCheckConfig
from plughost.core.logger import get_logger
from plughost.core.plugins.models import PluginBase


class UpdateChecker:
    def __init__(
        self,
        *,
        cfg: UpdateCheckConfig,
        plugins_provider: Callable[[], Iterable[PluginBase]],
        session: Optional[requests.Session] = None,
        logger: Any = None,
    ):
        self.cfg = cfg
        self.plugins_provider = plugins_provider
        self.session = session or requests.Session()
        self.log = logger or get_logger("updates")
        self._lock = threading.Lock()
        self.host_latest_version = ""
        self.host_has_update = False
        self.plugin_latest_versions: Dict[str, str] = {}
        self.plugin_has_update: Dict[str, bool] = {}

    # ---- public API ----
    def run(self, stop: threading.Event) -> None:
        """
        Check now, then every interval until `stop` is set. A failed check
        is logged and the loop keeps going.
        """
        self._check_once()
        while not stop.wait(timeout=float(self.cfg.interval_seconds)):
            self._check_once()
        self.log.debug("Update checker stopped")

    def check_for_updates(self) -> None:
        if not self.cfg.enabled:
            return
        self.log.debug("Checking for updates")
        self._check_plugins()
        self._check_host()

    def status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "host_version": self.cfg.host_version,
                "host_latest_version": self.host_latest_version,
                "host_has_update": self.host_has_update,
                "plugins": {
                    pid: {"latest_version": v, "has_update": self.plugin_has_update.get(pid, False)}
                    for pid, v in sorted(self.plugin_latest_versions.items())
                },
            }

    # ---- internals ----
    def _check_once(self) -> None:
        try:
            self.check_for_updates()
        except Exception as e:  # noqa: BLE001
            self.log.warning(f"Update check failed: {e}")

    def _external_plugins(self) -> List[PluginBase]:
        return [p for p in self.plugins_provider() if not p.is_core]

    def _get_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Any:
        try:
            r = self.session.get(url, params=params, timeout=float(self.cfg.timeout_seconds))
            r.raise_for_status()
            return r.json()
        except (requests.RequestException, ValueError) as e:
            self.log.debug(f"Failed to get update information from {url}: {e}")
            return None

    def _check_plugins(self) -> None:
        plugins = self._external_plugins()
        if not plugins:
            return
        slugs = ",".join(sorted(p.id for p in plugins))
        body = self._get_json(self.cfg.plugins_url, params={"slugIn": slugs, "grafanaVersion": self.cfg.host_version})
        if not isinstance(body, list):
            return
        remote = {str(it.get("slug") or ""): str(it.get("version") or "") for it in body if isinstance(it, dict)}
        latest: Dict[str, str] = {}
        has_update: Dict[str, bool] = {}
        for p in plugins:
            v = remote.get(p.id)
            if not v:
                continue
            latest[p.id] = v
            has_update[p.id] = p.info.version != v
        with self._lock:
            self.plugin_latest_versions = latest
            self.plugin_has_update = has_update

    def _check_host(self) -> None:
        body = self._get_json(self.cfg.latest_url)
        if not isinstance(body, dict):
            return
        current = str(self.cfg.host_version)
        if "-" in current:
            latest = str(body.get("testing") or "")
            has_update = not current.startswith(latest)
        else:
            latest = str(body.get("stable") or "")
            has_update = latest != current
        try:
            has_update = Version(current) < Version(latest)
        except InvalidVersion:
            pass
        with self._lock:
            self.host_latest_version = latest
            self.host_has_update = has_update
