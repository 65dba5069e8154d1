from __future__ import annotations

"""
PluginManager: discovery + trust validation + registration + queries.

WHY THIS FILE EXISTS:
This is the single public API for the plugin registry. It ensures:
- scans run sequentially at startup, each with its own signing policy
- only trusted plugins reach the registry, and the first id registered wins
- every decision is logged and published on the event bus
"""

import os
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from plughost.core.config.models import PluginsConfig
from plughost.core.errors import DuplicatePluginError, PlugHostError, PluginNotFoundError, PluginScanError
from plughost.core.events.models import PluginEvent, EventSeverity, SourceSubsystem
from plughost.core.logger import get_logger
from plughost.core.plugins.ancestry import resolve_roots, root_of
from plughost.core.plugins.frontend import init_app, init_frontend_plugin
from plughost.core.plugins.loaders import BackendRegistrar, Registrar
from plughost.core.plugins.models import (
    AppPlugin,
    DataSourcePlugin,
    PanelPlugin,
    PluginBase,
    PluginError,
    PluginErrorCode,
    PluginSettingInfo,
    SignatureStatus,
)
from plughost.core.plugins.registry import PluginRegistry
from plughost.core.plugins.scanner import PluginScanner
from plughost.core.plugins.signature import load_public_keys
from plughost.core.plugins.trust import TrustDecision, TrustValidator, UnsignedCondition
from plughost.core.plugins.updates import UpdateChecker


# org_id -> persisted per-org plugin settings
PluginSettingsQuery = Callable[[int], List[PluginSettingInfo]]


@dataclass
class ScanResult:
    plugin_dir: str
    registered: List[PluginBase] = field(default_factory=list)
    rejected: List[TrustDecision] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)


@dataclass
class EnabledPlugins:
    apps: List[AppPlugin] = field(default_factory=list)
    panels: List[PanelPlugin] = field(default_factory=list)
    data_sources: Dict[str, DataSourcePlugin] = field(default_factory=dict)
    pinned_apps: List[str] = field(default_factory=list)


class PluginManager:
    def __init__(
        self,
        *,
        cfg: PluginsConfig,
        root_dir: str = ".",
        registry: Optional[PluginRegistry] = None,
        allow_unsigned_condition: Optional[UnsignedCondition] = None,
        backend_registrar: Optional[BackendRegistrar] = None,
        settings_query: Optional[PluginSettingsQuery] = None,
        event_bus: Any = None,
        logger: Any = None,
        update_session: Any = None,
    ):
        self.cfg = cfg
        self.root_dir = str(root_dir)
        self.registry = registry or PluginRegistry()
        # Changing this only affects later scans; plugins already registered stay.
        self.allow_unsigned_condition = allow_unsigned_condition
        self.backend_registrar = backend_registrar
        self.settings_query = settings_query
        self.event_bus = event_bus
        self.log = logger or get_logger("plugins")
        self.public_keys = load_public_keys(cfg.public_keys)
        self._plugin_scanning_errors: Dict[str, PluginErrorCode] = {}
        self._load_errors: List[Exception] = []
        self.update_checker = UpdateChecker(
            cfg=cfg.update_check,
            plugins_provider=self.registry.snapshot,
            session=update_session,
            logger=get_logger("updates") if logger is None else logger,
        )

    # ---- helpers ----
    def _emit(
        self,
        trace_id: str,
        event_type: str,
        payload: Dict[str, Any],
        *,
        plugin_id: str = "",
        severity: EventSeverity = EventSeverity.INFO,
    ) -> None:
        if self.event_bus is None:
            return
        try:
            self.event_bus.publish_nowait(
                PluginEvent(
                    event_type=event_type,
                    trace_id=trace_id,
                    source_subsystem=SourceSubsystem.plugins,
                    severity=severity,
                    plugin_id=plugin_id,
                    payload=payload,
                )
            )
        except Exception as e:  # noqa: BLE001
            self.log.debug(f"Failed to publish {event_type}: {e}")

    def _path(self, p: str) -> str:
        if os.path.isabs(p):
            return os.path.normpath(p)
        return os.path.normpath(os.path.abspath(os.path.join(self.root_dir, p)))

    @property
    def static_root_path(self) -> str:
        return self._path(self.cfg.static_root_path)

    # ---- startup ----
    def init(self, *, trace_id: str = "startup") -> None:
        """
        Run every discovery scan, then wire frontend routes and app children.
        """
        self.log.info("Starting plugin search")

        plug_dir = os.path.join(self.static_root_path, "app", "plugins")
        self.log.debug(f"Scanning core plugin directory {plug_dir}")
        self._scan_or_raise(plug_dir, require_signed=False, what="core plugin directory", trace_id=trace_id)

        plug_dir = self._path(self.cfg.bundled_plugins_path)
        if os.path.exists(plug_dir):
            self.log.debug(f"Scanning bundled plugins directory {plug_dir}")
            self._scan_or_raise(plug_dir, require_signed=False, what="bundled plugins directory", trace_id=trace_id)

        plug_dir = self._path(self.cfg.plugins_path)
        if not os.path.exists(plug_dir):
            try:
                os.makedirs(plug_dir, exist_ok=True)
                self.log.info(f"External plugins directory created: {plug_dir}")
            except OSError as e:
                self.log.error(f"failed to create external plugins directory {plug_dir}: {e}")
        else:
            self.log.debug(f"Scanning external plugins directory {plug_dir}")
            self._scan_or_raise(plug_dir, require_signed=True, what="external plugins directory", trace_id=trace_id)

        self._scan_plugin_paths(trace_id=trace_id)
        self._init_frontend()

        for p in self.registry.snapshot():
            if p.is_core:
                p.signature = SignatureStatus.internal

        self._emit(
            trace_id,
            "plugin.discovery_completed",
            {"registered": len(self.registry), "rejected": len(self._plugin_scanning_errors), "errors": len(self._load_errors)},
        )

    def _scan_or_raise(self, plug_dir: str, *, require_signed: bool, what: str, trace_id: str) -> None:
        try:
            self.scan(plug_dir, require_signed=require_signed, trace_id=trace_id)
        except PlugHostError as e:
            raise PluginScanError(f"failed to scan {what} {plug_dir!r}: {e}", plugin_dir=plug_dir) from e

    def _scan_plugin_paths(self, *, trace_id: str) -> None:
        for plugin_id in sorted(self.cfg.plugin_settings):
            path = str((self.cfg.plugin_settings.get(plugin_id) or {}).get("path") or "")
            if not path:
                continue
            self._scan_or_raise(
                self._path(path),
                require_signed=True,
                what=f"directory configured for plugin {plugin_id!r}",
                trace_id=trace_id,
            )

    def _init_frontend(self) -> None:
        static_root = self.static_root_path
        reg = self.registry
        for pid in sorted(reg.panels):
            reg.add_static_routes(init_frontend_plugin(reg.panels[pid], static_root))
        for pid in sorted(reg.data_sources):
            reg.add_static_routes(init_frontend_plugin(reg.data_sources[pid], static_root))
        children: Dict[str, PluginBase] = {**reg.panels, **reg.data_sources}
        for pid in sorted(reg.apps):
            reg.add_static_routes(init_app(reg.apps[pid], children, static_root))
        renderer = reg.renderer
        if renderer is not None:
            reg.add_static_routes(init_frontend_plugin(renderer, static_root))

    # ---- scanning ----
    def scan(self, plugin_dir: str, *, require_signed: bool, trace_id: str = "scan") -> ScanResult:
        """
        Discover, validate and register the plugins under one directory.

        Parse, trust and duplicate faults are collected and the scan goes on.
        An unknown plugin type aborts the scan; plugins registered before it
        stay registered.
        """
        scanner = PluginScanner(
            plugin_path=plugin_dir,
            require_signed=require_signed,
            public_keys=self.public_keys,
            logger=self.log,
        )
        plugins = scanner.scan()
        self.log.debug("Initial plugin loading done")

        resolve_roots(plugins)
        validator = TrustValidator(
            require_signed=require_signed,
            dev_mode=self.cfg.dev_mode,
            allow_unsigned=self.cfg.allow_unsigned,
            allow_unsigned_condition=self.allow_unsigned_condition,
            logger=self.log,
        )
        registrar = Registrar(
            registry=self.registry,
            static_root_path=self.static_root_path,
            backend_registrar=self.backend_registrar,
            logger=self.log,
        )

        result = ScanResult(plugin_dir=scanner.plugin_path, errors=scanner.errors)
        try:
            for dpath in sorted(plugins):
                plugin = plugins[dpath]
                self.log.debug(f"Found plugin (id={plugin.id}, signature={plugin.signature.value}, hasRoot={plugin.root_dir is not None})")
                decision = validator.validate(plugin, root_of(plugin, plugins))
                if not decision.accepted:
                    self.log.debug(
                        f"Failed to validate plugin signature. Will skip loading (id={plugin.id}, "
                        f"signature={plugin.signature.value}, status={decision.error_code.value if decision.error_code else ''})"
                    )
                    if decision.error_code is not None:
                        self._plugin_scanning_errors[plugin.id] = decision.error_code
                    result.rejected.append(decision)
                    self._emit(
                        trace_id,
                        "plugin.rejected",
                        {"error_code": decision.error_code.value if decision.error_code else ""},
                        plugin_id=plugin.id,
                        severity=EventSeverity.WARN,
                    )
                    continue

                self.log.debug(f"Attempting to add plugin (id={plugin.id})")
                err_count = len(scanner.errors)
                registered = registrar.register(plugin, scanner.errors)
                if registered is None:
                    if len(scanner.errors) > err_count and isinstance(scanner.errors[-1], DuplicatePluginError):
                        self._emit(
                            trace_id,
                            "plugin.duplicate",
                            {"plugin_dir": plugin.plugin_dir},
                            plugin_id=plugin.id,
                            severity=EventSeverity.WARN,
                        )
                    continue
                result.registered.append(registered)
                self._emit(
                    trace_id,
                    "plugin.registered",
                    {"type": registered.type, "signature": registered.signature.value},
                    plugin_id=registered.id,
                )
        finally:
            if scanner.errors:
                self.log.warning(f"Some plugins failed to load: {[str(e) for e in scanner.errors]}")
                self._load_errors.extend(scanner.errors)
        return result

    # ---- queries ----
    def scanning_errors(self) -> List[PluginError]:
        return [PluginError(plugin_id=pid, error_code=code) for pid, code in sorted(self._plugin_scanning_errors.items())]

    def load_errors(self) -> List[Exception]:
        return list(self._load_errors)

    def get_plugin(self, plugin_id: str) -> Optional[PluginBase]:
        return self.registry.get(plugin_id)

    def get_datasource(self, plugin_id: str) -> Optional[DataSourcePlugin]:
        return self.registry.data_sources.get(plugin_id)

    def get_plugin_markdown(self, plugin_id: str, name: str) -> bytes:
        plugin = self.registry.get(plugin_id)
        if plugin is None:
            raise PluginNotFoundError(plugin_id)
        # name comes from the caller; keep it to a bare file stem
        stem = os.path.basename(str(name or ""))
        path = os.path.join(plugin.plugin_dir, f"{stem.upper()}.md")
        if not os.path.exists(path):
            path = os.path.join(plugin.plugin_dir, f"{stem.lower()}.md")
        if not os.path.exists(path):
            return b""
        with open(path, "rb") as f:
            return f.read()

    def get_plugin_settings(self, org_id: int) -> Dict[str, PluginSettingInfo]:
        """
        Persisted settings for the org, plus defaults for every other plugin:
        enabled, except apps (follow autoEnabled) and app children (follow
        their app's setting, disabled otherwise).
        """
        persisted = list(self.settings_query(org_id)) if self.settings_query is not None else []
        out: Dict[str, PluginSettingInfo] = {s.plugin_id: s for s in persisted}

        for plugin in self.registry.snapshot():
            if plugin.id in out:
                continue
            opt = PluginSettingInfo(plugin_id=plugin.id, org_id=org_id, enabled=True)
            app = self.registry.apps.get(plugin.id)
            if app is not None:
                opt.enabled = app.auto_enabled
                opt.pinned = app.auto_enabled
            if plugin.included_in_app_id:
                opt.enabled = False
                app_settings = out.get(plugin.included_in_app_id)
                parent = self.registry.apps.get(plugin.included_in_app_id)
                if app_settings is not None:
                    opt.enabled = app_settings.enabled
                elif parent is not None:
                    opt.enabled = parent.auto_enabled
            out[plugin.id] = opt
        return out

    def get_enabled_plugins(self, org_id: int) -> EnabledPlugins:
        settings = self.get_plugin_settings(org_id)

        def enabled(pid: str) -> bool:
            s = settings.get(pid)
            return s is not None and bool(s.enabled)

        out = EnabledPlugins()
        for pid in sorted(self.registry.apps):
            if enabled(pid):
                out.apps.append(self.registry.apps[pid])
                if settings[pid].pinned:
                    out.pinned_apps.append(pid)
        for pid in sorted(self.registry.data_sources):
            if enabled(pid):
                out.data_sources[pid] = self.registry.data_sources[pid]
        for pid in sorted(self.registry.panels):
            if enabled(pid):
                out.panels.append(self.registry.panels[pid])
        return out

    # ---- background ----
    def run(self, stop: threading.Event) -> None:
        """Blocking update loop; returns once `stop` is set."""
        self.update_checker.run(stop)

    def start_update_checker(self, stop: threading.Event) -> threading.Thread:
        t = threading.Thread(target=self.run, args=(stop,), name="plugin-update-checker", daemon=True)
        t.start()
        return t
