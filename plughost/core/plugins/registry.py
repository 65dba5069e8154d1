from __future__ import annotations

import threading
from typing import Dict, List, Optional

from plughost.core.errors import DuplicatePluginError
from plughost.core.plugins.models import (
    AppPlugin,
    DataSourcePlugin,
    PanelPlugin,
    PluginBase,
    RendererPlugin,
    StaticRoute,
)


class PluginRegistry:
    """
    Typed plugin registries owned by the plugin manager.

    Populated during startup discovery and read-only afterwards. Writes and
    the snapshot helpers take the lock so a later reload can swap contents
    safely; plain attribute reads are for the post-startup read-only phase.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.data_sources: Dict[str, DataSourcePlugin] = {}
        self.panels: Dict[str, PanelPlugin] = {}
        self.apps: Dict[str, AppPlugin] = {}
        self.renderers: Dict[str, RendererPlugin] = {}
        self.plugins: Dict[str, PluginBase] = {}
        self.static_routes: List[StaticRoute] = []

    def add(self, plugin: PluginBase) -> None:
        """
        Insert into the typed and combined registries. The first plugin
        registered for an id wins; a later one raises DuplicatePluginError.
        """
        with self._lock:
            existing = self.plugins.get(plugin.id)
            if existing is not None:
                raise DuplicatePluginError(plugin.id, existing_dir=existing.plugin_dir, plugin_dir=plugin.plugin_dir)
            if isinstance(plugin, DataSourcePlugin):
                self.data_sources[plugin.id] = plugin
            elif isinstance(plugin, PanelPlugin):
                self.panels[plugin.id] = plugin
            elif isinstance(plugin, AppPlugin):
                self.apps[plugin.id] = plugin
            elif isinstance(plugin, RendererPlugin):
                self.renderers[plugin.id] = plugin
            else:
                raise TypeError(f"Unrecognized plugin type {type(plugin).__name__}")
            self.plugins[plugin.id] = plugin

    def add_static_routes(self, routes: List[StaticRoute]) -> None:
        with self._lock:
            self.static_routes.extend(routes)

    def get(self, plugin_id: str) -> Optional[PluginBase]:
        with self._lock:
            return self.plugins.get(plugin_id)

    @property
    def renderer(self) -> Optional[RendererPlugin]:
        with self._lock:
            for plugin in self.renderers.values():
                return plugin
            return None

    def snapshot(self) -> List[PluginBase]:
        with self._lock:
            return sorted(self.plugins.values(), key=lambda p: p.id)

    def __contains__(self, plugin_id: object) -> bool:
        with self._lock:
            return plugin_id in self.plugins

    def __len__(self) -> int:
        with self._lock:
            return len(self.plugins)
