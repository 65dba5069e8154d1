from __future__ import annotations

"""
Type-specific plugin loading and registration.

Each accepted descriptor is re-parsed from plugin.json into its typed model,
given its defaults, and published into the registry.
"""

import os
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import ValidationError

from plughost.core.errors import DuplicatePluginError, MalformedManifestError, UnknownPluginTypeError
from plughost.core.logger import get_logger
from plughost.core.plugins.frontend import is_external_plugin
from plughost.core.plugins.manifest import read_manifest_dict
from plughost.core.plugins.models import (
    MANIFEST_FILENAME,
    ROLE_VIEWER,
    AppPlugin,
    DataSourcePlugin,
    PanelPlugin,
    PluginBase,
    PluginType,
    RendererPlugin,
    SignatureStatus,
)
from plughost.core.plugins.registry import PluginRegistry


LOADERS: Dict[PluginType, Type[PluginBase]] = {
    PluginType.datasource: DataSourcePlugin,
    PluginType.panel: PanelPlugin,
    PluginType.app: AppPlugin,
    PluginType.renderer: RendererPlugin,
}

DEFAULT_RENDERER_EXECUTABLE = "plugin_start"

# Called for plugins with backend components; the host owns the process.
BackendRegistrar = Callable[[PluginBase], None]


def loader_for(plugin_type: str) -> Type[PluginBase]:
    try:
        return LOADERS[PluginType(plugin_type)]
    except ValueError as e:
        raise UnknownPluginTypeError(plugin_type) from e


def load_typed_plugin(raw: Dict[str, Any], base: PluginBase) -> PluginBase:
    cls = loader_for(base.type)
    plugin = cls.model_validate(raw)
    if isinstance(plugin, RendererPlugin):
        plugin.backend = True
        if not plugin.executable:
            plugin.executable = DEFAULT_RENDERER_EXECUTABLE
    if isinstance(plugin, AppPlugin):
        plugin.pages = [inc for inc in plugin.includes if inc.type == "page"]
    return plugin


def apply_defaults(plugin: PluginBase) -> None:
    if not plugin.dependencies.plugins:
        plugin.dependencies.plugins = []
    if not plugin.dependencies.grafana_version:
        plugin.dependencies.grafana_version = "*"
    for include in plugin.includes:
        if not include.role:
            include.role = ROLE_VIEWER


class Registrar:
    def __init__(
        self,
        *,
        registry: PluginRegistry,
        static_root_path: str,
        backend_registrar: Optional[BackendRegistrar] = None,
        logger: Any = None,
    ):
        self.registry = registry
        self.static_root_path = str(static_root_path)
        self.backend_registrar = backend_registrar
        self.log = logger or get_logger("plugins")

    def register(self, base: PluginBase, errors: List[Exception]) -> Optional[PluginBase]:
        """
        Load and publish one accepted descriptor.

        Unknown types raise UnknownPluginTypeError. A manifest that fails the
        typed parse, or a duplicate id, is appended to `errors` and None is
        returned; for duplicates the first registration is kept.
        """
        loader_for(base.type)
        json_path = os.path.join(base.plugin_dir, MANIFEST_FILENAME)

        if is_external_plugin(base.plugin_dir, self.static_root_path) and not base.is_backend_only:
            module_js = os.path.join(base.plugin_dir, "module.js")
            if not os.path.exists(module_js):
                self.log.warning(
                    f"Plugin missing module.js (name={base.name}, path={module_js}): "
                    "if you loaded this plugin from git, make sure to compile it."
                )

        try:
            plugin = load_typed_plugin(read_manifest_dict(json_path), base)
        except ValidationError as e:
            err = MalformedManifestError(
                f"plugin.json has invalid {base.type} fields: {e.errors()[0].get('msg', '')}", path=json_path
            )
            self.log.error(f"Failed to load plugin: {err} (pluginPath={base.plugin_dir})")
            errors.append(err)
            return None
        except MalformedManifestError as e:
            self.log.error(f"Failed to load plugin: {e} (pluginPath={base.plugin_dir})")
            errors.append(e)
            return None

        existing = self.registry.get(plugin.id)
        if existing is not None:
            self.log.warning(f"Plugin is duplicate (id={plugin.id})")
            errors.append(DuplicatePluginError(plugin.id, existing_dir=existing.plugin_dir, plugin_dir=base.plugin_dir))
            return None

        if is_external_plugin(base.plugin_dir, self.static_root_path):
            self.log.info(f"Registering plugin (id={plugin.id})")

        apply_defaults(plugin)

        # The typed re-parse does not carry discovery state.
        plugin.plugin_dir = base.plugin_dir
        plugin.files = list(base.files)
        plugin.signature = base.signature
        plugin.signature_type = base.signature_type
        plugin.signature_org = base.signature_org
        plugin.root_dir = base.root_dir
        if plugin.is_core:
            plugin.signature = SignatureStatus.internal

        if plugin.backend and self.backend_registrar is not None:
            self.backend_registrar(plugin)

        self.registry.add(plugin)
        self.log.debug(f"Successfully added plugin (id={plugin.id})")
        return plugin
