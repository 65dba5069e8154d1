from __future__ import annotations

"""
Frontend asset wiring for registered plugins.

Computes module paths, base URLs and logo URLs, and returns the static
routes the HTTP layer must serve for plugins living outside the static root.
"""

import os
import posixpath
import re
from typing import Dict, List
from urllib.parse import urlparse

from plughost.core.plugins.models import AppPlugin, PluginBase, PluginInclude, StaticRoute


def slugify(name: str) -> str:
    s = re.sub(r"[^a-z0-9]+", "-", str(name or "").strip().lower())
    return s.strip("-")


def is_external_plugin(plugin_dir: str, static_root_path: str) -> bool:
    root = os.path.normpath(os.path.abspath(static_root_path))
    d = os.path.normpath(os.path.abspath(plugin_dir))
    return not (d == root or d.startswith(root + os.sep))


def eval_relative_plugin_url_path(path_str: str, base_url: str) -> str:
    if not path_str:
        return ""
    if urlparse(path_str).scheme:
        return path_str
    return posixpath.join(base_url, path_str)


def _logo_url(plugin_type: str, path_str: str, base_url: str) -> str:
    if not path_str:
        return f"public/img/icn-{plugin_type}.svg"
    return eval_relative_plugin_url_path(path_str, base_url)


def _handle_module_defaults(plugin: PluginBase, static_root_path: str) -> None:
    if is_external_plugin(plugin.plugin_dir, static_root_path):
        plugin.module = posixpath.join("plugins", plugin.id, "module")
        plugin.base_url = posixpath.join("public/plugins", plugin.id)
        return
    # Anything shipped under the static root is part of the host itself.
    plugin.is_core = True
    current_dir = os.path.basename(os.path.normpath(plugin.plugin_dir))
    plugin.module = posixpath.join("app/plugins", plugin.type, current_dir, "module")
    plugin.base_url = posixpath.join("public/app/plugins", plugin.type, current_dir)


def init_frontend_plugin(plugin: PluginBase, static_root_path: str) -> List[StaticRoute]:
    routes: List[StaticRoute] = []
    if is_external_plugin(plugin.plugin_dir, static_root_path):
        routes.append(StaticRoute(directory=plugin.plugin_dir, plugin_id=plugin.id))
    _handle_module_defaults(plugin, static_root_path)
    plugin.info.logos.small = _logo_url(plugin.type, plugin.info.logos.small, plugin.base_url)
    plugin.info.logos.large = _logo_url(plugin.type, plugin.info.logos.large, plugin.base_url)
    return routes


def _set_paths_based_on_app(child: PluginBase, app: AppPlugin, static_root_path: str) -> None:
    app_sub_path = child.plugin_dir.replace(app.plugin_dir, "", 1).replace("\\", "/").strip("/")
    child.included_in_app_id = app.id
    child.base_url = app.base_url
    if is_external_plugin(app.plugin_dir, static_root_path):
        child.module = posixpath.join("plugins", app.id, app_sub_path, "module")
    else:
        child.module = posixpath.join("app/plugins/app", app.id, app_sub_path, "module")


def init_app(app: AppPlugin, children: Dict[str, PluginBase], static_root_path: str) -> List[StaticRoute]:
    """
    Initialise an app plugin and adopt the panel/datasource plugins that
    live inside its directory.
    """
    routes = init_frontend_plugin(app, static_root_path)
    prefix = os.path.normpath(app.plugin_dir) + os.sep
    for child_id in sorted(children):
        child = children[child_id]
        if not os.path.normpath(child.plugin_dir).startswith(prefix):
            continue
        _set_paths_based_on_app(child, app, static_root_path)
        app.found_child_plugins.append(PluginInclude(name=child.name, id=child.id, type=child.type))

    app.default_nav_url = f"/plugins/{app.id}/page/"
    for include in app.includes:
        if not include.slug:
            include.slug = slugify(include.name)
        if include.type == "page" and include.default_nav:
            app.default_nav_url = f"/plugins/{app.id}/page/{include.slug}"
        if include.type == "dashboard" and include.default_nav:
            app.default_nav_url = f"/dashboard/db/{include.slug}"
    return routes
