from __future__ import annotations

from pathlib import PurePath
from typing import Dict, Optional

from plughost.core.plugins.models import PluginBase


def resolve_roots(plugins: Dict[str, PluginBase]) -> None:
    """
    Bind each plugin to the outermost discovered plugin that contains it.

    Ancestor paths are rebuilt from the filesystem root inward and the first
    hit wins, so for nested A/B/C all discovered, C's root is A (not B).
    """
    for dpath, plugin in plugins.items():
        plugin.root_dir = None
        for ancestor in reversed(PurePath(dpath).parents):
            key = str(ancestor)
            if key in plugins:
                plugin.root_dir = key
                break


def root_of(plugin: PluginBase, plugins: Dict[str, PluginBase]) -> Optional[PluginBase]:
    if not plugin.root_dir:
        return None
    return plugins.get(plugin.root_dir)
