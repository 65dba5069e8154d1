"""
Plugin discovery, trust validation and registration.

WHY THIS PACKAGE EXISTS:
Plugins are found on disk by their plugin.json, classified by their signing
state and only then published into the registry. No plugin code is executed
here; backend processes belong to the host.
"""

from plughost.core.plugins.manager import PluginManager
from plughost.core.plugins.registry import PluginRegistry

__all__ = ["PluginManager", "PluginRegistry"]
