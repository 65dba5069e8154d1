from plughost.core.config.manager import ConfigManager
from plughost.core.config.models import AppConfig, PluginsConfig, UpdateCheckConfig
from plughost.core.config.paths import ConfigFsPaths

__all__ = ["ConfigManager", "ConfigFsPaths", "AppConfig", "PluginsConfig", "UpdateCheckConfig"]
