from __future__ import annotations

"""
Plugin discovery (no code is loaded).

WHY THIS FILE EXISTS:
Plugins may be nested inside other plugins (an app shipping its own panels),
so every subfolder is walked looking for plugin.json. Discovery reads only
manifests, file listings and signature envelopes.
"""

import errno
import os
from typing import Any, Dict, List, Mapping, Optional

from plughost.core.errors import PlugHostError, PluginScanError
from plughost.core.logger import get_logger
from plughost.core.plugins.files import collect_plugin_files_within
from plughost.core.plugins.manifest import read_plugin_base
from plughost.core.plugins.models import MANIFEST_FILENAME, PluginBase
from plughost.core.plugins.signature import get_signature_state


SKIP_DIR_NAMES = frozenset({"node_modules", "Chromium.app"})


class PluginScanner:
    def __init__(
        self,
        *,
        plugin_path: str,
        require_signed: bool = False,
        public_keys: Optional[Mapping[str, Any]] = None,
        logger: Any = None,
    ):
        self.plugin_path = os.path.normpath(os.path.abspath(str(plugin_path)))
        self.require_signed = bool(require_signed)
        self.public_keys = dict(public_keys or {})
        self.log = logger or get_logger("plugins")
        self.plugins: Dict[str, PluginBase] = {}
        self.errors: List[Exception] = []

    def scan(self) -> Dict[str, PluginBase]:
        """
        Walk plugin_path and return {plugin_dir: descriptor}.

        A root that does not exist or cannot be read yields no plugins.
        Per-plugin load failures are recorded in `errors`; any other I/O
        failure during the walk raises PluginScanError.
        """
        try:
            top = os.scandir(self.plugin_path)
        except (FileNotFoundError, NotADirectoryError) as e:
            self.log.debug(f"Couldn't scan directory since it doesn't exist: {self.plugin_path} ({e})")
            return self.plugins
        except PermissionError as e:
            self.log.debug(f"Couldn't scan directory due to lack of permissions: {self.plugin_path} ({e})")
            return self.plugins
        top.close()

        seen_real: set[str] = set()
        for current, dirs, files in os.walk(self.plugin_path, topdown=True, onerror=self._walk_error, followlinks=True):
            real = os.path.realpath(current)
            if real in seen_real:
                # symlink loop
                dirs[:] = []
                continue
            seen_real.add(real)
            dirs[:] = sorted(d for d in dirs if d not in SKIP_DIR_NAMES)
            if MANIFEST_FILENAME not in files:
                continue
            json_path = os.path.join(current, MANIFEST_FILENAME)
            try:
                self._load_plugin(json_path)
            except (PlugHostError, OSError) as e:
                self.log.error(f"Failed to load plugin: {e} (pluginPath={current})")
                self.errors.append(e)
        return self.plugins

    def _walk_error(self, err: OSError) -> None:
        self.log.warning(f"Could not scan dir {self.plugin_path}: {err}")
        raise PluginScanError(
            f"filesystem walk reported an error for {getattr(err, 'filename', '')!r}: {err}",
            plugin_path=self.plugin_path,
            errno=errno.errorcode.get(err.errno or 0, ""),
        ) from err

    def _load_plugin(self, json_path: str) -> None:
        self.log.debug(f"Loading plugin {json_path}")
        plugin = read_plugin_base(json_path)
        try:
            plugin.files = collect_plugin_files_within(plugin.plugin_dir)
        except OSError:
            self.log.warning(f"Could not collect plugin file information in directory (pluginID={plugin.id}, dir={plugin.plugin_dir})")
            raise

        state = get_signature_state(plugin, self.public_keys)
        plugin.signature = state.status
        plugin.signature_type = state.type
        plugin.signature_org = state.signing_org
        if state.reason:
            self.log.debug(f"Plugin {plugin.id} signature is {state.status.value}: {state.reason}")

        self.plugins[os.path.normpath(plugin.plugin_dir)] = plugin
