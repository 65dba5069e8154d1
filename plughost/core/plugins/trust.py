from __future__ import annotations

"""
Signature trust validation.

Signing is enforced only for backend plugins under scans that require it.
A nested plugin that is not itself valid inherits its root plugin's state.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from plughost.core.errors import SignatureStateError
from plughost.core.logger import get_logger
from plughost.core.plugins.models import PluginBase, PluginErrorCode, SignatureStatus


UnsignedCondition = Callable[[PluginBase], bool]


@dataclass(frozen=True)
class TrustDecision:
    plugin: PluginBase
    accepted: bool
    error_code: Optional[PluginErrorCode] = None


class TrustValidator:
    def __init__(
        self,
        *,
        require_signed: bool,
        dev_mode: bool = False,
        allow_unsigned: Iterable[str] = (),
        allow_unsigned_condition: Optional[UnsignedCondition] = None,
        logger: Any = None,
    ):
        self.require_signed = bool(require_signed)
        self.dev_mode = bool(dev_mode)
        self.allow_unsigned_ids = {str(x).strip() for x in allow_unsigned if str(x or "").strip()}
        self.allow_unsigned_condition = allow_unsigned_condition
        self.log = logger or get_logger("plugins")

    def validate(self, plugin: PluginBase, root: Optional[PluginBase] = None) -> TrustDecision:
        if plugin.signature == SignatureStatus.valid:
            self.log.debug(f"Plugin has valid signature (id={plugin.id})")
            return TrustDecision(plugin=plugin, accepted=True)

        if root is not None:
            if plugin.is_core or plugin.signature == SignatureStatus.internal:
                self.log.debug(
                    f"Not setting descendant plugin's signature to that of root since it's core or internal "
                    f"(plugin={plugin.id}, signature={plugin.signature.value}, isCore={plugin.is_core})"
                )
            else:
                self.log.debug(
                    f"Setting descendant plugin's signature to that of root (plugin={plugin.id}, root={root.id}, "
                    f"signature={plugin.signature.value}, rootSignature={root.signature.value})"
                )
                plugin.signature = root.signature
                if plugin.signature == SignatureStatus.valid:
                    self.log.debug(f"Plugin has valid signature (inherited from root) (id={plugin.id})")
                    return TrustDecision(plugin=plugin, accepted=True)
        else:
            self.log.debug(f"Non-valid plugin signature (pluginID={plugin.id}, pluginDir={plugin.plugin_dir}, state={plugin.signature.value})")

        # Only backend plugins are required to be signed.
        if not plugin.backend or not self.require_signed:
            return TrustDecision(plugin=plugin, accepted=True)

        state = plugin.signature
        if state == SignatureStatus.unsigned:
            if not self.allow_unsigned(plugin):
                self.log.debug(f"Plugin is unsigned (id={plugin.id})")
                return TrustDecision(plugin=plugin, accepted=False, error_code=PluginErrorCode.signature_missing)
            self.log.warning(f"Running an unsigned backend plugin (pluginID={plugin.id}, pluginDir={plugin.plugin_dir})")
            return TrustDecision(plugin=plugin, accepted=True)
        if state == SignatureStatus.invalid:
            self.log.debug(f"Plugin {plugin.id!r} has an invalid signature")
            return TrustDecision(plugin=plugin, accepted=False, error_code=PluginErrorCode.signature_invalid)
        if state == SignatureStatus.modified:
            self.log.debug(f"Plugin {plugin.id!r} has a modified signature")
            return TrustDecision(plugin=plugin, accepted=False, error_code=PluginErrorCode.signature_modified)
        raise SignatureStateError(plugin.id, getattr(state, "value", state))

    def allow_unsigned(self, plugin: PluginBase) -> bool:
        # A custom condition replaces the built-in policy entirely.
        if self.allow_unsigned_condition is not None:
            return bool(self.allow_unsigned_condition(plugin))
        if self.dev_mode:
            return True
        return plugin.id in self.allow_unsigned_ids
