from __future__ import annotations

"""
Plugin descriptor models.

WHY THIS FILE EXISTS:
plugin.json is the contract-of-record for a plugin. `PluginBase` is the
descriptor the scanner builds from it; the typed subclasses are what the
loaders produce once a plugin has passed trust validation.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


MANIFEST_FILENAME = "plugin.json"
SIGNATURE_FILENAME = "MANIFEST.txt"

ROLE_VIEWER = "Viewer"


class PluginType(str, Enum):
    datasource = "datasource"
    panel = "panel"
    app = "app"
    renderer = "renderer"


class SignatureStatus(str, Enum):
    internal = "internal"  # core plugin, no signature needed
    valid = "valid"
    invalid = "invalid"  # envelope present but cryptographically broken
    modified = "modified"  # envelope valid, but content or identity changed
    unsigned = "unsigned"


class PluginErrorCode(str, Enum):
    signature_missing = "signatureMissing"
    signature_invalid = "signatureInvalid"
    signature_modified = "signatureModified"


class _JsonModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _null_is_absent(cls, data: Any) -> Any:
        # plugin.json `null` means "not set": the field keeps its default.
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class PluginDependencyItem(_JsonModel):
    id: str = ""
    type: str = ""
    name: str = ""
    version: str = ""


class PluginDependencies(_JsonModel):
    grafana_version: str = Field(default="", alias="grafanaVersion")
    plugins: Optional[List[PluginDependencyItem]] = None


class PluginInclude(_JsonModel):
    id: str = ""
    name: str = ""
    path: str = ""
    type: str = ""
    component: str = ""
    role: str = ""
    add_to_nav: bool = Field(default=False, alias="addToNav")
    default_nav: bool = Field(default=False, alias="defaultNav")
    slug: str = ""
    icon: str = ""


class PluginInfoLink(_JsonModel):
    name: str = ""
    url: str = ""


class PluginLogos(_JsonModel):
    small: str = ""
    large: str = ""


class PluginInfo(_JsonModel):
    author: Dict[str, Any] = Field(default_factory=dict)
    description: str = ""
    links: List[PluginInfoLink] = Field(default_factory=list)
    logos: PluginLogos = Field(default_factory=PluginLogos)
    version: str = ""
    updated: str = ""


class StaticRoute(BaseModel):
    model_config = ConfigDict(frozen=True)

    directory: str
    plugin_id: str


class PluginBase(_JsonModel):
    """
    One discovered plugin directory.

    Fields below `# runtime` are never read from plugin.json; the scanner and
    the trust validator fill them in.
    """

    id: str = ""
    type: str = ""
    name: str = ""
    info: PluginInfo = Field(default_factory=PluginInfo)
    dependencies: PluginDependencies = Field(default_factory=PluginDependencies)
    includes: List[PluginInclude] = Field(default_factory=list)
    module: str = ""
    base_url: str = Field(default="", alias="baseUrl")
    category: str = ""
    hide_from_list: bool = Field(default=False, alias="hideFromList")
    preload: bool = False
    state: str = ""
    sort: int = 0
    backend: bool = False
    is_core: bool = Field(default=False, alias="core")
    executable: str = ""

    # runtime
    plugin_dir: str = ""
    files: List[str] = Field(default_factory=list)
    signature: SignatureStatus = SignatureStatus.unsigned
    signature_type: str = ""
    signature_org: str = ""
    root_dir: Optional[str] = None
    included_in_app_id: str = ""
    default_nav_url: str = ""

    @field_validator("id", "type", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return str(v or "").strip()

    @property
    def is_backend_only(self) -> bool:
        return is_backend_only_type(self.type)


class DataSourcePlugin(PluginBase):
    annotations: bool = False
    metrics: bool = False
    alerting: bool = False
    explore: bool = False
    table: bool = False
    logs: bool = False
    tracing: bool = False
    mixed: bool = False
    builtin: bool = Field(default=False, alias="builtIn")
    streaming: bool = False
    query_options: Dict[str, bool] = Field(default_factory=dict, alias="queryOptions")
    routes: List[Dict[str, Any]] = Field(default_factory=list)


class PanelPlugin(PluginBase):
    skip_data_query: bool = Field(default=False, alias="skipDataQuery")


class AppPluginRoute(_JsonModel):
    path: str = ""
    method: str = ""
    req_role: str = Field(default="", alias="reqRole")
    url: str = ""


class AppPlugin(PluginBase):
    pages: List[PluginInclude] = Field(default_factory=list)
    routes: List[AppPluginRoute] = Field(default_factory=list)
    auto_enabled: bool = Field(default=False, alias="autoEnabled")
    found_child_plugins: List[PluginInclude] = Field(default_factory=list)


class RendererPlugin(PluginBase):
    pass


class PluginError(BaseModel):
    model_config = ConfigDict(frozen=True)

    plugin_id: str
    error_code: PluginErrorCode


class PluginSettingInfo(BaseModel):
    """Per-organization enablement, as persisted by the host."""

    model_config = ConfigDict(extra="forbid")

    plugin_id: str
    org_id: int
    enabled: bool = False
    pinned: bool = False
    plugin_version: str = ""


def is_backend_only_type(plugin_type: str) -> bool:
    return str(plugin_type) == PluginType.renderer.value
