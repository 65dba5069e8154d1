from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class PluginSummary(BaseModel):
    id: str
    type: str
    name: str
    version: str
    signature: str
    signature_type: str = ""
    signature_org: str = ""
    module: str = ""
    base_url: str = ""
    included_in_app_id: str = ""
    has_root: bool = False


class PluginDetail(PluginSummary):
    plugin_dir: str
    dependencies: Dict[str, Any]
    includes: List[Dict[str, Any]]
    default_nav_url: str = ""


class PluginErrorResponse(BaseModel):
    plugin_id: str
    error_code: str


class UpdateStatusResponse(BaseModel):
    host_version: str
    host_latest_version: str
    host_has_update: bool
    plugins: Dict[str, Dict[str, Any]]
    detail: Optional[str] = None
