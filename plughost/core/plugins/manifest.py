from __future__ import annotations

import json
import os
from typing import Any, Dict

from pydantic import ValidationError

from plughost.core.errors import MalformedManifestError
from plughost.core.plugins.models import PluginBase


def read_manifest_dict(json_path: str) -> Dict[str, Any]:
    with open(json_path, "rb") as f:
        raw = f.read()
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedManifestError(f"plugin.json is not valid JSON: {e}", path=json_path) from e
    if not isinstance(data, dict):
        raise MalformedManifestError("plugin.json is not an object", path=json_path)
    return data


def read_plugin_base(json_path: str) -> PluginBase:
    """
    Decode plugin.json into a base descriptor rooted at its containing folder.

    Only the common fields are read here; type-specific fields are parsed by
    the loaders after trust validation.
    """
    data = read_manifest_dict(json_path)
    try:
        base = PluginBase.model_validate(data)
    except ValidationError as e:
        raise MalformedManifestError(f"plugin.json has invalid fields: {e.errors()[0].get('msg', '')}", path=json_path) from e
    if not base.id or not base.type:
        raise MalformedManifestError(path=json_path)
    base.plugin_dir = os.path.dirname(os.path.abspath(json_path))
    return base
