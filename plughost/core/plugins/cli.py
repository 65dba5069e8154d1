from __future__ import annotations

"""
CLI rendering helpers for the plugin commands.

These return lines instead of printing so the output is testable.
"""

import base64
import os
from typing import Any, List

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from plughost.core.errors import PlugHostError
from plughost.core.plugins.manifest import read_plugin_base
from plughost.core.plugins.models import MANIFEST_FILENAME
from plughost.core.plugins.signature import key_id_for, sign_plugin_dir


def plugins_list_lines(*, plugin_manager: Any) -> List[str]:
    """
    Columns: id | type | signature | org | dir
    """
    lines = ["id | type | signature | org | dir"]
    for p in plugin_manager.registry.snapshot():
        lines.append(f"{p.id} | {p.type} | {p.signature.value} | {p.signature_org or '-'} | {p.plugin_dir}")
    return lines


def plugins_errors_lines(*, plugin_manager: Any) -> List[str]:
    lines = ["plugin_id | error_code"]
    for e in plugin_manager.scanning_errors():
        lines.append(f"{e.plugin_id} | {e.error_code.value}")
    for err in plugin_manager.load_errors():
        code = err.code if isinstance(err, PlugHostError) else type(err).__name__
        lines.append(f"- | {code}: {err}")
    return lines


def static_routes_lines(*, plugin_manager: Any) -> List[str]:
    return [f"/public/plugins/{r.plugin_id} -> {r.directory}" for r in plugin_manager.registry.static_routes]


def keygen(private_key_path: str) -> List[str]:
    key = Ed25519PrivateKey.generate()
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    parent = os.path.dirname(private_key_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(private_key_path, "wb") as f:
        f.write(pem)
    if os.name != "nt":
        os.chmod(private_key_path, 0o600)
    pub = key.public_key().public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw)
    return [
        f"private key written to {private_key_path}",
        "add to config/plugins.json public_keys:",
        f'  "{key_id_for(key.public_key())}": "{base64.b64encode(pub).decode("ascii")}"',
    ]


def sign(plugin_dir: str, private_key_path: str, *, signature_type: str = "private", org: str = "") -> List[str]:
    with open(private_key_path, "rb") as f:
        key = serialization.load_pem_private_key(f.read(), password=None)
    if not isinstance(key, Ed25519PrivateKey):
        raise ValueError("signing key must be an Ed25519 private key")
    base = read_plugin_base(os.path.join(plugin_dir, MANIFEST_FILENAME))
    envelope = sign_plugin_dir(
        plugin_dir,
        key,
        plugin_id=base.id,
        version=base.info.version,
        signature_type=signature_type,
        signed_by_org=org,
    )
    return [f"signed {base.id}@{base.info.version} ({len(envelope['files'])} files, keyId={envelope['keyId']})"]
