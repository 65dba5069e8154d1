from __future__ import annotations

"""
Plugin signature envelope (MANIFEST.txt): resolution and signing.

WHY THIS FILE EXISTS:
A plugin's trust state is computed from its files on disk and the embedded
envelope, before any of its code is loaded. Resolution is pure: it reads
files and returns a state, it never mutates the descriptor or global state.

Envelope format (JSON object):
    manifestVersion, signatureType, signedByOrg, signedByOrgName,
    plugin, version, keyId, time, files: {relpath: sha256}, signature
`signature` is base64 Ed25519 over the canonical JSON of every other field.
"""

import base64
import binascii
import json
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from plughost.core.plugins.files import collect_plugin_files_within, hash_files, sha256_file
from plughost.core.plugins.models import SIGNATURE_FILENAME, PluginBase, SignatureStatus


ENVELOPE_VERSION = "2.0.0"


@dataclass(frozen=True)
class SignatureState:
    status: SignatureStatus
    type: str = ""
    signing_org: str = ""
    reason: str = ""


def canonical_payload(envelope: Mapping[str, Any]) -> bytes:
    body = {k: v for k, v in envelope.items() if k != "signature"}
    return json.dumps(body, ensure_ascii=False, sort_keys=True, separators=(",", ":")).encode("utf-8")


def key_id_for(public_key: Ed25519PublicKey) -> str:
    raw = public_key.public_bytes(Encoding.Raw, PublicFormat.Raw)
    return binascii.hexlify(raw[:8]).decode("ascii")


def load_public_keys(raw: Mapping[str, str]) -> Dict[str, Ed25519PublicKey]:
    """keyId -> base64 raw public key (as stored in plugins.json)."""
    return {str(k): Ed25519PublicKey.from_public_bytes(base64.b64decode(v)) for k, v in raw.items()}


def _read_envelope(path: str) -> Optional[Dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return obj if isinstance(obj, dict) else None


def get_signature_state(plugin: PluginBase, public_keys: Mapping[str, Ed25519PublicKey]) -> SignatureState:
    """
    Classify a plugin directory:
    - no envelope -> unsigned
    - unparseable envelope, unknown key or bad signature -> invalid
    - id/version mismatch, changed/missing/extra files -> modified
    - otherwise valid
    """
    env_path = os.path.join(plugin.plugin_dir, SIGNATURE_FILENAME)
    if not os.path.isfile(env_path):
        return SignatureState(status=SignatureStatus.unsigned)

    envelope = _read_envelope(env_path)
    if envelope is None:
        return SignatureState(status=SignatureStatus.invalid, reason="envelope is not a JSON object")

    key = public_keys.get(str(envelope.get("keyId") or ""))
    if key is None:
        return SignatureState(status=SignatureStatus.invalid, reason="unknown signing key")
    try:
        sig = base64.b64decode(str(envelope.get("signature") or ""), validate=True)
        key.verify(sig, canonical_payload(envelope))
    except (InvalidSignature, binascii.Error, ValueError):
        return SignatureState(status=SignatureStatus.invalid, reason="signature verification failed")

    sig_type = str(envelope.get("signatureType") or "")
    org = str(envelope.get("signedByOrgName") or envelope.get("signedByOrg") or "")

    def modified(reason: str) -> SignatureState:
        return SignatureState(status=SignatureStatus.modified, type=sig_type, signing_org=org, reason=reason)

    if str(envelope.get("plugin") or "") != plugin.id or str(envelope.get("version") or "") != plugin.info.version:
        return modified("plugin id or version does not match")

    listed = envelope.get("files")
    if not isinstance(listed, dict):
        return modified("envelope has no file list")
    for rel, expected in listed.items():
        path = os.path.join(plugin.plugin_dir, *str(rel).split("/"))
        if not os.path.isfile(path):
            return modified(f"missing file {rel}")
        if sha256_file(path) != str(expected):
            return modified(f"changed file {rel}")
    for rel in plugin.files:
        if rel not in listed:
            return modified(f"unlisted file {rel}")

    return SignatureState(status=SignatureStatus.valid, type=sig_type, signing_org=org)


def sign_plugin_dir(
    plugin_dir: str,
    private_key: Ed25519PrivateKey,
    *,
    plugin_id: str,
    version: str,
    signature_type: str = "private",
    signed_by_org: str = "",
    signed_by_org_name: str = "",
) -> Dict[str, Any]:
    """
    Write MANIFEST.txt covering every other file currently in plugin_dir.
    """
    files = collect_plugin_files_within(plugin_dir)
    envelope: Dict[str, Any] = {
        "manifestVersion": ENVELOPE_VERSION,
        "signatureType": signature_type,
        "signedByOrg": signed_by_org,
        "signedByOrgName": signed_by_org_name or signed_by_org,
        "plugin": plugin_id,
        "version": version,
        "keyId": key_id_for(private_key.public_key()),
        "time": int(time.time() * 1000),
        "files": hash_files(plugin_dir, files),
    }
    envelope["signature"] = base64.b64encode(private_key.sign(canonical_payload(envelope))).decode("ascii")
    with open(os.path.join(plugin_dir, SIGNATURE_FILENAME), "w", encoding="utf-8") as f:
        json.dump(envelope, f, indent=2, ensure_ascii=False, sort_keys=True)
        f.write("\n")
    return envelope
