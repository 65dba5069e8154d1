from __future__ import annotations

"""
File inventory helpers for plugin signing.

A plugin's file manifest is every file under its directory except the
signature envelope, as `/`-separated paths relative to the plugin directory.
"""

import hashlib
import os
from typing import Dict, Iterable, List

from plughost.core.plugins.models import SIGNATURE_FILENAME


def sha256_file(path: str) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(64 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def _raise(err: OSError) -> None:
    raise err


def collect_plugin_files_within(plugin_dir: str) -> List[str]:
    """
    Return sorted relative paths for all files under plugin_dir, excluding
    MANIFEST.txt at any depth. Walk errors propagate.
    """
    out: List[str] = []
    for root, dirs, files in os.walk(plugin_dir, onerror=_raise):
        dirs.sort()
        for fn in files:
            if fn == SIGNATURE_FILENAME:
                continue
            rel = os.path.relpath(os.path.join(root, fn), plugin_dir)
            out.append(rel.replace(os.sep, "/"))
    return sorted(out)


def hash_files(plugin_dir: str, files: Iterable[str]) -> Dict[str, str]:
    return {rel: sha256_file(os.path.join(plugin_dir, *rel.split("/"))) for rel in files}
