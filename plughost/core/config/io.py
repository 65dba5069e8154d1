from __future__ import annotations

"""
On-disk config files: read, atomic write, backups and last-known-good.

Every file under config/ is a JSON object. A file that no longer parses is
moved aside into backups/ and replaced by its last-known-good copy, if any.
"""

import json
import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from plughost.core.config.paths import ConfigFsPaths


@dataclass(frozen=True)
class ReadResult:
    ok: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def corrupt(self) -> bool:
        return bool(self.error and self.error.startswith("corrupt_json"))


def _stamp() -> str:
    return time.strftime("%Y%m%d_%H%M%S", time.gmtime())


def read_json_file(path: str) -> ReadResult:
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
    except FileNotFoundError:
        return ReadResult(ok=False, error="missing")
    except json.JSONDecodeError as e:
        return ReadResult(ok=False, error=f"corrupt_json:{e}")
    except OSError as e:
        return ReadResult(ok=False, error=str(e))
    if not isinstance(obj, dict):
        return ReadResult(ok=False, error="not_object")
    return ReadResult(ok=True, data=obj)


class ConfigFileStore:
    def __init__(self, fs: ConfigFsPaths, *, max_backups: int = 10):
        self.fs = fs
        self.max_backups = int(max_backups)

    def path(self, name: str) -> str:
        return os.path.join(self.fs.config_dir, name)

    def ensure_dirs(self) -> None:
        for d in (self.fs.config_dir, self.fs.backups_dir, self.fs.last_known_good_dir):
            os.makedirs(d, exist_ok=True)

    def read(self, name: str) -> ReadResult:
        return read_json_file(self.path(name))

    def write(self, name: str, data: Dict[str, Any]) -> None:
        """Back up the current file, then replace it atomically."""
        target = self.path(name)
        os.makedirs(os.path.dirname(target), exist_ok=True)
        self.backup(name, reason="prewrite")
        fd, tmp = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=os.path.dirname(target))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=True)
                f.write("\n")
            os.replace(tmp, target)
        finally:
            if os.path.exists(tmp):
                os.remove(tmp)

    def backup(self, name: str, *, reason: str) -> Optional[str]:
        src = self.path(name)
        if not os.path.exists(src):
            return None
        os.makedirs(self.fs.backups_dir, exist_ok=True)
        out = os.path.join(self.fs.backups_dir, f"{name}.{_stamp()}.{reason}.json")
        shutil.copy2(src, out)
        self._prune(name)
        return out

    def backups_of(self, name: str) -> List[str]:
        if not os.path.isdir(self.fs.backups_dir):
            return []
        prefix = f"{name}."
        items = [os.path.join(self.fs.backups_dir, f) for f in os.listdir(self.fs.backups_dir) if f.startswith(prefix)]
        return sorted(items, key=os.path.getmtime, reverse=True)

    def _prune(self, name: str) -> None:
        for p in self.backups_of(name)[self.max_backups :]:
            try:
                os.remove(p)
            except FileNotFoundError:
                pass

    def recover(self, name: str) -> Tuple[Dict[str, Any], bool]:
        """
        Move a corrupt file into backups/ and restore last_known_good/<name>.
        Returns (data, recovered).
        """
        self.ensure_dirs()
        src = self.path(name)
        if os.path.exists(src):
            shutil.move(src, os.path.join(self.fs.backups_dir, f"{name}.{_stamp()}.corrupt.json"))
        lkg = read_json_file(os.path.join(self.fs.last_known_good_dir, name))
        if not lkg.ok:
            return {}, False
        self.write(name, lkg.data)
        return lkg.data, True

    def snapshot_last_known_good(self) -> None:
        os.makedirs(self.fs.last_known_good_dir, exist_ok=True)
        for name in os.listdir(self.fs.config_dir):
            src = self.path(name)
            if name.endswith(".json") and os.path.isfile(src):
                shutil.copy2(src, os.path.join(self.fs.last_known_good_dir, name))
