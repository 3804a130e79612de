"""
mod_manifest.py
Read and write mod_list.json, the persisted catalog of managed mods.

The catalog is always handled as a whole document: callers load the full
list, change it, and save the full list.  Saves are atomic (temp file in the
same directory, then os.replace) so a crash never leaves a truncated file.
There is no cross-process lock.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from Utils.app_log import app_log
from Utils.mod_info import ModInfo


class CorruptManifestError(Exception):
    """Raised when mod_list.json exists but cannot be parsed."""
    def __init__(self, path: Path, reason: str):
        super().__init__(f"Mod list {path} is corrupt: {reason}")
        self.path = path


def records_to_json(records: list[ModInfo]) -> str:
    return json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False) + "\n"


def records_from_json(text: str) -> list[ModInfo]:
    """Parse a manifest document. Raises ValueError/KeyError/TypeError on bad input."""
    data = json.loads(text)
    if not isinstance(data, list):
        raise TypeError("top level must be an array")
    return [ModInfo.from_dict(entry) for entry in data]


class ManifestStore:
    """Load/save the catalog at *path*."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[ModInfo]:
        if not self._path.is_file():
            return []
        try:
            text = self._path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise CorruptManifestError(self._path, str(exc)) from exc
        try:
            return records_from_json(text)
        except (ValueError, KeyError, TypeError) as exc:
            raise CorruptManifestError(self._path, str(exc)) from exc

    def save(self, records: list[ModInfo]) -> None:
        content = records_to_json(records)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=".mod_list_", suffix=".tmp")
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, self._path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            app_log(f"Failed to save mod list to {self._path}: {exc}")
            raise
        app_log(f"Saved {len(records)} mod(s) to {self._path.name}")
