"""
mod_info.py
The record kept for every managed mod, and its mod_list.json form.

JSON shape (one object per mod):
  {"name": str, "version": str, "author": str, "description": str,
   "nexus_mod_id": int | null, "installed_path": str | null, "enabled": bool}

``enabled`` is derived from the directory the file sits in; reconciliation
overwrites whatever was stored.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

UNKNOWN = "Unknown"


@dataclass
class ModInfo:
    name: str
    version: str = ""
    author: str = ""
    description: str = ""
    nexus_mod_id: int | None = None
    installed_path: Path | None = None
    enabled: bool = False

    @property
    def file_name(self) -> str:
        """Name of the backing .pak file, or "" when not installed."""
        return self.installed_path.name if self.installed_path else ""

    def with_path(self, path: Path, enabled: bool) -> ModInfo:
        return replace(self, installed_path=path, enabled=enabled)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "author": self.author,
            "description": self.description,
            "nexus_mod_id": self.nexus_mod_id,
            "installed_path": str(self.installed_path) if self.installed_path else None,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, d: dict) -> ModInfo:
        """Build a record from one manifest entry.

        Raises KeyError/TypeError/ValueError when the entry is not a mod
        object; callers turn that into their own corruption error.
        """
        if not isinstance(d, dict):
            raise TypeError(f"expected an object, got {type(d).__name__}")
        name = d["name"]
        if not isinstance(name, str):
            raise TypeError("'name' must be a string")
        mod_id = d.get("nexus_mod_id")
        path = d.get("installed_path")
        return cls(
            name=name,
            version=str(d.get("version") or ""),
            author=str(d.get("author") or ""),
            description=str(d.get("description") or ""),
            nexus_mod_id=int(mod_id) if mod_id is not None else None,
            installed_path=Path(path) if path else None,
            enabled=bool(d.get("enabled", False)),
        )

    @classmethod
    def untracked(cls, path: Path, enabled: bool) -> ModInfo:
        """Placeholder record for a .pak found on disk but not in the manifest."""
        return cls(
            name=path.stem,
            version=UNKNOWN,
            author=UNKNOWN,
            description="",
            nexus_mod_id=None,
            installed_path=path,
            enabled=enabled,
        )
