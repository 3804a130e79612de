"""
mod_toggle.py
Enable / disable a mod by moving its .pak between the game's ~mods folder
and the unloaded_mods holding folder.

This is the only place that changes whether a mod is active.  Files are
matched by name: the caller's path only contributes its file name, so a
stale recorded path still toggles the right file.

Collision policy (a file with the same name already at the destination):
  KEEP     — the mod is already where it should be; nothing is moved.
  REPLACE  — the destination copy is deleted and the source moved over it.
             Only used when the caller asks for it explicitly.
"""

from __future__ import annotations

import shutil
from enum import Enum, auto
from pathlib import Path

from Utils.app_log import app_log
from Utils.settings import ManagerConfig, pak_name_candidates


class CollisionPolicy(Enum):
    KEEP = auto()
    REPLACE = auto()


class ModNotFoundError(FileNotFoundError):
    """Raised when a mod's file is in neither managed directory."""
    def __init__(self, file_name: str):
        super().__init__(f"{file_name} is not in the mods or unloaded mods folder")
        self.file_name = file_name


class ModToggler:

    def __init__(self, config: ManagerConfig,
                 policy: CollisionPolicy = CollisionPolicy.KEEP):
        self._config = config
        self._policy = policy

    def enable(self, path: Path | str) -> Path:
        """Move the mod into ~mods. Returns its new path."""
        return self._move(Path(path).name,
                          src_dir=self._config.unloaded_dir,
                          dst_dir=self._config.mods_dir)

    def disable(self, path: Path | str) -> Path:
        """Move the mod into unloaded_mods. Returns its new path."""
        return self._move(Path(path).name,
                          src_dir=self._config.mods_dir,
                          dst_dir=self._config.unloaded_dir)

    def set_enabled(self, path: Path | str, enabled: bool) -> Path:
        return self.enable(path) if enabled else self.disable(path)

    @staticmethod
    def _existing(directory: Path, names: list[str]) -> Path | None:
        for name in names:
            path = directory / name
            if path.is_file():
                return path
        return None

    def _move(self, file_name: str, src_dir: Path, dst_dir: Path) -> Path:
        names = pak_name_candidates(file_name)
        src = self._existing(src_dir, names)
        dst = self._existing(dst_dir, names)

        if dst is not None:
            if self._policy is CollisionPolicy.KEEP or src is None:
                return dst
            app_log(f"Replacing {dst} with {src}")
            dst.unlink()
        elif src is None:
            raise ModNotFoundError(names[0])

        # The file keeps the name it has on disk
        dst = dst_dir / src.name
        dst_dir.mkdir(parents=True, exist_ok=True)
        shutil.move(str(src), str(dst))
        app_log(f"Moved {src.name} → {dst_dir.name}")
        return dst
