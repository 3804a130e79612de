"""
reconcile.py
Bring mod_list.json back in line with what is actually on disk.

For every recorded mod the backing .pak is looked up by file name in the
active (~mods) directory, then in the unloaded directory.  Its location
decides ``enabled`` and ``installed_path``; a mod found in neither place is
dropped.  Any .pak sitting in either directory that no surviving record
claims is added with placeholder metadata.  The corrected list is saved
before it is returned, so running this twice in a row is a no-op.
"""

from __future__ import annotations

from pathlib import Path

from Utils.app_log import app_log
from Utils.mod_info import ModInfo
from Utils.mod_manifest import ManifestStore
from Utils.settings import ManagerConfig, is_pak, pak_name_candidates


def scan_paks(directory: Path) -> list[Path]:
    """Return the .pak files directly inside *directory*, sorted by name.

    A missing directory is treated as empty; any other OSError propagates.
    """
    if not directory.is_dir():
        return []
    return sorted(
        (p for p in directory.iterdir() if p.is_file() and is_pak(p.name)),
        key=lambda p: p.name,
    )


def _path_key(path: Path) -> str:
    return str(path.absolute())


class Reconciler:

    def __init__(self, config: ManagerConfig, store: ManifestStore):
        self._config = config
        self._store = store

    def locate(self, file_name: str) -> tuple[Path, bool] | None:
        """Find *file_name* in the managed directories.

        Returns (path, enabled) or None.  The active directory wins when the
        file is present in both.
        """
        names = pak_name_candidates(file_name)
        for directory, enabled in ((self._config.mods_dir, True),
                                   (self._config.unloaded_dir, False)):
            for name in names:
                path = directory / name
                if path.is_file():
                    return path, enabled
        return None

    def reconcile(self) -> list[ModInfo]:
        self._config.ensure_dirs()
        records = self._store.load()

        survivors: list[ModInfo] = []
        claimed: set[str] = set()
        for record in records:
            if record.installed_path is None:
                app_log(f"Dropping '{record.name}': no installed file recorded")
                continue
            found = self.locate(record.installed_path.name)
            if found is None:
                app_log(f"Dropping '{record.name}': {record.installed_path.name} no longer exists")
                continue
            path, enabled = found
            key = _path_key(path)
            if key in claimed:
                app_log(f"Dropping duplicate entry '{record.name}' for {path.name}")
                continue
            claimed.add(key)
            survivors.append(record.with_path(path, enabled))

        discovered: list[ModInfo] = []
        for directory, enabled in ((self._config.mods_dir, True),
                                   (self._config.unloaded_dir, False)):
            for path in scan_paks(directory):
                key = _path_key(path)
                if key in claimed:
                    continue
                claimed.add(key)
                discovered.append(ModInfo.untracked(path, enabled))
                app_log(f"Found untracked mod {path.name}")

        result = survivors + discovered
        self._store.save(result)
        return result
