"""
mod_bundle.py
Export the whole mod collection to one .zip and import it back.

Bundle layout:
  mod-manifest.json        — same schema as mod_list.json (always first)
  mods/<file_name>.pak     — one entry per mod whose file exists
  mods/unloaded/<file_name>.pak
                           — the disabled copy when an enabled mod has the
                             same file name

Import extracts each mod into ~mods or unloaded_mods according to its
``enabled`` flag and rewrites ``installed_path`` to the new location.
Records without a matching mods/ entry are skipped.
"""

from __future__ import annotations

import zipfile
from pathlib import Path

from Utils.app_log import app_log
from Utils.install_mod import write_atomic
from Utils.mod_info import ModInfo
from Utils.mod_manifest import records_from_json, records_to_json
from Utils.pak_archive import ArchiveSource, InvalidArchiveError, open_zip, safe_member_name
from Utils.settings import normalize_pak_name

BUNDLE_MANIFEST = "mod-manifest.json"
BUNDLE_MODS_PREFIX = "mods/"
# Disabled copy of a mod whose file name is also active ("twins")
BUNDLE_UNLOADED_PREFIX = "mods/unloaded/"


class CorruptBundleError(Exception):
    """Raised when a bundle has no readable mod-manifest.json."""


def _arcname(record: ModInfo, active_names: set[str]) -> str:
    if not record.enabled and record.file_name in active_names:
        return BUNDLE_UNLOADED_PREFIX + record.file_name
    return BUNDLE_MODS_PREFIX + record.file_name


def export_bundle(records: list[ModInfo], bundle_path: Path | str) -> int:
    """Write *records* and their .pak files to *bundle_path*.

    Returns the number of mod files packed.
    """
    bundle_path = Path(bundle_path)
    bundle_path.parent.mkdir(parents=True, exist_ok=True)
    active_names = {r.file_name for r in records if r.enabled and r.file_name}
    packed = 0
    with zipfile.ZipFile(bundle_path, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(BUNDLE_MANIFEST, records_to_json(records))
        written: set[str] = set()
        for record in records:
            path = record.installed_path
            if path is None or not path.is_file():
                app_log(f"Export: skipping '{record.name}', file not found")
                continue
            arcname = _arcname(record, active_names)
            if arcname in written:
                continue
            zf.write(path, arcname)
            written.add(arcname)
            packed += 1
    app_log(f"Exported {packed} mod(s) to {bundle_path}")
    return packed


def import_bundle(bundle: ArchiveSource, mods_dir: Path,
                  unloaded_dir: Path) -> list[ModInfo]:
    """Extract a bundle into the managed folders.

    Each file is written atomically; a same-named copy left in the other
    folder by an earlier install is removed, unless this import wrote it.
    Returns the imported records with their new paths; the caller appends
    them to the catalog.
    """
    try:
        zf = open_zip(bundle)
    except InvalidArchiveError as exc:
        raise CorruptBundleError(str(exc)) from exc

    imported: list[ModInfo] = []
    written: set[Path] = set()
    with zf:
        try:
            manifest_text = zf.read(BUNDLE_MANIFEST).decode("utf-8")
        except KeyError:
            raise CorruptBundleError(f"Bundle has no {BUNDLE_MANIFEST}") from None
        except UnicodeDecodeError as exc:
            raise CorruptBundleError(f"{BUNDLE_MANIFEST} is not UTF-8: {exc}") from exc
        try:
            records = records_from_json(manifest_text)
        except (ValueError, KeyError, TypeError) as exc:
            raise CorruptBundleError(f"{BUNDLE_MANIFEST} is invalid: {exc}") from exc

        members = {info.filename: info for info in zf.infolist() if not info.is_dir()}
        for record in records:
            if not record.file_name:
                continue
            candidates = [BUNDLE_MODS_PREFIX + record.file_name]
            if not record.enabled:
                candidates.insert(0, BUNDLE_UNLOADED_PREFIX + record.file_name)
            info = next((members[c] for c in candidates if c in members), None)
            rel = safe_member_name(info.filename) if info else None
            if info is None or rel is None:
                app_log(f"Import: no file in bundle for '{record.name}'")
                continue

            name = normalize_pak_name(rel.name)
            target_dir, other_dir = ((mods_dir, unloaded_dir) if record.enabled
                                     else (unloaded_dir, mods_dir))
            target_dir.mkdir(parents=True, exist_ok=True)
            target = target_dir / name
            with zf.open(info) as src:
                write_atomic(target, src)
            written.add(target)

            stale = other_dir / name
            if stale not in written and stale.is_file():
                stale.unlink()
                app_log(f"Removed other copy of {name} from {other_dir.name}")
            imported.append(record.with_path(target, record.enabled))
    app_log(f"Imported {len(imported)} mod(s)")
    return imported
