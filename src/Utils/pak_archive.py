"""
pak_archive.py
Pull a single mod file out of a .zip download.

Only the first matching entry is extracted (archive order); other matches
are ignored.  Entry names that would land outside the destination folder
(absolute paths, ``..`` segments, drive letters) are skipped, never written.
"""

from __future__ import annotations

import io
import shutil
import zipfile
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable

from Utils.app_log import app_log
from Utils.settings import is_pak

ArchiveSource = Path | str | bytes | BinaryIO


class ArchiveEntryNotFoundError(FileNotFoundError):
    """Raised when no entry in the archive matches."""


class InvalidArchiveError(ValueError):
    """Raised when the data is not a readable zip archive."""


def safe_member_name(name: str) -> PurePosixPath | None:
    """Return the entry's relative path, or None if it would escape its folder."""
    normalized = name.replace("\\", "/")
    if not normalized or normalized.startswith("/"):
        return None
    parts = PurePosixPath(normalized).parts
    if not parts or any(p == ".." for p in parts) or ":" in parts[0]:
        return None
    parts = tuple(p for p in parts if p != ".")
    if not parts:
        return None
    return PurePosixPath(*parts)


def open_zip(archive: ArchiveSource) -> zipfile.ZipFile:
    """Open *archive* for reading. Raises InvalidArchiveError if it isn't a zip."""
    if isinstance(archive, (bytes, bytearray)):
        archive = io.BytesIO(archive)
    try:
        return zipfile.ZipFile(archive, "r")
    except zipfile.BadZipFile as exc:
        raise InvalidArchiveError(f"Not a valid zip archive: {exc}") from exc


def find_and_extract(
    archive: ArchiveSource,
    predicate: Callable[[PurePosixPath], bool],
    dest_dir: Path,
) -> Path:
    """
    Extract the first entry of *archive* for which *predicate* is true.

    The file is written directly into *dest_dir* under its base name.
    Raises ArchiveEntryNotFoundError when nothing matches and
    InvalidArchiveError when *archive* is not a zip.
    """
    dest_dir = Path(dest_dir)
    with open_zip(archive) as zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            rel = safe_member_name(info.filename)
            if rel is None:
                app_log(f"Skipping unsafe archive entry: {info.filename!r}")
                continue
            if not predicate(rel):
                continue
            dest_dir.mkdir(parents=True, exist_ok=True)
            target = dest_dir / rel.name
            with zf.open(info) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
            app_log(f"Extracted {info.filename} → {target}")
            return target
    raise ArchiveEntryNotFoundError("No matching file found in archive")


def extract_first_pak(archive: ArchiveSource, dest_dir: Path) -> Path:
    """find_and_extract() for the first .pak entry."""
    try:
        return find_and_extract(archive, lambda rel: is_pak(rel.name), dest_dir)
    except ArchiveEntryNotFoundError:
        raise ArchiveEntryNotFoundError("No .pak file found in zip archive") from None
