"""
install_mod.py
Install a mod from a local .pak, a local .zip, or Nexus Mods, and commit its
.pak into the game's ~mods folder.

Remote installs run these steps in order; progress is reported at fixed
checkpoints, not per byte:
  0.2  mod info fetched
  0.4  file list fetched (latest MAIN file selected)
  0.6  download link resolved (nxm:// key attached when present)
  0.8  file downloaded
  1.0  .pak written to ~mods

Writes into ~mods go through a temp file in the same folder followed by
os.replace, so the game never sees a half-written .pak.
"""

from __future__ import annotations

import os
import re
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Iterable

from Nexus.nexus_api import NexusAPIError, NexusModFile
from Nexus.nexus_download import NexusDownloader
from Nexus.nxm_handler import DownloadCredential
from Utils.app_log import app_log
from Utils.mod_info import ModInfo
from Utils.pak_archive import extract_first_pak
from Utils.settings import ManagerConfig, is_archive, is_pak, normalize_pak_name

LOCAL = "Local"
DEFAULT_REMOTE_VERSION = "1.0"

# (fraction 0.0-1.0, status message)
ProgressCallback = Callable[[float, str], None]


class NoMainFileError(NexusAPIError):
    """Raised when a mod has no file in the MAIN category."""
    def __init__(self, mod_id: int):
        super().__init__(f"No main files available for mod {mod_id}")
        self.mod_id = mod_id


class UnsupportedFileError(ValueError):
    """Raised for anything that is neither a .pak nor a .zip."""


@dataclass
class InstallResult:
    """Outcome of one install request, as shown to the user."""
    success: bool
    mod: ModInfo | None = None
    error: str = ""
    mod_id: int | None = None


@dataclass
class BatchInstallResult:
    success_count: int = 0
    installed: list[ModInfo] = field(default_factory=list)
    errors: list[tuple[int, str]] = field(default_factory=list)

    @property
    def message(self) -> str:
        if not self.errors:
            return f"Successfully installed {self.success_count} mods"
        lines = [f"Mod {mod_id}: {err}" for mod_id, err in self.errors]
        return (f"Installed {self.success_count} mods with {len(self.errors)} errors:\n"
                + "\n".join(lines))


def _parse_version(s: str) -> tuple[int, ...]:
    """Convert a version string like '1.10.2' or 'v2.0b' to a tuple of ints for comparison.

    Each dot-separated part contributes its first run of digits; a part
    without digits counts as 0.
    """
    out = []
    for part in s.strip().split("."):
        m = re.search(r"\d+", part)
        out.append(int(m.group()) if m else 0)
    return tuple(out) if out else (0,)


def select_main_file(files: Iterable[NexusModFile], mod_id: int = 0) -> NexusModFile:
    """Return the MAIN-category file with the highest version.

    Versions compare numerically per dot-separated part ("10.0" > "9.0"),
    falling back to the raw string to break ties.
    """
    main = [f for f in files if f.is_main]
    if not main:
        raise NoMainFileError(mod_id)
    return max(main, key=lambda f: (_parse_version(f.version), f.version))


def write_atomic(dest: Path, src: BinaryIO | bytes) -> None:
    """Write *src* to *dest* via a temp file in the same directory."""
    fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=".", suffix=".part")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            if isinstance(src, (bytes, bytearray)):
                fh.write(src)
            else:
                shutil.copyfileobj(src, fh)
        os.replace(tmp, dest)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


class ModInstaller:
    """
    Parameters
    ----------
    config : ManagerConfig
    downloader : NexusDownloader | None
        Needed for remote installs only.
    on_installed : callable(ModInfo), optional
        Called with every new record, after its file is in place.
    """

    def __init__(self, config: ManagerConfig,
                 downloader: NexusDownloader | None = None,
                 on_installed: Callable[[ModInfo], None] | None = None):
        self._config = config
        self._downloader = downloader
        self._on_installed = on_installed

    # -- commit -------------------------------------------------------------

    def _commit(self, file_name: str, src: BinaryIO | bytes) -> Path:
        """Place a .pak in ~mods under *file_name* (normalised)."""
        name = normalize_pak_name(file_name)
        self._config.mods_dir.mkdir(parents=True, exist_ok=True)
        dest = self._config.mods_dir / name
        write_atomic(dest, src)
        # A disabled copy of the same file would leave the mod in both folders
        stale = self._config.unloaded_dir / name
        if stale.is_file():
            stale.unlink()
            app_log(f"Removed older disabled copy of {name}")
        app_log(f"Installed {name} → {self._config.mods_dir}")
        return dest

    def _finish(self, record: ModInfo) -> ModInfo:
        if self._on_installed is not None:
            self._on_installed(record)
        return record

    # -- local --------------------------------------------------------------

    def install_local_file(self, source: Path | str) -> ModInfo:
        """Copy a .pak into ~mods."""
        source = Path(source)
        if not is_pak(source.name):
            raise UnsupportedFileError(f"Not a .pak file: {source.name}")
        with open(source, "rb") as fh:
            dest = self._commit(source.name, fh)
        return self._finish(ModInfo(
            name=dest.stem,
            version=LOCAL,
            author=LOCAL,
            description="",
            nexus_mod_id=None,
            installed_path=dest,
            enabled=True,
        ))

    def install_local_archive(self, archive: Path | str) -> ModInfo:
        """Install the first .pak found inside a .zip."""
        with tempfile.TemporaryDirectory(prefix="s2mm_") as tmp:
            pak = extract_first_pak(Path(archive), Path(tmp))
            return self.install_local_file(pak)

    def install_local(self, path: Path | str) -> ModInfo:
        path = Path(path)
        if is_pak(path.name):
            return self.install_local_file(path)
        if is_archive(path.name):
            return self.install_local_archive(path)
        raise UnsupportedFileError(
            f"Unsupported file type: {path.name} (expected .pak or .zip)")

    # -- remote -------------------------------------------------------------

    def _require_downloader(self) -> NexusDownloader:
        if self._downloader is None:
            raise NexusAPIError("Nexus API key not configured")
        return self._downloader

    @staticmethod
    def _pick_file(files: list[NexusModFile], mod_id: int,
                   file_id: int | None) -> NexusModFile:
        if file_id is not None:
            for f in files:
                if f.file_id == file_id:
                    return f
            app_log(f"File {file_id} not listed for mod {mod_id}, using latest main file")
        return select_main_file(files, mod_id)

    def install_remote(
        self,
        mod_id: int,
        credential: DownloadCredential | None = None,
        file_id: int | None = None,
        progress_cb: ProgressCallback | None = None,
    ) -> ModInfo:
        """
        Download and install a mod from Nexus.

        *credential* (and *file_id*) come from an nxm:// link; without them
        the download only succeeds for Premium accounts.
        """
        report = progress_cb or (lambda fraction, message: None)
        downloader = self._require_downloader()
        api = downloader.api

        report(0.0, "Fetching mod information...")
        info = api.get_mod(mod_id)
        report(0.2, f"Fetching file list for {info.name}...")

        files = api.get_mod_files(mod_id).files
        file = self._pick_file(files, mod_id, file_id)
        if not (is_pak(file.file_name) or is_archive(file.file_name)):
            raise UnsupportedFileError(
                f"Unsupported download type: {file.file_name} (expected .pak or .zip)")
        report(0.4, f"Requesting download link for {file.file_name}...")

        links = downloader.resolve_links(mod_id, file.file_id, credential)
        report(0.6, f"Downloading {file.file_name}...")

        downloaded = downloader.fetch_first(links)
        report(0.8, f"Installing {file.file_name}...")

        if is_archive(file.file_name):
            with tempfile.TemporaryDirectory(prefix="s2mm_") as tmp:
                pak = extract_first_pak(downloaded.data, Path(tmp))
                with open(pak, "rb") as fh:
                    dest = self._commit(pak.name, fh)
        else:
            dest = self._commit(file.file_name, downloaded.data)

        record = ModInfo(
            name=info.name,
            version=file.version or DEFAULT_REMOTE_VERSION,
            author=info.author,
            description=info.description,
            nexus_mod_id=mod_id,
            installed_path=dest,
            enabled=True,
        )
        report(1.0, f"Installed {info.name}")
        return self._finish(record)

    def install_batch(self, mod_ids: list[int],
                      progress_cb: ProgressCallback | None = None) -> BatchInstallResult:
        """Install several mods one after another; failures don't stop the batch."""
        result = BatchInstallResult()
        total = len(mod_ids)
        for index, mod_id in enumerate(mod_ids):
            def _scaled(fraction: float, message: str, _i: int = index) -> None:
                if progress_cb:
                    progress_cb((_i + fraction) / total,
                                f"[{_i + 1}/{total}] {message}")

            try:
                record = self.install_remote(mod_id, progress_cb=_scaled)
            except (NexusAPIError, OSError, ValueError) as exc:
                app_log(f"Mod {mod_id}: install failed: {exc}")
                result.errors.append((mod_id, str(exc)))
                continue
            result.installed.append(record)
            result.success_count += 1
        if progress_cb and total:
            progress_cb(1.0, result.message)
        return result
