"""
mod_manager.py
ModManager: the one object a front end talks to.

It owns the authoritative in-memory list of mods.  The list is rebuilt from
disk by refresh() (reconciliation), and every change made through the
manager (install, toggle, import) updates it and saves mod_list.json.  A
view only ever displays ``manager.mods``; it never rebuilds state from its
own widgets.

Remote installs can be submitted to a single background worker; the
returned Future resolves to an InstallResult / BatchInstallResult and the
optional done callback receives the same value (from the worker thread, so
a GUI should hop back to its main loop before touching widgets).
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from Nexus.nexus_api import NexusAPI, NexusAPIError
from Nexus.nexus_download import NexusDownloader
from Nexus.nxm_handler import DownloadCredential, InvalidNxmLinkError, NxmLink
from Utils.app_log import app_log
from Utils.install_mod import (
    BatchInstallResult,
    InstallResult,
    ModInstaller,
    ProgressCallback,
)
from Utils.mod_bundle import export_bundle, import_bundle
from Utils.mod_info import ModInfo
from Utils.mod_manifest import ManifestStore
from Utils.mod_toggle import CollisionPolicy, ModToggler
from Utils.reconcile import Reconciler
from Utils.settings import ManagerConfig

_INSTALL_ERRORS = (NexusAPIError, OSError, ValueError)


@dataclass
class ToggleResult:
    """``enabled`` is what the toggle control should show afterwards."""
    success: bool
    enabled: bool
    error: str = ""
    mod: ModInfo | None = None


class ModManager:
    """
    Parameters
    ----------
    config : ManagerConfig
    api : NexusAPI | None
        Defaults to a client built from ``config.api_key`` (None without a key).
    policy : CollisionPolicy
        What enable/disable do when the destination already has the file.
    """

    def __init__(self, config: ManagerConfig, api: NexusAPI | None = None,
                 policy: CollisionPolicy = CollisionPolicy.KEEP):
        self._config = config
        if api is None and config.api_key:
            api = NexusAPI(config.api_key, game_domain=config.game_domain)
        self._api = api
        self._store = ManifestStore(config.manifest_path)
        self._reconciler = Reconciler(config, self._store)
        self._toggler = ModToggler(config, policy)
        self._installer = ModInstaller(
            config,
            NexusDownloader(api) if api is not None else None,
            on_installed=self._add_record,
        )
        self._lock = threading.RLock()
        self._mods: list[ModInfo] = []
        self._loaded = False
        self._executor: ThreadPoolExecutor | None = None

    @property
    def config(self) -> ManagerConfig:
        return self._config

    @property
    def api(self) -> NexusAPI | None:
        return self._api

    @property
    def mods(self) -> list[ModInfo]:
        with self._lock:
            return list(self._mods)

    # -- catalog ------------------------------------------------------------

    def refresh(self) -> list[ModInfo]:
        """Reconcile mod_list.json with the mod folders and reload the list."""
        with self._lock:
            self._mods = self._reconciler.reconcile()
            self._loaded = True
            return list(self._mods)

    def _ensure_loaded(self) -> None:
        """Load the catalog before the first change, so a save never drops
        records this instance hasn't seen yet."""
        with self._lock:
            if not self._loaded:
                self.refresh()

    def find(self, name: str) -> ModInfo | None:
        """Look a mod up by display name or .pak file name (case-insensitive)."""
        wanted = name.lower()
        with self._lock:
            for mod in self._mods:
                if mod.name.lower() == wanted or mod.file_name.lower() == wanted:
                    return mod
        return None

    def _index_of(self, mod: ModInfo) -> int:
        for i, m in enumerate(self._mods):
            if m is mod:
                return i
        for i, m in enumerate(self._mods):
            if mod.installed_path is not None and m.installed_path == mod.installed_path:
                return i
        return -1

    def _add_record(self, record: ModInfo) -> None:
        with self._lock:
            self._ensure_loaded()
            # A reinstall overwrites the same file (and removes a disabled copy);
            # its record takes the old one's place
            for i, m in enumerate(self._mods):
                if m.file_name and m.file_name == record.file_name:
                    self._mods[i] = record
                    break
            else:
                self._mods.append(record)
            self._store.save(self._mods)

    # -- toggle -------------------------------------------------------------

    def set_enabled(self, mod: ModInfo, enabled: bool) -> ToggleResult:
        if mod.installed_path is None:
            return ToggleResult(False, mod.enabled, f"'{mod.name}' has no installed file")
        with self._lock:
            self._ensure_loaded()
            try:
                new_path = self._toggler.set_enabled(mod.installed_path, enabled)
            except OSError as exc:
                app_log(f"Could not {'enable' if enabled else 'disable'} '{mod.name}': {exc}")
                return ToggleResult(False, mod.enabled, str(exc), mod)

            updated = mod.with_path(new_path, enabled)
            index = self._index_of(mod)
            if index >= 0:
                self._mods[index] = updated
            else:
                self._mods.append(updated)
            try:
                self._store.save(self._mods)
            except OSError as exc:
                return ToggleResult(True, enabled,
                                    f"Mod moved, but the mod list could not be saved: {exc}",
                                    updated)
        app_log(f"{'Enabled' if enabled else 'Disabled'} '{mod.name}'")
        return ToggleResult(True, enabled, "", updated)

    def enable(self, mod: ModInfo) -> ToggleResult:
        return self.set_enabled(mod, True)

    def disable(self, mod: ModInfo) -> ToggleResult:
        return self.set_enabled(mod, False)

    # -- install ------------------------------------------------------------

    def install_local(self, path: Path | str) -> InstallResult:
        try:
            self._ensure_loaded()
            record = self._installer.install_local(path)
        except _INSTALL_ERRORS as exc:
            app_log(f"Install of {Path(path).name} failed: {exc}")
            return InstallResult(False, error=str(exc))
        return InstallResult(True, mod=record)

    def install_remote(self, mod_id: int,
                       credential: DownloadCredential | None = None,
                       file_id: int | None = None,
                       progress_cb: ProgressCallback | None = None) -> InstallResult:
        try:
            self._ensure_loaded()
            record = self._installer.install_remote(
                mod_id, credential=credential, file_id=file_id,
                progress_cb=progress_cb)
        except _INSTALL_ERRORS as exc:
            app_log(f"Error installing mod {mod_id}: {exc}")
            return InstallResult(False, error=str(exc), mod_id=mod_id)
        return InstallResult(True, mod=record, mod_id=mod_id)

    def install_from_nxm(self, link: NxmLink | str,
                         progress_cb: ProgressCallback | None = None) -> InstallResult:
        if isinstance(link, str):
            try:
                link = NxmLink.parse(link)
            except InvalidNxmLinkError as exc:
                return InstallResult(False, error=str(exc))
        if link.game_domain != self._config.game_domain:
            return InstallResult(
                False,
                error=f"Link is for '{link.game_domain}', not '{self._config.game_domain}'",
                mod_id=link.mod_id)
        return self.install_remote(link.mod_id, credential=link.credential,
                                   file_id=link.file_id, progress_cb=progress_cb)

    def install_batch(self, mod_ids: list[int],
                      progress_cb: ProgressCallback | None = None) -> BatchInstallResult:
        self._ensure_loaded()
        return self._installer.install_batch(mod_ids, progress_cb=progress_cb)

    # -- background ---------------------------------------------------------

    def _submit(self, fn: Callable, done_cb: Callable | None, *args, **kwargs) -> Future:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="s2mm-install")
            future = self._executor.submit(fn, *args, **kwargs)
        if done_cb is not None:
            future.add_done_callback(lambda f: done_cb(f.result()))
        return future

    def submit_install_remote(
        self, mod_id: int,
        credential: DownloadCredential | None = None,
        file_id: int | None = None,
        progress_cb: ProgressCallback | None = None,
        done_cb: Callable[[InstallResult], None] | None = None,
    ) -> Future:
        """Run install_remote() on the worker. Returns Future[InstallResult]."""
        return self._submit(self.install_remote, done_cb, mod_id,
                            credential=credential, file_id=file_id,
                            progress_cb=progress_cb)

    def submit_install_from_nxm(
        self, link: NxmLink | str,
        progress_cb: ProgressCallback | None = None,
        done_cb: Callable[[InstallResult], None] | None = None,
    ) -> Future:
        return self._submit(self.install_from_nxm, done_cb, link,
                            progress_cb=progress_cb)

    def submit_install_batch(
        self, mod_ids: list[int],
        progress_cb: ProgressCallback | None = None,
        done_cb: Callable[[BatchInstallResult], None] | None = None,
    ) -> Future:
        """Run install_batch() on the worker. Returns Future[BatchInstallResult]."""
        return self._submit(self.install_batch, done_cb, mod_ids,
                            progress_cb=progress_cb)

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    # -- bundles ------------------------------------------------------------

    def export_bundle(self, bundle_path: Path | str) -> int:
        self._ensure_loaded()
        return export_bundle(self.mods, bundle_path)

    def import_bundle(self, bundle_path: Path | str) -> list[ModInfo]:
        """Import a bundle and append its mods to the list (no de-duplication)."""
        self._ensure_loaded()
        records = import_bundle(Path(bundle_path), self._config.mods_dir,
                                self._config.unloaded_dir)
        with self._lock:
            self._mods.extend(records)
            self._store.save(self._mods)
        return records
