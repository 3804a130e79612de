"""
Command-line front end for the S.T.A.L.K.E.R. 2 mod manager.

  stalker2-mod-manager set-game ~/Games/Stalker2        # one-time setup
  stalker2-mod-manager set-api-key <key>                # Nexus personal API key
  stalker2-mod-manager list
  stalker2-mod-manager install MyMod.pak Other.zip
  stalker2-mod-manager install-nexus 33,41
  stalker2-mod-manager nxm "nxm://stalker2heartofchornobyl/mods/33/files/130?key=...&expires=..."
  stalker2-mod-manager disable MyMod
  stalker2-mod-manager export ~/mods-backup.zip
  stalker2-mod-manager import ~/mods-backup.zip

``--nxm URL`` is what the registered desktop handler passes.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from Nexus.nexus_api import NexusAPIError, load_api_key, save_api_key
from Nexus.nxm_handler import NxmHandler
from Utils.install_mod import BatchInstallResult, InstallResult
from Utils.mod_bundle import CorruptBundleError
from Utils.mod_info import ModInfo
from Utils.mod_manager import ModManager
from Utils.mod_manifest import CorruptManifestError
from Utils.settings import ManagerConfig, Settings
from version import __version__


def _err(msg: str) -> None:
    print(f"Error: {msg}", file=sys.stderr)


def _progress(fraction: float, message: str) -> None:
    print(f"  [{fraction * 100:5.1f}%] {message}", file=sys.stderr)


def _parse_ids(text: str) -> list[int]:
    try:
        ids = [int(s.strip()) for s in text.split(",") if s.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"expected mod IDs separated by commas (e.g. 1,2,3), got {text!r}") from None
    if not ids:
        raise argparse.ArgumentTypeError("no mod IDs given")
    return ids


def _format_mod(mod: ModInfo) -> str:
    mark = "x" if mod.enabled else " "
    source = f"nexus:{mod.nexus_mod_id}" if mod.nexus_mod_id is not None else "local"
    return f"[{mark}] {mod.name:<32} {mod.version:<10} {mod.author:<20} {source:<12} {mod.file_name}"


def _report_install(result: InstallResult) -> int:
    if result.success and result.mod is not None:
        print(f"Installed {result.mod.name} ({result.mod.file_name})")
        return 0
    _err(f"Error installing mod: {result.error}")
    return 1


def _build_manager() -> ModManager:
    settings = Settings.load()
    config = ManagerConfig.from_settings(settings, api_key=load_api_key())
    return ModManager(config)


def _cmd_list(manager: ModManager, args) -> int:
    mods = manager.refresh()
    if not mods:
        print("No mods installed.")
        return 0
    for mod in mods:
        print(_format_mod(mod))
    return 0


def _cmd_install(manager: ModManager, args) -> int:
    manager.refresh()
    status = 0
    for path in args.paths:
        status |= _report_install(manager.install_local(path))
    return status


def _cmd_install_nexus(manager: ModManager, args) -> int:
    manager.refresh()
    future = manager.submit_install_batch(args.ids, progress_cb=_progress)
    result: BatchInstallResult = future.result()
    if result.errors:
        _err(result.message)
        return 1
    print(result.message)
    return 0


def _cmd_nxm(manager: ModManager, args) -> int:
    manager.refresh()
    future = manager.submit_install_from_nxm(args.url, progress_cb=_progress)
    return _report_install(future.result())


def _toggle(manager: ModManager, name: str, enabled: bool) -> int:
    manager.refresh()
    mod = manager.find(name)
    if mod is None:
        _err(f"No mod named {name!r}")
        return 1
    result = manager.set_enabled(mod, enabled)
    if not result.success:
        _err(result.error)
        return 1
    if result.error:
        print(f"Warning: {result.error}", file=sys.stderr)
    print(f"{mod.name}: {'enabled' if result.enabled else 'disabled'}")
    return 0


def _cmd_enable(manager: ModManager, args) -> int:
    return _toggle(manager, args.name, True)


def _cmd_disable(manager: ModManager, args) -> int:
    return _toggle(manager, args.name, False)


def _cmd_export(manager: ModManager, args) -> int:
    manager.refresh()
    count = manager.export_bundle(args.path)
    print(f"Exported {count} mod(s) to {args.path}")
    return 0


def _cmd_import(manager: ModManager, args) -> int:
    manager.refresh()
    records = manager.import_bundle(args.path)
    print(f"Imported {len(records)} mod(s) from {args.path}")
    return 0


def _cmd_whoami(manager: ModManager, args) -> int:
    if manager.api is None:
        _err("Nexus API key not configured (use set-api-key)")
        return 1
    user = manager.api.validate()
    tier = "Premium" if user.is_premium else "Free"
    print(f"{user.name} ({tier})")
    return 0


_MANAGER_COMMANDS = {
    "list": _cmd_list,
    "install": _cmd_install,
    "install-nexus": _cmd_install_nexus,
    "nxm": _cmd_nxm,
    "enable": _cmd_enable,
    "disable": _cmd_disable,
    "export": _cmd_export,
    "import": _cmd_import,
    "whoami": _cmd_whoami,
}


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="stalker2-mod-manager",
        description="Manage .pak mods for S.T.A.L.K.E.R. 2: Heart of Chornobyl.",
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("-v", "--verbose", action="store_true", help="Show log messages")
    ap.add_argument("--nxm", metavar="URL", help="Install from an nxm:// link (used by the desktop handler)")
    sub = ap.add_subparsers(dest="command")

    sub.add_parser("list", help="Reconcile and list installed mods")

    p = sub.add_parser("install", help="Install local .pak or .zip files")
    p.add_argument("paths", nargs="+", type=Path)

    p = sub.add_parser("install-nexus", help="Install mods from Nexus by ID")
    p.add_argument("ids", type=_parse_ids, help="Mod IDs separated by commas, e.g. 1,2,3")

    p = sub.add_parser("nxm", help="Install from an nxm:// link")
    p.add_argument("url")

    p = sub.add_parser("enable", help="Move a mod into ~mods")
    p.add_argument("name")
    p = sub.add_parser("disable", help="Move a mod into unloaded_mods")
    p.add_argument("name")

    p = sub.add_parser("export", help="Export all mods to a bundle .zip")
    p.add_argument("path", type=Path)
    p = sub.add_parser("import", help="Import mods from a bundle .zip")
    p.add_argument("path", type=Path)

    p = sub.add_parser("set-game", help="Set the game install folder")
    p.add_argument("path", type=Path)
    p = sub.add_parser("set-api-key", help="Store the Nexus API key in the system keyring")
    p.add_argument("key")

    sub.add_parser("whoami", help="Validate the Nexus API key")
    sub.add_parser("register-nxm", help="Register as the nxm:// link handler")
    return ap


def main(argv: list[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    if args.nxm:
        args.command, args.url = "nxm", args.nxm

    if args.command is None:
        ap.print_help()
        return 1

    if args.command == "set-game":
        settings = Settings.load()
        settings.game_path = args.path.expanduser().resolve()
        settings.save()
        print(f"Game folder set to {settings.game_path}")
        return 0
    if args.command == "set-api-key":
        try:
            save_api_key(args.key)
        except RuntimeError as exc:
            _err(str(exc))
            return 1
        print("API key saved.")
        return 0
    if args.command == "register-nxm":
        ok = NxmHandler.register()
        print("nxm:// handler registered." if ok else "Could not register nxm:// handler.")
        return 0 if ok else 1

    try:
        manager = _build_manager()
    except ValueError as exc:
        _err(f"{exc} (use set-game)")
        return 1
    try:
        return _MANAGER_COMMANDS[args.command](manager, args)
    except (CorruptManifestError, CorruptBundleError, NexusAPIError, OSError) as exc:
        _err(str(exc))
        return 1
    finally:
        manager.shutdown()


if __name__ == "__main__":
    sys.exit(main())
