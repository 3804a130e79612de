"""
settings.py
Persisted user settings and the runtime configuration built from them.

``Settings`` is what the user edits (game folder, Nexus game domain) and is
stored as settings.json in the config dir.  The Nexus API key is not part
of it; it lives in the system keyring (see Nexus.nexus_api.load_api_key).

``ManagerConfig`` is built once at start-up from Settings + API key and
handed to every component.  Nothing below the facade reads settings.json
again.

Game layout (relative to the game folder):
  Stalker2/Content/Paks/~mods             — active mods, loaded by the game
  Stalker2/ModManager/unloaded_mods       — disabled mods
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from Utils.app_log import app_log
from Utils.config_paths import get_manifest_path, get_settings_path

GAME_DOMAIN = "stalker2heartofchornobyl"

PAK_EXT = ".pak"
ARCHIVE_EXT = ".zip"

_MODS_SUBPATH = ("Stalker2", "Content", "Paks", "~mods")
_UNLOADED_SUBPATH = ("Stalker2", "ModManager", "unloaded_mods")


@dataclass
class Settings:
    game_path: Path | None = None
    game_domain: str = GAME_DOMAIN

    @classmethod
    def load(cls, path: Path | None = None) -> Settings:
        """Read settings.json; a missing or unreadable file yields defaults."""
        path = path or get_settings_path()
        if not path.is_file():
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            app_log(f"Settings: could not read {path} ({exc}), using defaults")
            return cls()
        if not isinstance(data, dict):
            return cls()
        game_path = data.get("game_path")
        return cls(
            game_path=Path(game_path) if game_path else None,
            game_domain=data.get("game_domain") or GAME_DOMAIN,
        )

    def save(self, path: Path | None = None) -> None:
        path = path or get_settings_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "game_path": str(self.game_path) if self.game_path else None,
            "game_domain": self.game_domain,
        }
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


@dataclass(frozen=True)
class ManagerConfig:
    """Everything a component needs to know about where things live."""
    mods_dir: Path
    unloaded_dir: Path
    manifest_path: Path
    game_domain: str = GAME_DOMAIN
    api_key: str = ""

    @classmethod
    def from_settings(cls, settings: Settings, api_key: str = "",
                      manifest_path: Path | None = None) -> ManagerConfig:
        if settings.game_path is None:
            raise ValueError("Game folder is not configured")
        game = Path(settings.game_path)
        return cls(
            mods_dir=game.joinpath(*_MODS_SUBPATH),
            unloaded_dir=game.joinpath(*_UNLOADED_SUBPATH),
            manifest_path=manifest_path or get_manifest_path(),
            game_domain=settings.game_domain or GAME_DOMAIN,
            api_key=api_key.strip(),
        )

    def ensure_dirs(self) -> None:
        """Create both managed directories if they don't exist."""
        self.mods_dir.mkdir(parents=True, exist_ok=True)
        self.unloaded_dir.mkdir(parents=True, exist_ok=True)


def normalize_pak_name(file_name: str) -> str:
    """Return *file_name* with exactly one ``.pak`` suffix.

    ``Foo.pak.pak`` → ``Foo.pak``, ``Foo`` → ``Foo.pak``.  Comparison is
    case-insensitive; the stem keeps its case.
    """
    name = file_name
    while name.lower().endswith(PAK_EXT):
        name = name[: -len(PAK_EXT)]
    return name + PAK_EXT


def is_pak(path: Path | str) -> bool:
    return str(path).lower().endswith(PAK_EXT)


def is_archive(path: Path | str) -> bool:
    return str(path).lower().endswith(ARCHIVE_EXT)


def pak_name_candidates(file_name: str) -> list[str]:
    """Names a mod's file may have on disk: the normalised name first, then
    the literal one when it differs (``Foo.PAK`` on a case-sensitive fs)."""
    names = [normalize_pak_name(file_name)]
    if is_pak(file_name) and file_name not in names:
        names.append(file_name)
    return names
