"""
config_paths.py
Central helpers for resolving user-writable config files.

Follows the XDG Base Directory Specification:
  Config lives in $XDG_CONFIG_HOME/Stalker2ModManager  (default: ~/.config/Stalker2ModManager)
"""

import os
from pathlib import Path

APP_NAME = "Stalker2ModManager"


def get_config_dir() -> Path:
    """Return the app config directory, creating it if it doesn't exist.

    Respects $XDG_CONFIG_HOME; falls back to ~/.config/Stalker2ModManager.
    """
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    config_dir = base / APP_NAME
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_settings_path() -> Path:
    """Result: ~/.config/Stalker2ModManager/settings.json"""
    return get_config_dir() / "settings.json"


def get_manifest_path() -> Path:
    """Return the path of the persisted mod catalog.

    Result: ~/.config/Stalker2ModManager/mod_list.json
    """
    return get_config_dir() / "mod_list.json"
