"""
nxm_handler.py
NXM protocol handler — parses ``nxm://`` links and registers the app
as a handler on Linux via XDG and .desktop files.

NXM link format
---------------
    nxm://<game_domain>/mods/<mod_id>/files/<file_id>?key=<key>&expires=<expires>

Free users must click "Download with Mod Manager" on the Nexus website;
the browser fires an ``nxm://`` URL containing a one-time key + expiry.
The key is what authorises the download for a non-Premium account, so a
link without one is rejected rather than silently treated as Premium.

Usage
-----
    from Nexus.nxm_handler import NxmHandler, NxmLink

    link = NxmLink.parse("nxm://stalker2heartofchornobyl/mods/33/files/130?key=abc&expires=1700000000")
    print(link.game_domain, link.mod_id, link.file_id)

    NxmHandler.register()   # one-time setup
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from Utils.app_log import app_log

NXM_SCHEME = "nxm"

# XDG .desktop file name used to register the handler
_DESKTOP_FILE_NAME = "stalker2modmanager-nxm.desktop"


class InvalidNxmLinkError(ValueError):
    """Raised when an nxm:// URL is malformed or incomplete."""


@dataclass(frozen=True)
class DownloadCredential:
    """One-off download authorisation carried by an nxm:// link."""
    key: str
    expires: int


# ---------------------------------------------------------------------------
# Parsed NXM link
# ---------------------------------------------------------------------------

@dataclass
class NxmLink:
    """
    Parsed components of an ``nxm://`` URL.

    Attributes
    ----------
    game_domain : str   e.g. "stalker2heartofchornobyl"
    mod_id      : int   e.g. 33
    file_id     : int   e.g. 130
    key         : str   one-time download key
    expires     : int   Unix timestamp when the key expires
    raw         : str   the original URL string
    """
    game_domain: str
    mod_id: int
    file_id: int
    key: str
    expires: int
    raw: str = ""

    @property
    def credential(self) -> DownloadCredential:
        return DownloadCredential(key=self.key, expires=self.expires)

    @classmethod
    def parse(cls, url: str) -> NxmLink:
        """
        Parse an ``nxm://`` URL into its components.

        Raises InvalidNxmLinkError naming the part that is missing or malformed.
        """
        parsed = urlparse(url.strip())

        if parsed.scheme.lower() != NXM_SCHEME:
            raise InvalidNxmLinkError(f"Invalid NXM URL scheme: {parsed.scheme or '(none)'!r}")

        game_domain = parsed.hostname or ""
        if not game_domain:
            raise InvalidNxmLinkError("Missing game domain in NXM URL")

        segments = [s for s in parsed.path.split("/") if s]
        if len(segments) != 4:
            raise InvalidNxmLinkError(
                f"Invalid NXM URL path {parsed.path!r}: expected /mods/<id>/files/<id>")
        if segments[0].lower() != "mods" or segments[2].lower() != "files":
            raise InvalidNxmLinkError(
                f"Invalid NXM URL path {parsed.path!r}: expected /mods/<id>/files/<id>")
        mod_id = _parse_int(segments[1], "mod id")
        file_id = _parse_int(segments[3], "file id")

        qs = parse_qs(parsed.query)
        key = qs.get("key", [""])[0]
        if not key:
            raise InvalidNxmLinkError("Missing key in NXM URL")
        expires_str = qs.get("expires", [""])[0]
        if not expires_str:
            raise InvalidNxmLinkError("Missing expires in NXM URL")
        expires = _parse_int(expires_str, "expires")

        return cls(
            game_domain=game_domain.lower(),
            mod_id=mod_id,
            file_id=file_id,
            key=key,
            expires=expires,
            raw=url,
        )


def _parse_int(value: str, what: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise InvalidNxmLinkError(f"Invalid {what} in NXM URL: {value!r}") from None


# ---------------------------------------------------------------------------
# Protocol registration (Linux / XDG)
# ---------------------------------------------------------------------------

class NxmHandler:
    """
    Manages ``nxm://`` protocol registration on Linux.

    Calling ``NxmHandler.register()`` creates (or updates) a .desktop file
    in ``~/.local/share/applications/`` that associates ``nxm://`` URLs
    with this program's ``--nxm`` option, then registers it with
    ``xdg-mime``.
    """

    @staticmethod
    def _desktop_path() -> Path:
        xdg = os.environ.get("XDG_DATA_HOME")
        base = Path(xdg) if xdg else Path.home() / ".local" / "share"
        return base / "applications" / _DESKTOP_FILE_NAME

    @staticmethod
    def _get_exec_command() -> str:
        """Build the Exec= line: the installed console script if there is one."""
        script = shutil.which("stalker2-mod-manager")
        if script:
            return f'"{script}" --nxm %u'
        return f'"{sys.executable}" -m cli --nxm %u'

    @classmethod
    def register(cls) -> bool:
        """
        Register this app as the handler for nxm:// links.

        Returns True on success, False if it could not be registered
        (e.g. xdg-mime not available).
        """
        desktop_path = cls._desktop_path()
        desktop_path.parent.mkdir(parents=True, exist_ok=True)

        desktop_content = (
            "[Desktop Entry]\n"
            "Type=Application\n"
            "Name=S.T.A.L.K.E.R. 2 Mod Manager (NXM Handler)\n"
            "Comment=Handle nxm:// download links from Nexus Mods\n"
            f"Exec={cls._get_exec_command()}\n"
            "Terminal=false\n"
            "NoDisplay=true\n"
            "MimeType=x-scheme-handler/nxm;\n"
            "Categories=Game;\n"
        )

        desktop_path.write_text(desktop_content)
        app_log(f"Wrote NXM .desktop file: {desktop_path}")

        if not shutil.which("xdg-mime"):
            app_log("xdg-mime not found — nxm:// handler not registered")
            return False
        try:
            subprocess.run(
                ["xdg-mime", "default", _DESKTOP_FILE_NAME,
                 "x-scheme-handler/nxm"],
                check=True,
                capture_output=True,
            )
        except subprocess.CalledProcessError as exc:
            app_log(f"xdg-mime default failed: {exc.stderr}")
            return False
        app_log("Registered nxm:// protocol handler via xdg-mime")
        return True

    @classmethod
    def is_registered(cls) -> bool:
        """Check whether our .desktop file exists."""
        return cls._desktop_path().is_file()
