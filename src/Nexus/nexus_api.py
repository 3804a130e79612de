"""
nexus_api.py
Nexus Mods REST API v1 client, bound to one game domain.

Wraps the public API at https://api.nexusmods.com/v1.
Requires a personal API key generated at https://www.nexusmods.com/settings/api-keys

Rate limits
-----------
The server returns remaining quota in response headers:
  x-rl-hourly-remaining, x-rl-daily-remaining

HTTP 429 → rate-limited; back off and retry.
HTTP 403 on download_link → the account is not Premium and the request did
not carry the key/expires pair from an nxm:// link.

Usage
-----
    from Nexus.nexus_api import NexusAPI

    api   = NexusAPI(api_key="...")
    mod   = api.get_mod(33)
    files = api.get_mod_files(33)
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any, Callable

import keyring
import keyring.errors
import requests

from Utils.app_log import app_log
from Utils.settings import GAME_DOMAIN
from version import __version__

API_BASE = "https://api.nexusmods.com/v1"
APP_NAME = "Stalker2ModManager"
APP_VERSION = __version__

# Nexus file category ids: 1 = MAIN, 2 = UPDATE, 3 = OPTIONAL,
# 4 = OLD_VERSION, 5 = MISCELLANEOUS, 6 = DELETED, 7 = ARCHIVED
MAIN_FILE_CATEGORY_ID = 1

# How long to wait after a 429 before retrying (seconds)
_RATE_LIMIT_BACKOFF = 2.0
_MAX_RETRIES = 3

_CHUNK_SIZE = 256 * 1024

# Keys to redact when logging API responses (values replaced with [REDACTED])
_SENSITIVE_KEYS = frozenset({"key", "email", "api_key", "apikey", "token",
                             "authorization", "password", "uri"})

PREMIUM_REQUIRED_MESSAGE = (
    "Access denied. A Premium Nexus account is required for API downloads. "
    "Use \"Download with Mod Manager\" on the mod's Nexus page, or upgrade your account."
)

# Callback signature: (bytes_downloaded, total_bytes_or_zero)
ByteProgressCallback = Callable[[int, int], None]


def _redact_sensitive_response(text: str) -> str:
    """Return response text with sensitive fields redacted for safe logging."""
    if not text or not text.strip():
        return text
    try:
        data = json.loads(text)
    except ValueError:
        return text
    return json.dumps(_redact_sensitive_dict(data), indent=None, default=str)


def _redact_sensitive_dict(obj: Any) -> Any:
    """Recursively copy obj, replacing values for sensitive keys with [REDACTED]."""
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]" if k.lower() in _SENSITIVE_KEYS else _redact_sensitive_dict(v)
            for k, v in obj.items()
        }
    if isinstance(obj, list):
        return [_redact_sensitive_dict(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Data classes for typed responses
# ---------------------------------------------------------------------------

@dataclass
class NexusUser:
    """Validated user info returned by /users/validate."""
    user_id: int
    name: str
    is_premium: bool
    is_supporter: bool


@dataclass
class NexusModInfo:
    """Mod metadata from /games/{domain}/mods/{id}."""
    mod_id: int
    name: str
    author: str
    description: str = ""
    summary: str = ""
    version: str = ""
    category_id: int = 0
    available: bool = True
    status: str = ""


@dataclass
class NexusModFile:
    """A single file entry for a mod."""
    file_id: int
    name: str
    version: str
    category_id: int | None
    category_name: str       # "MAIN", "UPDATE", "OPTIONAL", "OLD_VERSION", "MISCELLANEOUS"
    file_name: str           # actual upload filename (.pak or .zip)
    size_kb: int = 0
    mod_version: str = ""
    is_primary: bool = False

    @property
    def is_main(self) -> bool:
        return self.category_id == MAIN_FILE_CATEGORY_ID


@dataclass
class NexusModFiles:
    """File listing for a mod."""
    files: list[NexusModFile] = field(default_factory=list)


@dataclass
class NexusDownloadLink:
    """A CDN download link returned by the API."""
    name: str        # mirror name, e.g. "Nexus CDN"
    short_name: str
    URI: str         # the actual download URL


@dataclass
class NexusRateLimits:
    """Current rate limit state."""
    hourly_remaining: int = -1
    daily_remaining: int = -1
    hourly_limit: int = -1
    daily_limit: int = -1


# ---------------------------------------------------------------------------
# API key persistence (system keyring)
# ---------------------------------------------------------------------------

_KEYRING_SERVICE = "Stalker2ModManager"
_KEYRING_USER = "nexus_api_key"


def load_api_key() -> str:
    """Load saved API key from system keyring, or return empty string."""
    try:
        key = keyring.get_password(_KEYRING_SERVICE, _KEYRING_USER)
    except keyring.errors.KeyringError as e:
        app_log(f"Keyring unavailable for Nexus API key: {e}")
        return ""
    return key.strip() if key else ""


def save_api_key(key: str) -> None:
    """Persist the API key to the system keyring."""
    try:
        keyring.set_password(_KEYRING_SERVICE, _KEYRING_USER, key.strip())
    except keyring.errors.KeyringError as e:
        app_log(f"Keyring unavailable for saving Nexus API key: {e}")
        raise RuntimeError(f"Cannot save API key: {e}") from e


def clear_api_key() -> None:
    """Delete the stored API key from the keyring."""
    try:
        keyring.delete_password(_KEYRING_SERVICE, _KEYRING_USER)
    except keyring.errors.PasswordDeleteError:
        pass
    except keyring.errors.KeyringError as e:
        app_log(f"Keyring unavailable when clearing Nexus API key: {e}")


# ---------------------------------------------------------------------------
# Main API client
# ---------------------------------------------------------------------------

class NexusAPIError(Exception):
    """Raised for non-recoverable API errors."""
    def __init__(self, message: str, status_code: int = 0, url: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class RateLimitError(NexusAPIError):
    """Raised when the server keeps returning HTTP 429."""
    def __init__(self, url: str = ""):
        super().__init__("Rate limit exceeded, try again later", 429, url)


class PremiumRequiredError(NexusAPIError):
    """Raised on HTTP 403: the download needs Premium or an nxm:// key."""
    def __init__(self, url: str = ""):
        super().__init__(PREMIUM_REQUIRED_MESSAGE, 403, url)


class NexusAPI:
    """
    Synchronous Nexus Mods v1 REST client.

    Parameters
    ----------
    api_key : str
        Personal API key from nexusmods.com/settings/api-keys.
    game_domain : str
        Nexus domain of the managed game.
    timeout : float
        Request timeout in seconds.
    """

    def __init__(self, api_key: str, game_domain: str = GAME_DOMAIN,
                 timeout: float = 30.0):
        self._key = api_key.strip()
        self._domain = game_domain
        self._timeout = timeout
        self._rate = NexusRateLimits()
        self._session = requests.Session()
        self._session.headers.update({
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
            "Application-Name": APP_NAME,
            "Application-Version": APP_VERSION,
            "Accept": "application/json",
        })

    @property
    def game_domain(self) -> str:
        return self._domain

    # -- low-level ----------------------------------------------------------

    def _update_rate_limits(self, resp: requests.Response) -> None:
        """Parse rate-limit headers from the response."""
        h = resp.headers
        if "x-rl-hourly-remaining" in h:
            self._rate.hourly_remaining = int(h["x-rl-hourly-remaining"])
        if "x-rl-daily-remaining" in h:
            self._rate.daily_remaining = int(h["x-rl-daily-remaining"])
        if "x-rl-hourly-limit" in h:
            self._rate.hourly_limit = int(h["x-rl-hourly-limit"])
        if "x-rl-daily-limit" in h:
            self._rate.daily_limit = int(h["x-rl-daily-limit"])

    def _log_response(self, method: str, path: str, resp: requests.Response) -> None:
        """Log status + body (truncated, sensitive fields redacted)."""
        app_log(f"Nexus API {method} {path} → {resp.status_code}")
        body_str = _redact_sensitive_response(resp.text or "(empty)")
        if len(body_str) > 1200:
            body_str = body_str[:1200] + "..."
        app_log(f"  Response: {body_str}")

    @staticmethod
    def _raise_for_status(resp: requests.Response, url: str) -> None:
        if resp.status_code == 401:
            raise NexusAPIError("Invalid or expired API key", 401, url)
        if resp.status_code == 403:
            raise PremiumRequiredError(url)
        if not resp.ok:
            try:
                msg = resp.json().get("message", resp.reason)
            except (ValueError, AttributeError):
                msg = (resp.text or "")[:300] or resp.reason
            raise NexusAPIError(f"{msg} (HTTP {resp.status_code})",
                                resp.status_code, url)

    def _get(self, path: str, params: dict | None = None,
             retries: int = _MAX_RETRIES) -> Any:
        """Issue a GET request against the v1 API, with retry on 429."""
        url = API_BASE + path
        for attempt in range(retries):
            try:
                resp = self._session.get(url, params=params,
                                         timeout=self._timeout)
            except requests.ConnectionError as exc:
                raise NexusAPIError(
                    f"Connection failed: {exc}", url=url) from exc
            except requests.Timeout as exc:
                raise NexusAPIError(
                    f"Request timed out after {self._timeout}s",
                    url=url) from exc

            self._update_rate_limits(resp)
            self._log_response("GET", path, resp)

            if resp.status_code == 429:
                wait = _RATE_LIMIT_BACKOFF * (attempt + 1)
                app_log(f"Nexus 429 rate-limited, backing off {wait:.1f}s "
                        f"(attempt {attempt + 1}/{retries})")
                time.sleep(wait)
                continue

            self._raise_for_status(resp, url)
            try:
                return resp.json()
            except ValueError as exc:
                raise NexusAPIError(
                    f"Invalid JSON in response: {exc}", resp.status_code, url) from exc

        raise RateLimitError(url)

    @property
    def rate_limits(self) -> NexusRateLimits:
        """Return the most recently observed rate limits."""
        return self._rate

    # -- Account ------------------------------------------------------------

    def validate(self) -> NexusUser:
        """Validate the current API key and return user info."""
        data = self._get("/users/validate")
        return NexusUser(
            user_id=data["user_id"],
            name=data["name"],
            is_premium=data.get("is_premium", False),
            is_supporter=data.get("is_supporter", False),
        )

    # -- Mods ---------------------------------------------------------------

    def get_mod(self, mod_id: int) -> NexusModInfo:
        """Retrieve details about a specific mod."""
        d = self._get(f"/games/{self._domain}/mods/{mod_id}")
        if not isinstance(d, dict) or "name" not in d:
            raise NexusAPIError(f"Unexpected mod info response for mod {mod_id}")
        user = d.get("user") or {}
        return NexusModInfo(
            mod_id=d.get("mod_id", mod_id),
            name=d["name"],
            author=d.get("author") or user.get("name", "") or d.get("uploaded_by", ""),
            description=d.get("description") or "",
            summary=d.get("summary") or "",
            version=d.get("version") or "",
            category_id=d.get("category_id") or 0,
            available=d.get("available", True),
            status=d.get("status", ""),
        )

    # -- Files --------------------------------------------------------------

    def get_mod_files(self, mod_id: int) -> NexusModFiles:
        """List all files uploaded for a mod."""
        data = self._get(f"/games/{self._domain}/mods/{mod_id}/files")
        files = []
        for f in data.get("files", []):
            # Older responses carry id as [file_id, game_id]
            file_id = f.get("file_id")
            if file_id is None:
                raw = f.get("id")
                file_id = raw[0] if isinstance(raw, list) else raw
            files.append(NexusModFile(
                file_id=int(file_id),
                name=f.get("name", ""),
                version=f.get("version") or "",
                category_id=f.get("category_id"),
                category_name=f.get("category_name") or "",
                file_name=f.get("file_name", ""),
                size_kb=f.get("size_kb", 0),
                mod_version=f.get("mod_version") or "",
                is_primary=f.get("is_primary", False),
            ))
        return NexusModFiles(files=files)

    def get_download_links(
        self,
        mod_id: int,
        file_id: int,
        key: str | None = None,
        expires: int | None = None,
    ) -> list[NexusDownloadLink]:
        """
        Generate download URLs for a file.

        Premium users can call this directly (no key/expires needed).
        Free users must provide key + expires from an nxm:// link
        (the "Download with Mod Manager" button on the website).
        """
        path = (f"/games/{self._domain}/mods/{mod_id}"
                f"/files/{file_id}/download_link.json")
        params: dict[str, Any] = {}
        if key is not None and expires is not None:
            params["key"] = key
            params["expires"] = str(expires)
        data = self._get(path, params=params or None)
        return [
            NexusDownloadLink(
                name=d.get("name", ""),
                short_name=d.get("short_name", ""),
                URI=d["URI"],
            )
            for d in data
        ]

    def fetch(self, url: str,
              progress_cb: ByteProgressCallback | None = None) -> bytes:
        """Download *url* into memory."""
        try:
            with self._session.get(url, stream=True,
                                   timeout=self._timeout) as resp:
                app_log(f"Nexus download → {resp.status_code}")
                self._raise_for_status(resp, url)
                total = int(resp.headers.get("Content-Length", 0) or 0)
                buf = bytearray()
                for chunk in resp.iter_content(_CHUNK_SIZE):
                    buf.extend(chunk)
                    if progress_cb:
                        progress_cb(len(buf), total)
        except requests.ConnectionError as exc:
            raise NexusAPIError(f"Connection failed: {exc}", url=url) from exc
        except requests.Timeout as exc:
            raise NexusAPIError(
                f"Download timed out after {self._timeout}s", url=url) from exc
        return bytes(buf)
