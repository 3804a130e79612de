"""
nexus_download.py
Fetch mod files from the Nexus Mods CDN.

Handles the two network halves of a download:
  1. Resolve CDN links via the API, attaching the nxm:// key when present
  2. Fetch the bytes, trying each mirror in the order the API returned them

Usage
-----
    from Nexus.nexus_api import NexusAPI
    from Nexus.nexus_download import NexusDownloader
    from Nexus.nxm_handler import NxmLink

    dl    = NexusDownloader(NexusAPI(api_key="..."))
    link  = NxmLink.parse("nxm://stalker2heartofchornobyl/mods/33/files/130?key=abc&expires=1700000000")
    links = dl.resolve_links(link.mod_id, link.file_id, link.credential)
    data  = dl.fetch_first(links).data
"""

from __future__ import annotations

from dataclasses import dataclass

from .nexus_api import (
    ByteProgressCallback,
    NexusAPI,
    NexusAPIError,
    NexusDownloadLink,
    PremiumRequiredError,
)
from .nxm_handler import DownloadCredential
from Utils.app_log import app_log


@dataclass
class DownloadedFile:
    data: bytes
    mirror: str = ""


class NexusDownloader:
    """
    Parameters
    ----------
    api : NexusAPI
        An authenticated API client instance.
    """

    def __init__(self, api: NexusAPI):
        self._api = api

    @property
    def api(self) -> NexusAPI:
        return self._api

    def resolve_links(
        self,
        mod_id: int,
        file_id: int,
        credential: DownloadCredential | None = None,
    ) -> list[NexusDownloadLink]:
        """Ask the API for CDN links. Raises NexusAPIError if there are none."""
        if credential is not None:
            links = self._api.get_download_links(
                mod_id, file_id, key=credential.key, expires=credential.expires)
        else:
            links = self._api.get_download_links(mod_id, file_id)
        if not links:
            raise NexusAPIError("No download links available")
        return links

    def fetch_first(
        self,
        links: list[NexusDownloadLink],
        progress_cb: ByteProgressCallback | None = None,
    ) -> DownloadedFile:
        """Try each mirror in order until one succeeds."""
        last_error: NexusAPIError | None = None
        for link in links:
            try:
                data = self._api.fetch(link.URI, progress_cb=progress_cb)
            except PremiumRequiredError:
                raise
            except NexusAPIError as exc:
                last_error = exc
                app_log(f"Mirror {link.name or link.short_name} failed: {exc}")
                continue
            app_log(f"Downloaded {len(data)} bytes from {link.name or 'mirror'}")
            return DownloadedFile(data=data, mirror=link.name)

        raise NexusAPIError(
            f"All mirrors failed. Last error: {last_error}",
            last_error.status_code if last_error else 0,
        )
