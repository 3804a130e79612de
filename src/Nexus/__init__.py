"""
Nexus Mods integration package.

Provides API access, NXM protocol handling, and downloads for mods hosted
on Nexus Mods.
"""

from .nexus_api import (
    NexusAPI,
    NexusAPIError,
    PremiumRequiredError,
    RateLimitError,
    load_api_key,
    save_api_key,
    clear_api_key,
)
from .nxm_handler import NxmHandler, NxmLink, DownloadCredential, InvalidNxmLinkError
from .nexus_download import NexusDownloader

__all__ = ["NexusAPI", "NexusAPIError", "PremiumRequiredError", "RateLimitError",
           "load_api_key", "save_api_key", "clear_api_key",
           "NxmHandler", "NxmLink", "DownloadCredential", "InvalidNxmLinkError",
           "NexusDownloader"]
