"""
Tests for link resolution and mirror fallback.
"""

from unittest.mock import MagicMock

import pytest

from Nexus.nexus_api import NexusAPIError, NexusDownloadLink, PremiumRequiredError
from Nexus.nexus_download import NexusDownloader
from Nexus.nxm_handler import DownloadCredential

LINKS = [NexusDownloadLink("Mirror A", "a", "https://a/f.pak"),
         NexusDownloadLink("Mirror B", "b", "https://b/f.pak")]


class TestNexusDownloader:

    def test_credential_forwarded(self):
        api = MagicMock()
        api.get_download_links.return_value = LINKS
        NexusDownloader(api).resolve_links(33, 130, DownloadCredential("abc", 5))
        api.get_download_links.assert_called_once_with(33, 130, key="abc", expires=5)

    def test_no_links(self):
        api = MagicMock()
        api.get_download_links.return_value = []
        with pytest.raises(NexusAPIError, match="No download links"):
            NexusDownloader(api).resolve_links(33, 130)

    def test_falls_back_to_next_mirror(self):
        api = MagicMock()
        api.fetch.side_effect = [NexusAPIError("boom", 500), b"data"]
        result = NexusDownloader(api).fetch_first(LINKS)
        assert result.data == b"data"
        assert result.mirror == "Mirror B"

    def test_all_mirrors_fail(self):
        api = MagicMock()
        api.fetch.side_effect = NexusAPIError("boom", 502)
        with pytest.raises(NexusAPIError, match="All mirrors failed") as exc_info:
            NexusDownloader(api).fetch_first(LINKS)
        assert exc_info.value.status_code == 502

    def test_premium_required_not_retried(self):
        api = MagicMock()
        api.fetch.side_effect = PremiumRequiredError()
        with pytest.raises(PremiumRequiredError):
            NexusDownloader(api).fetch_first(LINKS)
        assert api.fetch.call_count == 1
