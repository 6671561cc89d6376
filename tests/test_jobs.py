"""Tests for the catalog download job."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from cardledger.jobs.download_catalog import run_download


class TestRunDownload:
    async def test_downloads_to_given_path(self, tmp_path: Path) -> None:
        target = tmp_path / "cards.json"

        with patch(
            "cardledger.jobs.download_catalog.download_bulk_data",
            new_callable=AsyncMock,
            return_value=target,
        ) as mock_download:
            result = await run_download(target)

        assert result == target
        mock_download.assert_awaited_once_with(target)

    async def test_propagates_download_errors(self, tmp_path: Path) -> None:
        with (
            patch(
                "cardledger.jobs.download_catalog.download_bulk_data",
                new_callable=AsyncMock,
                side_effect=httpx.ConnectError("Connection failed"),
            ),
            pytest.raises(httpx.ConnectError),
        ):
            await run_download(tmp_path / "cards.json")
