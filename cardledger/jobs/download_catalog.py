"""
Download the Scryfall card catalog.

Run this job to fetch the bulk printing data the card identity cache is
built from. Writes to CARDLEDGER_CATALOG_PATH, or data/default-cards.json.
"""

import asyncio
import logging
from pathlib import Path

from cardledger.config import settings
from cardledger.parsers.scryfall import download_bulk_data

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path("data") / "default-cards.json"


async def run_download(output_path: Path | None = None) -> Path:
    """Download the Scryfall card catalog."""
    if output_path is None:
        output_path = settings.catalog_path or DEFAULT_CATALOG_PATH

    logger.info("Downloading Scryfall card catalog...")

    try:
        path = await download_bulk_data(output_path)
        logger.info("Downloaded card catalog to %s", path)
    except Exception as e:
        logger.error("Failed to download card catalog: %s", e)
        raise
    return path


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_download())


if __name__ == "__main__":
    main()
