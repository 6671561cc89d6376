"""
Scryfall bulk data reader.

Downloads Scryfall's default-cards bulk file and streams it back one
printing at a time. The dump is a single JSON array far too large to
decode twice, so records are decoded incrementally and never buffered
as a whole.

Bulk data: https://scryfall.com/docs/api/bulk-data
"""

import json
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, TextIO

import httpx

from cardledger.models.failure import CatalogFormatError

SCRYFALL_BULK_API = "https://api.scryfall.com/bulk-data"
USER_AGENT = "CardLedger/1.0"

DEFAULT_CHUNK_SIZE = 1 << 16

_WHITESPACE = " \t\n\r"
_NUMBER_CHARS = "0123456789.eE+-"

# Longest incomplete JSON token still waiting for its tail ("-Infinit")
_PARTIAL_TOKEN_CHARS = 8

# Upper bound on one undecoded record; Scryfall card objects are a few KiB
MAX_RECORD_CHARS = 1 << 20


@dataclass(frozen=True, slots=True)
class CardFace:
    """One face of a multi-faced card."""

    name: str
    oracle_id: str = ""


@dataclass(frozen=True, slots=True)
class ScryfallCard:
    """
    One printing from the bulk catalog.

    Attributes:
        catalog_id: Scryfall id, unique per printing
        lang: Language code (e.g., "en", "ja")
        oracle_id: Logical card id; taken from the first face when the
            printing has none at the top level
        name: Display name
        collector_number: Collector number within the set (not always numeric)
        released_at: Release date of the printing
        set_code: Set code (e.g., "lea", "dmu")
        card_faces: Faces, for multi-faced cards
    """

    catalog_id: str
    lang: str
    oracle_id: str
    name: str
    collector_number: str
    released_at: date
    set_code: str
    card_faces: tuple[CardFace, ...] = ()


def card_from_json(data: dict[str, Any]) -> ScryfallCard:
    """
    Build a ScryfallCard from one decoded bulk record.

    Raises:
        CatalogFormatError: A required field is missing or malformed, or no
            oracle id is available at the top level or on the first face
    """
    try:
        faces = tuple(
            CardFace(name=str(face.get("name", "")), oracle_id=str(face.get("oracle_id") or ""))
            for face in data.get("card_faces") or ()
        )
        oracle_id = str(data.get("oracle_id") or "")
        if not oracle_id and faces:
            oracle_id = faces[0].oracle_id
        if not oracle_id:
            raise CatalogFormatError(f"card {data.get('id')!r} has no oracle id")

        return ScryfallCard(
            catalog_id=str(data["id"]),
            lang=str(data["lang"]),
            oracle_id=oracle_id,
            name=str(data["name"]),
            collector_number=str(data["collector_number"]),
            released_at=date.fromisoformat(str(data["released_at"])),
            set_code=str(data["set"]),
            card_faces=faces,
        )
    except KeyError as e:
        raise CatalogFormatError(f"card {data.get('id')!r} is missing field {e.args[0]!r}") from e
    except ValueError as e:
        raise CatalogFormatError(f"card {data.get('id')!r} has a malformed field: {e}") from e


def _skip_whitespace(buffer: str, pos: int) -> int:
    while pos < len(buffer) and buffer[pos] in _WHITESPACE:
        pos += 1
    return pos


def _is_malformed(error: json.JSONDecodeError, buffered: int) -> bool:
    """
    Whether a decode error is final rather than a record cut by the chunk boundary.

    An unterminated string reports where the string starts, so it can only
    be judged once more input arrives. Any other error far enough from the
    end of the buffer cannot be fixed by reading more.
    """
    if error.msg.startswith("Unterminated string"):
        return False
    return buffered - error.pos > _PARTIAL_TOKEN_CHARS


def iter_json_array(stream: TextIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[Any]:
    """
    Lazily decode the elements of a top-level JSON array.

    Reads `stream` in chunks and yields each element as soon as it is
    complete. The stream is consumed exactly once. A malformed element is
    reported as soon as it is seen, without reading the rest of the stream.

    Raises:
        CatalogFormatError: The stream is not a well-formed JSON array, or one
            element exceeds MAX_RECORD_CHARS
    """
    decoder = json.JSONDecoder()
    buffer = ""
    pos = 0
    started = False
    # After '[' an element or ']' may follow; after an element, ',' or ']'
    expect_separator = False
    count = 0

    while True:
        pos = _skip_whitespace(buffer, pos)
        if pos == len(buffer):
            chunk = stream.read(chunk_size)
            if not chunk:
                if not started:
                    raise CatalogFormatError("catalog is empty")
                raise CatalogFormatError(f"catalog ended after {count} cards without ']'")
            buffer = buffer[pos:] + chunk
            pos = 0
            continue

        char = buffer[pos]
        if not started:
            if char != "[":
                raise CatalogFormatError("catalog must be a JSON array")
            started = True
            pos += 1
            continue

        if char == "]" and (expect_separator or count == 0):
            return

        if expect_separator:
            if char != ",":
                raise CatalogFormatError(f"expected ',' or ']' after card {count}")
            expect_separator = False
            pos += 1
            continue

        try:
            item, end = decoder.raw_decode(buffer, pos)
        except json.JSONDecodeError as e:
            if _is_malformed(e, len(buffer)):
                raise CatalogFormatError(f"malformed JSON after card {count}: {e.msg}") from e
            pending = len(buffer) - pos
            if pending > MAX_RECORD_CHARS:
                raise CatalogFormatError(
                    f"card {count + 1} is longer than {MAX_RECORD_CHARS} characters"
                ) from e
            # Grow geometrically so a long record is copied O(log n) times
            chunk = stream.read(max(chunk_size, pending))
            if not chunk:
                raise CatalogFormatError(f"malformed JSON after card {count}: {e.msg}") from e
            buffer = buffer[pos:] + chunk
            pos = 0
            continue

        if isinstance(item, int | float) and not buffer[end:].strip(_NUMBER_CHARS):
            # A number cut by the chunk boundary (e.g. "-7." then "5") continues
            chunk = stream.read(chunk_size)
            if chunk:
                buffer = buffer[pos:] + chunk
                pos = 0
                continue

        yield item
        count += 1
        pos = end
        expect_separator = True


def iter_bulk_cards(stream: TextIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[ScryfallCard]:
    """Stream ScryfallCard records out of a bulk catalog dump."""
    for item in iter_json_array(stream, chunk_size):
        if not isinstance(item, dict):
            raise CatalogFormatError(f"expected a card object, got {type(item).__name__}")
        yield card_from_json(item)


async def get_bulk_data_url(client: httpx.AsyncClient) -> str:
    """
    Fetch the download URL for Scryfall's default-cards bulk data.

    Raises:
        httpx.HTTPError: If API request fails
        ValueError: If the index has no default_cards entry
    """
    response = await client.get(SCRYFALL_BULK_API)
    response.raise_for_status()
    data = response.json()

    # Find the "default_cards" entry
    for entry in data["data"]:
        if entry["type"] == "default_cards":
            return str(entry["download_uri"])

    raise ValueError("Could not find default_cards bulk data URL")


async def download_bulk_data(output_path: Path) -> Path:
    """
    Download Scryfall bulk data to a file.

    Args:
        output_path: Where to save the JSON file

    Returns:
        Path to downloaded file.

    Raises:
        ValueError: If bulk data URL not found
        httpx.HTTPError: If download fails
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    async with httpx.AsyncClient(
        timeout=30.0, headers={"User-Agent": USER_AGENT}, follow_redirects=True
    ) as client:
        download_url = await get_bulk_data_url(client)

        # Stream download (file is several hundred MB)
        async with client.stream("GET", download_url, timeout=300.0) as response:
            response.raise_for_status()
            with open(output_path, "wb") as f:
                async for chunk in response.aiter_bytes(8192):
                    f.write(chunk)

    return output_path
