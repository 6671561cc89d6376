import io
from pathlib import Path

import httpx
import pytest
import respx

from cardledger.models.failure import CatalogFormatError
from cardledger.parsers.scryfall import (
    SCRYFALL_BULK_API,
    card_from_json,
    download_bulk_data,
    iter_bulk_cards,
    iter_json_array,
)

DEFAULT_CARDS_URL = "https://data.scryfall.io/default-cards/default-cards.json"


class TestIterJsonArray:
    @pytest.mark.parametrize("chunk_size", [1, 2, 3, 7, 1 << 16])
    def test_elements_across_chunk_boundaries(self, chunk_size: int) -> None:
        stream = io.StringIO('[1, 23, 456, "a,b", {"x": [1, 2]}, true, null, -7.5]')

        items = list(iter_json_array(stream, chunk_size))

        assert items == [1, 23, 456, "a,b", {"x": [1, 2]}, True, None, -7.5]

    def test_empty_array(self) -> None:
        assert list(iter_json_array(io.StringIO(" [ ] "))) == []

    def test_is_lazy(self) -> None:
        """Elements are yielded before the rest of the stream is read."""
        stream = io.StringIO('[{"a": 1}, {"b": 2}' + " " * 100 + "]")
        items = iter_json_array(stream, chunk_size=4)

        assert next(items) == {"a": 1}
        assert stream.tell() < 50

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            '{"a": 1}',
            "[1, 2",
            "[1 2]",
            "[1,]",
            '[{"a": tru',
        ],
    )
    def test_malformed(self, text: str) -> None:
        with pytest.raises(CatalogFormatError):
            list(iter_json_array(io.StringIO(text), chunk_size=3))

    def test_malformed_record_fails_without_reading_the_rest(self) -> None:
        good = '{"id": "x", "name": "Lightning Bolt", "set": "m10"}'
        text = "[" + good + ', {"id": oops}, ' + ", ".join([good] * 5000) + "]"
        stream = io.StringIO(text)

        with pytest.raises(CatalogFormatError, match="after card 1"):
            list(iter_json_array(stream, chunk_size=4096))
        assert stream.tell() < 3 * 4096

    def test_long_record_across_many_chunks(self) -> None:
        text = '[{"oracle_text": "' + "x" * 50_000 + '"}, 2]'

        items = list(iter_json_array(io.StringIO(text), chunk_size=16))

        assert len(items[0]["oracle_text"]) == 50_000
        assert items[1] == 2

    def test_record_longer_than_limit(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("cardledger.parsers.scryfall.MAX_RECORD_CHARS", 100)
        text = '["' + "x" * 10_000
        stream = io.StringIO(text)

        with pytest.raises(CatalogFormatError, match="longer than 100 characters"):
            list(iter_json_array(stream, chunk_size=16))
        assert stream.tell() < len(text)


class TestCardFromJson:
    def test_complete_record(self) -> None:
        card = card_from_json(
            {
                "id": "bolt-m10-en",
                "oracle_id": "bolt-oracle",
                "name": "Lightning Bolt",
                "lang": "en",
                "released_at": "2009-07-17",
                "set": "m10",
                "collector_number": "146",
            }
        )

        assert card.catalog_id == "bolt-m10-en"
        assert card.set_code == "m10"
        assert card.released_at.year == 2009
        assert card.card_faces == ()

    def test_oracle_id_from_first_face(self) -> None:
        card = card_from_json(
            {
                "id": "x",
                "name": "Fire // Ice",
                "lang": "en",
                "released_at": "2021-06-18",
                "set": "mh2",
                "collector_number": "290",
                "card_faces": [
                    {"name": "Fire", "oracle_id": "first-face"},
                    {"name": "Ice", "oracle_id": "second-face"},
                ],
            }
        )

        assert card.oracle_id == "first-face"
        assert [face.name for face in card.card_faces] == ["Fire", "Ice"]

    def test_missing_field(self) -> None:
        with pytest.raises(CatalogFormatError, match="lang"):
            card_from_json(
                {
                    "id": "x",
                    "oracle_id": "o",
                    "name": "Opt",
                    "released_at": "2017-09-29",
                    "set": "xln",
                    "collector_number": "65",
                }
            )

    def test_malformed_release_date(self) -> None:
        with pytest.raises(CatalogFormatError):
            card_from_json(
                {
                    "id": "x",
                    "oracle_id": "o",
                    "name": "Opt",
                    "lang": "en",
                    "released_at": "September 2017",
                    "set": "xln",
                    "collector_number": "65",
                }
            )

    def test_no_oracle_id_anywhere(self) -> None:
        with pytest.raises(CatalogFormatError, match="no oracle id"):
            card_from_json(
                {
                    "id": "x",
                    "name": "Opt",
                    "lang": "en",
                    "released_at": "2017-09-29",
                    "set": "xln",
                    "collector_number": "65",
                }
            )


class TestIterBulkCards:
    def test_streams_fixture(self, sample_bulk_path: Path) -> None:
        with open(sample_bulk_path, encoding="utf-8") as f:
            cards = list(iter_bulk_cards(f, chunk_size=64))

        assert len(cards) == 11
        assert cards[0].catalog_id == "bolt-lea-en"
        assert cards[-1].oracle_id == "fireice-oracle"

    def test_rejects_non_object_items(self) -> None:
        with pytest.raises(CatalogFormatError):
            list(iter_bulk_cards(io.StringIO("[1]")))


class TestDownloadBulkData:
    @respx.mock
    async def test_downloads_default_cards(self, tmp_path: Path) -> None:
        respx.get(SCRYFALL_BULK_API).mock(
            return_value=httpx.Response(
                200,
                json={
                    "data": [
                        {"type": "oracle_cards", "download_uri": "https://example.com/oracle"},
                        {"type": "default_cards", "download_uri": DEFAULT_CARDS_URL},
                    ]
                },
            )
        )
        respx.get(DEFAULT_CARDS_URL).mock(return_value=httpx.Response(200, content=b"[]"))

        path = await download_bulk_data(tmp_path / "data" / "default-cards.json")

        assert path.read_bytes() == b"[]"

    @respx.mock
    async def test_missing_default_cards_entry(self, tmp_path: Path) -> None:
        respx.get(SCRYFALL_BULK_API).mock(return_value=httpx.Response(200, json={"data": []}))

        with pytest.raises(ValueError, match="default_cards"):
            await download_bulk_data(tmp_path / "cards.json")

    @respx.mock
    async def test_http_error(self, tmp_path: Path) -> None:
        respx.get(SCRYFALL_BULK_API).mock(return_value=httpx.Response(503))

        with pytest.raises(httpx.HTTPStatusError):
            await download_bulk_data(tmp_path / "cards.json")
