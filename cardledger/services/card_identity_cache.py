"""
Card Identity Cache.

Resolves human-entered card descriptions to exact printings using a
Scryfall bulk catalog held in memory.

INVARIANTS:
1. Resolution uses the loaded catalog ONLY (no network)
2. Ambiguous queries resolve through one total order (see preference_key),
   so the answer never depends on catalog order
3. A bare name that belongs to more than one logical card is an error,
   never a guess
4. Read-only after construction; safe to share between concurrent readers
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from cardledger.models.failure import AmbiguousCardError, CardNotFoundError
from cardledger.models.inventory import Card
from cardledger.parsers.scryfall import ScryfallCard, iter_bulk_cards

logger = logging.getLogger(__name__)

PREFERRED_LANGUAGE = "en"

PrintingKey = tuple[str, str, str]


def preference_key(card: ScryfallCard) -> tuple[bool, int, str, str, str]:
    """
    Sort key ranking printings from most to least preferred.

    English first, then the most recent release, then the smallest collector
    number, then the smallest set code. The catalog id closes the order so two
    distinct printings never tie.
    """
    return (
        card.lang != PREFERRED_LANGUAGE,
        -card.released_at.toordinal(),
        card.collector_number,
        card.set_code,
        card.catalog_id,
    )


def _prefer(current: ScryfallCard | None, candidate: ScryfallCard) -> ScryfallCard:
    if current is None or preference_key(candidate) < preference_key(current):
        return candidate
    return current


def _printing_key(name: str, set_code: str, lang: str) -> PrintingKey:
    return (name, set_code.lower(), lang.lower())


def card_identity(printing: ScryfallCard, foil: bool = False) -> Card:
    """The immutable fields the ledger records for a resolved printing."""
    return Card(
        name=printing.name,
        oracle_id=printing.oracle_id,
        catalog_id=printing.catalog_id,
        foil=foil,
    )


class CardIdentityCache:
    """
    In-memory indexes over a bulk catalog.

    Indexes (flat mappings, built in one pass):
    - (name, set, language) -> preferred printing, and all printings
    - (name, set, language, collector number) -> preferred printing
    - oracle id -> preferred printing, and all printings
    - catalog id -> printing
    - name (including face names) -> oracle ids sharing it
    """

    def __init__(self, printings: Iterable[ScryfallCard]) -> None:
        """
        Build the indexes.

        Args:
            printings: Catalog records; consumed exactly once
        """
        self._default_by_key: dict[PrintingKey, ScryfallCard] = {}
        self._printings_by_key: dict[PrintingKey, list[ScryfallCard]] = {}
        self._by_collector_number: dict[tuple[str, str, str, str], ScryfallCard] = {}
        self._default_by_oracle_id: dict[str, ScryfallCard] = {}
        self._printings_by_oracle_id: dict[str, list[ScryfallCard]] = {}
        self._by_catalog_id: dict[str, ScryfallCard] = {}
        self._oracle_ids_by_name: dict[str, set[str]] = {}

        for printing in printings:
            self._add(printing)

    @classmethod
    def from_file(cls, path: Path) -> "CardIdentityCache":
        """
        Build a cache from a bulk catalog dump on disk.

        Raises:
            FileNotFoundError: If the dump doesn't exist
            CatalogFormatError: If the dump can't be decoded
        """
        with open(path, encoding="utf-8") as f:
            cache = cls(iter_bulk_cards(f))
        logger.info(
            "Built card identity cache from %s: %d printings, %d cards",
            path,
            len(cache),
            cache.oracle_count,
        )
        return cache

    def _add(self, printing: ScryfallCard) -> None:
        key = _printing_key(printing.name, printing.set_code, printing.lang)
        self._default_by_key[key] = _prefer(self._default_by_key.get(key), printing)
        self._printings_by_key.setdefault(key, []).append(printing)

        number_key = (*key, printing.collector_number)
        self._by_collector_number[number_key] = _prefer(
            self._by_collector_number.get(number_key), printing
        )

        oracle_id = printing.oracle_id
        self._default_by_oracle_id[oracle_id] = _prefer(
            self._default_by_oracle_id.get(oracle_id), printing
        )
        self._printings_by_oracle_id.setdefault(oracle_id, []).append(printing)

        self._by_catalog_id[printing.catalog_id] = printing

        names = {printing.name}
        names.update(face.name for face in printing.card_faces if face.name)
        for name in names:
            self._oracle_ids_by_name.setdefault(name, set()).add(oracle_id)

    def __len__(self) -> int:
        return len(self._by_catalog_id)

    @property
    def oracle_count(self) -> int:
        """Number of distinct logical cards."""
        return len(self._default_by_oracle_id)

    def get_card(
        self, name: str, set_code: str, lang: str, collector_number: str = ""
    ) -> ScryfallCard:
        """
        Resolve a name/set/language, optionally narrowed by collector number.

        Without a collector number the preferred printing for the key is returned.

        Raises:
            CardNotFoundError: No printing matches
        """
        key = _printing_key(name, set_code, lang)
        if not collector_number:
            found = self._default_by_key.get(key)
        else:
            found = self._by_collector_number.get((*key, collector_number))
        if found is None:
            raise CardNotFoundError(f"{name!r}|{set_code!r}|{lang!r}|{collector_number!r}")
        return found

    def get_card_by_name(self, name: str) -> ScryfallCard:
        """
        Resolve a bare name to the preferred printing of its logical card.

        Raises:
            CardNotFoundError: No card has this name
            AmbiguousCardError: The name belongs to more than one logical card
        """
        oracle_ids = self._oracle_ids_by_name.get(name)
        if not oracle_ids:
            raise CardNotFoundError(f"name {name!r}")
        if len(oracle_ids) > 1:
            raise AmbiguousCardError(name, list(oracle_ids))
        (oracle_id,) = oracle_ids
        return self._default_by_oracle_id[oracle_id]

    def get_card_by_oracle_id(self, oracle_id: str) -> ScryfallCard:
        """
        Resolve a logical card to its preferred printing.

        Raises:
            CardNotFoundError: Unknown oracle id
        """
        found = self._default_by_oracle_id.get(oracle_id)
        if found is None:
            raise CardNotFoundError(f"oracle ID {oracle_id!r}")
        return found

    def get_card_by_catalog_id(self, catalog_id: str) -> ScryfallCard:
        """
        Look up an exact printing.

        Raises:
            CardNotFoundError: Unknown catalog id
        """
        found = self._by_catalog_id.get(catalog_id)
        if found is None:
            raise CardNotFoundError(f"catalog ID {catalog_id!r}")
        return found

    def printings(self, name: str, set_code: str, lang: str) -> list[ScryfallCard]:
        """All printings sharing a name/set/language, most preferred first."""
        found = self._printings_by_key.get(_printing_key(name, set_code, lang))
        if not found:
            raise CardNotFoundError(f"{name!r}|{set_code!r}|{lang!r}")
        return sorted(found, key=preference_key)

    def printings_by_oracle_id(self, oracle_id: str) -> list[ScryfallCard]:
        """All printings of a logical card, most preferred first."""
        found = self._printings_by_oracle_id.get(oracle_id)
        if not found:
            raise CardNotFoundError(f"oracle ID {oracle_id!r}")
        return sorted(found, key=preference_key)
