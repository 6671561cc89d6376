from cardledger.parsers.scryfall import (
    CardFace,
    ScryfallCard,
    card_from_json,
    download_bulk_data,
    iter_bulk_cards,
    iter_json_array,
)

__all__ = [
    "CardFace",
    "ScryfallCard",
    "card_from_json",
    "download_bulk_data",
    "iter_bulk_cards",
    "iter_json_array",
]
