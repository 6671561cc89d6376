"""
Catalog API endpoints.

Resolves card descriptions to exact printings through the identity cache
loaded at startup. Answers 503 when no catalog is loaded.
"""

from datetime import date

from fastapi import APIRouter
from pydantic import BaseModel

from cardledger.api.deps import IdentityCache
from cardledger.parsers.scryfall import ScryfallCard

router = APIRouter(prefix="/catalog", tags=["catalog"])


class PrintingResponse(BaseModel):
    """One resolved printing."""

    catalog_id: str
    oracle_id: str
    name: str
    lang: str
    set_code: str
    collector_number: str
    released_at: date

    @classmethod
    def from_card(cls, card: ScryfallCard) -> "PrintingResponse":
        return cls(
            catalog_id=card.catalog_id,
            oracle_id=card.oracle_id,
            name=card.name,
            lang=card.lang,
            set_code=card.set_code,
            collector_number=card.collector_number,
            released_at=card.released_at,
        )


@router.get("/printing", response_model=PrintingResponse)
async def resolve_printing(
    cache: IdentityCache,
    name: str,
    set_code: str,
    lang: str = "en",
    collector_number: str = "",
) -> PrintingResponse:
    """
    Resolve name/set/language, optionally narrowed by collector number.

    Without a collector number the preferred printing is returned.
    """
    return PrintingResponse.from_card(cache.get_card(name, set_code, lang, collector_number))


@router.get("/name/{name}", response_model=PrintingResponse)
async def resolve_name(name: str, cache: IdentityCache) -> PrintingResponse:
    """Resolve a bare name. Names shared by several cards are a 400."""
    return PrintingResponse.from_card(cache.get_card_by_name(name))


@router.get("/oracle/{oracle_id}", response_model=PrintingResponse)
async def resolve_oracle_id(oracle_id: str, cache: IdentityCache) -> PrintingResponse:
    return PrintingResponse.from_card(cache.get_card_by_oracle_id(oracle_id))


@router.get("/id/{catalog_id}", response_model=PrintingResponse)
async def resolve_catalog_id(catalog_id: str, cache: IdentityCache) -> PrintingResponse:
    return PrintingResponse.from_card(cache.get_card_by_catalog_id(catalog_id))
