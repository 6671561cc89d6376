"""
Stock API endpoints.

Adds copies to stock, corrects quantities, and lists stock by logical
card, owner or keeper.
"""

from typing import Annotated

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from cardledger.api.deps import SessionFactory
from cardledger.ledger.stock import StockLedger
from cardledger.models.inventory import Card, CardRow

router = APIRouter(prefix="/cards", tags=["cards"])

Limit = Annotated[int, Query(ge=0, description="Page size; 0 means the default")]
Offset = Annotated[int, Query(ge=0)]


class CardModel(BaseModel):
    """An exact printing."""

    name: str
    oracle_id: str
    catalog_id: str
    foil: bool = False

    def to_model(self) -> Card:
        return Card(
            name=self.name, oracle_id=self.oracle_id, catalog_id=self.catalog_id, foil=self.foil
        )

    @classmethod
    def from_model(cls, card: Card) -> "CardModel":
        return cls(
            name=card.name, oracle_id=card.oracle_id, catalog_id=card.catalog_id, foil=card.foil
        )


class CardRowModel(BaseModel):
    """A stock row."""

    card: CardModel
    owner: str
    keeper: str
    quantity: int

    @classmethod
    def from_model(cls, row: CardRow) -> "CardRowModel":
        return cls(
            card=CardModel.from_model(row.card),
            owner=row.owner,
            keeper=row.keeper,
            quantity=row.quantity,
        )


class AddCardsRequest(BaseModel):
    """Request model for adding cards to stock."""

    cards: list[CardRowModel] = Field(
        ...,
        description="Rows to add; quantities are added to existing stock",
    )


class AddCardsResponse(BaseModel):
    rows_added: int


class ModifyQuantityRequest(BaseModel):
    """Request model for correcting one stock row."""

    owner: str
    keeper: str
    catalog_id: str
    foil: bool = False
    quantity: int = Field(..., description="Exact new quantity; 0 deletes the row")


class CardListResponse(BaseModel):
    cards: list[CardRowModel] = Field(default_factory=list)


@router.post("", response_model=AddCardsResponse)
async def add_cards(request: AddCardsRequest, factory: SessionFactory) -> AddCardsResponse:
    """Add copies to stock. The whole batch succeeds or nothing changes."""
    rows = [
        CardRow(
            card=row.card.to_model(),
            owner=row.owner,
            keeper=row.keeper,
            quantity=row.quantity,
        )
        for row in request.cards
    ]
    await StockLedger(factory).add_cards(rows)
    return AddCardsResponse(rows_added=len(rows))


@router.put("/quantity", status_code=status.HTTP_204_NO_CONTENT)
async def modify_quantity(request: ModifyQuantityRequest, factory: SessionFactory) -> None:
    """Set an existing stock row to an exact quantity."""
    await StockLedger(factory).modify_quantity(
        request.owner, request.keeper, request.catalog_id, request.foil, request.quantity
    )


@router.get("/oracle/{oracle_id}", response_model=CardListResponse)
async def cards_by_oracle_id(
    oracle_id: str, factory: SessionFactory, limit: Limit = 0, offset: Offset = 0
) -> CardListResponse:
    rows = await StockLedger(factory).cards_by_oracle_id(oracle_id, limit, offset)
    return CardListResponse(cards=[CardRowModel.from_model(row) for row in rows])


@router.get("/owner/{owner}", response_model=CardListResponse)
async def cards_by_owner(
    owner: str, factory: SessionFactory, limit: Limit = 0, offset: Offset = 0
) -> CardListResponse:
    rows = await StockLedger(factory).cards_by_owner(owner, limit, offset)
    return CardListResponse(cards=[CardRowModel.from_model(row) for row in rows])


@router.get("/keeper/{keeper}", response_model=CardListResponse)
async def cards_by_keeper(
    keeper: str, factory: SessionFactory, limit: Limit = 0, offset: Offset = 0
) -> CardListResponse:
    rows = await StockLedger(factory).cards_by_keeper(keeper, limit, offset)
    return CardListResponse(cards=[CardRowModel.from_model(row) for row in rows])
