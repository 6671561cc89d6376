"""
Transfer API endpoints.

Opening a transfer moves custody immediately; closing only marks it
complete; canceling deletes it without moving cards back.
"""

from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from cardledger.api.cards import CardModel, Limit, Offset
from cardledger.api.deps import SessionFactory
from cardledger.ledger.transfers import TransferWorkflow
from cardledger.models.inventory import Transfer, TransferredCards

router = APIRouter(prefix="/transfers", tags=["transfers"])


class TransferredCardsModel(BaseModel):
    """One transferred printing. `owner` is the owner of record."""

    card: CardModel
    owner: str
    quantity: int


class TransferResponse(BaseModel):
    """Response model for a transfer."""

    id: int
    to_user: str
    from_user: str
    request_id: int | None = None
    opened: datetime
    closed: datetime | None = None
    quantity: int = 0
    cards: list[TransferredCardsModel] = Field(default_factory=list)

    @classmethod
    def from_model(cls, transfer: Transfer) -> "TransferResponse":
        return cls(
            id=transfer.id,
            to_user=transfer.to_user,
            from_user=transfer.from_user,
            request_id=transfer.request_id,
            opened=transfer.opened,
            closed=transfer.closed,
            quantity=transfer.quantity,
            cards=[
                TransferredCardsModel(
                    card=CardModel.from_model(c.card), owner=c.owner, quantity=c.quantity
                )
                for c in transfer.cards
            ],
        )


class OpenTransferRequest(BaseModel):
    """Request model for opening a transfer."""

    to_user: str
    from_user: str
    request_id: int | None = Field(
        default=None,
        description="Request this transfer fulfills, if any",
    )
    cards: list[TransferredCardsModel]


class TransferListResponse(BaseModel):
    transfers: list[TransferResponse] = Field(default_factory=list)


@router.post("", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
async def open_transfer(request: OpenTransferRequest, factory: SessionFactory) -> TransferResponse:
    """Open a transfer, moving custody of every line to `to_user`."""
    rows = [
        TransferredCards(card=c.card.to_model(), owner=c.owner, quantity=c.quantity)
        for c in request.cards
    ]
    transfer = await TransferWorkflow(factory).open_transfer(
        request.to_user, request.from_user, request.request_id, rows
    )
    return TransferResponse.from_model(transfer)


@router.post("/{transfer_id}/close", status_code=status.HTTP_204_NO_CONTENT)
async def close_transfer(transfer_id: int, factory: SessionFactory) -> None:
    await TransferWorkflow(factory).close_transfer(transfer_id)


@router.delete("/{transfer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_transfer(transfer_id: int, factory: SessionFactory) -> None:
    """Cancel an open transfer. Custody is not reversed."""
    await TransferWorkflow(factory).cancel_transfer(transfer_id)


@router.get("/to/{to_user}", response_model=TransferListResponse)
async def transfers_by_to_user(
    to_user: str, factory: SessionFactory, limit: Limit = 0, offset: Offset = 0
) -> TransferListResponse:
    transfers = await TransferWorkflow(factory).transfers_by_to_user(to_user, limit, offset)
    return TransferListResponse(transfers=[TransferResponse.from_model(t) for t in transfers])


@router.get("/from/{from_user}", response_model=TransferListResponse)
async def transfers_by_from_user(
    from_user: str, factory: SessionFactory, limit: Limit = 0, offset: Offset = 0
) -> TransferListResponse:
    transfers = await TransferWorkflow(factory).transfers_by_from_user(from_user, limit, offset)
    return TransferListResponse(transfers=[TransferResponse.from_model(t) for t in transfers])


@router.get("/request/{request_id}", response_model=TransferListResponse)
async def transfers_by_request_id(
    request_id: int, factory: SessionFactory, limit: Limit = 0, offset: Offset = 0
) -> TransferListResponse:
    transfers = await TransferWorkflow(factory).transfers_by_request_id(request_id, limit, offset)
    return TransferListResponse(transfers=[TransferResponse.from_model(t) for t in transfers])


@router.get("/{transfer_id}", response_model=TransferResponse)
async def transfer_by_id(
    transfer_id: int, factory: SessionFactory, limit: Limit = 0, offset: Offset = 0
) -> TransferResponse:
    """A transfer with one page of its lines."""
    transfer = await TransferWorkflow(factory).transfer_by_id(transfer_id, limit, offset)
    return TransferResponse.from_model(transfer)
