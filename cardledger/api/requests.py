"""
Request API endpoints.

Opens and closes card requests and lists them by requestor.
"""

from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from cardledger.api.cards import Limit, Offset
from cardledger.api.deps import SessionFactory
from cardledger.ledger.requests import RequestWorkflow
from cardledger.models.inventory import Request, RequestedCards

router = APIRouter(prefix="/requests", tags=["requests"])


class RequestedCardsModel(BaseModel):
    """One requested logical card."""

    oracle_id: str
    name: str
    quantity: int


class RequestResponse(BaseModel):
    """Response model for a request."""

    id: int
    requestor: str
    opened: datetime
    closed: datetime | None = None
    quantity: int = Field(default=0, description="Total copies requested across all lines")
    cards: list[RequestedCardsModel] = Field(default_factory=list)

    @classmethod
    def from_model(cls, request: Request) -> "RequestResponse":
        return cls(
            id=request.id,
            requestor=request.requestor,
            opened=request.opened,
            closed=request.closed,
            quantity=request.quantity,
            cards=[
                RequestedCardsModel(oracle_id=c.oracle_id, name=c.name, quantity=c.quantity)
                for c in request.cards
            ],
        )


class OpenRequestRequest(BaseModel):
    """Request model for opening a request."""

    requestor: str
    cards: list[RequestedCardsModel]


class RequestListResponse(BaseModel):
    requests: list[RequestResponse] = Field(default_factory=list)


@router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def open_request(request: OpenRequestRequest, factory: SessionFactory) -> RequestResponse:
    """Open a request. Lines cannot be added afterwards."""
    rows = [
        RequestedCards(oracle_id=c.oracle_id, name=c.name, quantity=c.quantity)
        for c in request.cards
    ]
    opened = await RequestWorkflow(factory).open_request(request.requestor, rows)
    return RequestResponse.from_model(opened)


@router.post("/{request_id}/close", status_code=status.HTTP_204_NO_CONTENT)
async def close_request(request_id: int, factory: SessionFactory) -> None:
    """Close an open request. Closing twice is a 404."""
    await RequestWorkflow(factory).close_request(request_id)


@router.get("/requestor/{requestor}", response_model=RequestListResponse)
async def requests_by_requestor(
    requestor: str, factory: SessionFactory, limit: Limit = 0, offset: Offset = 0
) -> RequestListResponse:
    requests = await RequestWorkflow(factory).requests_by_requestor(requestor, limit, offset)
    return RequestListResponse(requests=[RequestResponse.from_model(r) for r in requests])


@router.get("/{request_id}", response_model=RequestResponse)
async def request_by_id(
    request_id: int, factory: SessionFactory, limit: Limit = 0, offset: Offset = 0
) -> RequestResponse:
    """A request with one page of its lines."""
    request = await RequestWorkflow(factory).request_by_id(request_id, limit, offset)
    return RequestResponse.from_model(request)
