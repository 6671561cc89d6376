"""
Request workflow.

A request records that a user wants copies of some logical cards.
Requests are independent of stock: closing one moves no cards, a separate
transfer is expected to reference it.

Lifecycle: Open -> Closed, exactly once. Lines are fixed at open time.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import Subquery, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardledger.db.pagination import clamp_limit, clamp_offset
from cardledger.db.transaction import atomic, reading
from cardledger.ledger.users import resolve_user_ids
from cardledger.ledger.validation import validate_rows
from cardledger.models.db import RequestDB, RequestedCardDB
from cardledger.models.failure import RequestNotFoundError
from cardledger.models.inventory import Request, RequestedCards

logger = logging.getLogger(__name__)


def merge_requested_cards(rows: Sequence[RequestedCards]) -> list[RequestedCards]:
    """Combine lines for the same oracle id, keeping the first display name."""
    merged: dict[str, RequestedCards] = {}
    for row in rows:
        existing = merged.get(row.oracle_id)
        if existing is None:
            merged[row.oracle_id] = row
        else:
            merged[row.oracle_id] = RequestedCards(
                oracle_id=existing.oracle_id,
                name=existing.name,
                quantity=existing.quantity + row.quantity,
            )
    return list(merged.values())


def _request_totals() -> Subquery:
    return (
        select(
            RequestedCardDB.request_id,
            func.sum(RequestedCardDB.quantity).label("quantity"),
        )
        .group_by(RequestedCardDB.request_id)
        .subquery()
    )


def request_to_model(
    db_request: RequestDB,
    quantity: int,
    cards: Sequence[RequestedCardDB] = (),
) -> Request:
    """Convert a database request to a domain model."""
    return Request(
        id=db_request.id,
        requestor=db_request.requestor.handle,
        opened=db_request.opened,
        closed=db_request.closed,
        quantity=quantity,
        cards=tuple(
            RequestedCards(oracle_id=card.oracle_id, name=card.name, quantity=card.quantity)
            for card in cards
        ),
    )


class RequestWorkflow:
    """Opens, closes and lists requests on the store it was constructed with."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def open_request(self, requestor: str, rows: Sequence[RequestedCards]) -> Request:
        """
        Open a request for the given lines.

        This is the only way to create a request; lines cannot be added later.

        Raises:
            EmptyBatchError, TooManyRowsError, ZeroQuantityError: Invalid batch
            UserNotFoundError: Requestor is not registered
        """
        validate_rows("requesting cards", rows)
        lines = merge_requested_cards(rows)
        opened = datetime.now(UTC)

        async with atomic(self._session_factory, "requesting cards") as session:
            user_ids = await resolve_user_ids(session, [requestor])
            db_request = RequestDB(requestor_id=user_ids[requestor], opened=opened)
            db_request.cards = [
                RequestedCardDB(oracle_id=line.oracle_id, name=line.name, quantity=line.quantity)
                for line in lines
            ]
            session.add(db_request)
            await session.flush()
            request_id = db_request.id

        logger.info("Opened request %d for %s (%d lines)", request_id, requestor, len(lines))
        return Request(
            id=request_id,
            requestor=requestor,
            opened=opened,
            quantity=sum(line.quantity for line in lines),
            cards=tuple(lines),
        )

    async def close_request(self, request_id: int) -> None:
        """
        Stamp a request closed.

        Raises:
            RequestNotFoundError: No open request has this id (including a
                request that was already closed)
        """
        async with atomic(self._session_factory, f"closing request {request_id}") as session:
            result = await session.execute(
                update(RequestDB)
                .where(RequestDB.id == request_id, RequestDB.closed.is_(None))
                .values(closed=datetime.now(UTC))
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:  # type: ignore[attr-defined]
                raise RequestNotFoundError(request_id)

        logger.info("Closed request %d", request_id)

    async def requests_by_requestor(
        self, requestor: str, limit: int = 0, offset: int = 0
    ) -> list[Request]:
        """
        Open and closed requests of one user, oldest first, with total quantities.

        Raises:
            UserNotFoundError: Requestor is not registered
        """
        operation = f"getting requests by {requestor!r}"
        async with reading(self._session_factory, operation) as session:
            user_ids = await resolve_user_ids(session, [requestor])
            totals = _request_totals()
            result = await session.execute(
                select(RequestDB, func.coalesce(totals.c.quantity, 0))
                .outerjoin(totals, totals.c.request_id == RequestDB.id)
                .where(RequestDB.requestor_id == user_ids[requestor])
                .order_by(RequestDB.opened, RequestDB.id)
                .limit(clamp_limit(limit))
                .offset(clamp_offset(offset))
            )
            return [request_to_model(db_request, quantity) for db_request, quantity in result.all()]

    async def request_by_id(self, request_id: int, limit: int = 0, offset: int = 0) -> Request:
        """
        One request with a page of its lines, ordered by display name.

        Raises:
            RequestNotFoundError: No request has this id
        """
        async with reading(self._session_factory, f"getting request {request_id}") as session:
            db_request = await session.get(RequestDB, request_id)
            if db_request is None:
                raise RequestNotFoundError(request_id)

            total = await session.execute(
                select(func.coalesce(func.sum(RequestedCardDB.quantity), 0)).where(
                    RequestedCardDB.request_id == request_id
                )
            )
            lines = await session.execute(
                select(RequestedCardDB)
                .where(RequestedCardDB.request_id == request_id)
                .order_by(RequestedCardDB.name, RequestedCardDB.oracle_id)
                .limit(clamp_limit(limit))
                .offset(clamp_offset(offset))
            )
            return request_to_model(db_request, total.scalar_one(), lines.scalars().all())
