"""
Transfer workflow.

A transfer moves custody of specific printings from one user to another,
optionally in fulfillment of a request.

Lifecycle:
    Open -> Closed     (closing is a pure status stamp)
    Open -> Canceled   (the transfer row is deleted)
No transition leaves Closed or Canceled.

INVARIANTS:
1. Custody moves when the transfer is OPENED. Closing never touches stock.
2. Canceling does not reverse custody; that takes a transfer the other way.
3. Owner of record is preserved; only the keeper changes.
4. Opening is all-or-nothing: one short line aborts every line.
5. No stock row ever goes negative, even under concurrent transfers.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import ColumnElement, Subquery, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardledger.db.pagination import clamp_limit, clamp_offset
from cardledger.db.transaction import atomic, reading
from cardledger.ledger.stock import deposit_stock, get_stock_quantity, withdraw_stock
from cardledger.ledger.users import resolve_user_ids
from cardledger.ledger.validation import validate_rows
from cardledger.models.db import RequestDB, TransferDB, TransferredCardDB, UserDB
from cardledger.models.failure import (
    InsufficientStockError,
    RequestNotFoundError,
    TransferNotFoundError,
    ValidationError,
)
from cardledger.models.inventory import Card, Transfer, TransferredCards

logger = logging.getLogger(__name__)


def merge_transferred_cards(rows: Sequence[TransferredCards]) -> list[TransferredCards]:
    """Combine lines for the same printing and owner so stock is checked once."""
    merged: dict[tuple[str, bool, str], TransferredCards] = {}
    for row in rows:
        key = (row.card.catalog_id, row.card.foil, row.owner)
        existing = merged.get(key)
        if existing is None:
            merged[key] = row
        else:
            merged[key] = TransferredCards(
                card=existing.card,
                owner=existing.owner,
                quantity=existing.quantity + row.quantity,
            )
    return list(merged.values())


def _transfer_totals() -> Subquery:
    return (
        select(
            TransferredCardDB.transfer_id,
            func.sum(TransferredCardDB.quantity).label("quantity"),
        )
        .group_by(TransferredCardDB.transfer_id)
        .subquery()
    )


def transfer_to_model(
    db_transfer: TransferDB,
    quantity: int,
    cards: Sequence[TransferredCardDB] = (),
) -> Transfer:
    """Convert a database transfer to a domain model."""
    return Transfer(
        id=db_transfer.id,
        to_user=db_transfer.to_user.handle,
        from_user=db_transfer.from_user.handle,
        request_id=db_transfer.request_id,
        opened=db_transfer.opened,
        closed=db_transfer.closed,
        quantity=quantity,
        cards=tuple(
            TransferredCards(
                card=Card(
                    name=card.name,
                    oracle_id=card.oracle_id,
                    catalog_id=card.catalog_id,
                    foil=card.foil,
                ),
                owner=card.owner.handle,
                quantity=card.quantity,
            )
            for card in cards
        ),
    )


class TransferWorkflow:
    """Opens, closes, cancels and lists transfers on the store it was constructed with."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def open_transfer(
        self,
        to_user: str,
        from_user: str,
        request_id: int | None,
        rows: Sequence[TransferredCards],
    ) -> Transfer:
        """
        Open a transfer and move custody of every line to `to_user`.

        For each line, `line.quantity` copies owned by `line.owner` and kept
        by `from_user` become kept by `to_user`. The move happens here, in
        one transaction; closing the transfer later is bookkeeping only.

        Raises:
            EmptyBatchError, TooManyRowsError, ZeroQuantityError: Invalid batch
            ValidationError: Source and destination are the same user
            UserNotFoundError: A referenced user is not registered
            RequestNotFoundError: `request_id` does not exist
            InsufficientStockError: A line asks for more than `from_user` keeps;
                nothing is moved and no transfer is recorded
        """
        validate_rows("opening transfer", rows)
        if to_user == from_user:
            raise ValidationError("cannot transfer cards to the user who keeps them", to_user)
        lines = merge_transferred_cards(rows)
        opened = datetime.now(UTC)

        async with atomic(self._session_factory, "opening transfer") as session:
            user_ids = await resolve_user_ids(
                session, [to_user, from_user] + [line.owner for line in lines]
            )
            if request_id is not None and await session.get(RequestDB, request_id) is None:
                raise RequestNotFoundError(request_id)

            db_transfer = TransferDB(
                to_user_id=user_ids[to_user],
                from_user_id=user_ids[from_user],
                request_id=request_id,
                opened=opened,
            )
            session.add(db_transfer)
            await session.flush()
            transfer_id = db_transfer.id

            for line in lines:
                owner_id = user_ids[line.owner]
                moved = await withdraw_stock(
                    session, line.card, owner_id, user_ids[from_user], line.quantity
                )
                if not moved:
                    held = await get_stock_quantity(
                        session, line.card, owner_id, user_ids[from_user]
                    )
                    logger.warning(
                        "Transfer from %s to %s rejected: %s keeps %d of %s, %d requested",
                        from_user,
                        to_user,
                        from_user,
                        held,
                        line.card.catalog_id,
                        line.quantity,
                    )
                    raise InsufficientStockError(line, from_user, held)

                await deposit_stock(session, line.card, owner_id, user_ids[to_user], line.quantity)
                session.add(
                    TransferredCardDB(
                        transfer_id=transfer_id,
                        name=line.card.name,
                        oracle_id=line.card.oracle_id,
                        catalog_id=line.card.catalog_id,
                        foil=line.card.foil,
                        owner_id=owner_id,
                        quantity=line.quantity,
                    )
                )
            await session.flush()

        logger.info(
            "Opened transfer %d from %s to %s (%d lines)",
            transfer_id,
            from_user,
            to_user,
            len(lines),
        )
        return Transfer(
            id=transfer_id,
            to_user=to_user,
            from_user=from_user,
            request_id=request_id,
            opened=opened,
            quantity=sum(line.quantity for line in lines),
            cards=tuple(lines),
        )

    async def close_transfer(self, transfer_id: int) -> None:
        """
        Stamp an open transfer closed. Stock is not touched.

        Raises:
            TransferNotFoundError: No open transfer has this id
        """
        async with atomic(self._session_factory, f"closing transfer {transfer_id}") as session:
            result = await session.execute(
                update(TransferDB)
                .where(TransferDB.id == transfer_id, TransferDB.closed.is_(None))
                .values(closed=datetime.now(UTC))
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:  # type: ignore[attr-defined]
                raise TransferNotFoundError(transfer_id)

        logger.info("Closed transfer %d", transfer_id)

    async def cancel_transfer(self, transfer_id: int) -> None:
        """
        Delete an open transfer and its lines.

        Custody already moved at open time stays where it is.

        Raises:
            TransferNotFoundError: No open transfer has this id
        """
        async with atomic(self._session_factory, f"canceling transfer {transfer_id}") as session:
            await session.execute(
                delete(TransferredCardDB)
                .where(TransferredCardDB.transfer_id == transfer_id)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(
                delete(TransferDB)
                .where(TransferDB.id == transfer_id, TransferDB.closed.is_(None))
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:  # type: ignore[attr-defined]
                raise TransferNotFoundError(transfer_id)

        logger.info("Canceled transfer %d", transfer_id)

    async def transfers_by_to_user(
        self, to_user: str, limit: int = 0, offset: int = 0
    ) -> list[Transfer]:
        """
        Transfers into a user, oldest first.

        Raises:
            UserNotFoundError: User is not registered
        """
        async with reading(self._session_factory, f"getting transfers to {to_user!r}") as session:
            user_ids = await resolve_user_ids(session, [to_user])
            return await self._list(
                session, TransferDB.to_user_id == user_ids[to_user], limit, offset
            )

    async def transfers_by_from_user(
        self, from_user: str, limit: int = 0, offset: int = 0
    ) -> list[Transfer]:
        """
        Transfers out of a user, oldest first.

        Raises:
            UserNotFoundError: User is not registered
        """
        operation = f"getting transfers from {from_user!r}"
        async with reading(self._session_factory, operation) as session:
            user_ids = await resolve_user_ids(session, [from_user])
            return await self._list(
                session, TransferDB.from_user_id == user_ids[from_user], limit, offset
            )

    async def transfers_by_request_id(
        self, request_id: int, limit: int = 0, offset: int = 0
    ) -> list[Transfer]:
        """
        Transfers that fulfill a request, oldest first.

        Raises:
            RequestNotFoundError: No request has this id
        """
        operation = f"getting transfers for request {request_id}"
        async with reading(self._session_factory, operation) as session:
            if await session.get(RequestDB, request_id) is None:
                raise RequestNotFoundError(request_id)
            return await self._list(session, TransferDB.request_id == request_id, limit, offset)

    async def transfer_by_id(self, transfer_id: int, limit: int = 0, offset: int = 0) -> Transfer:
        """
        One transfer with a page of its lines, ordered by name then owner.

        Raises:
            TransferNotFoundError: No transfer has this id (including canceled ones)
        """
        async with reading(self._session_factory, f"getting transfer {transfer_id}") as session:
            db_transfer = await session.get(TransferDB, transfer_id)
            if db_transfer is None:
                raise TransferNotFoundError(transfer_id)

            total = await session.execute(
                select(func.coalesce(func.sum(TransferredCardDB.quantity), 0)).where(
                    TransferredCardDB.transfer_id == transfer_id
                )
            )
            lines = await session.execute(
                select(TransferredCardDB)
                .join(UserDB, UserDB.id == TransferredCardDB.owner_id)
                .where(TransferredCardDB.transfer_id == transfer_id)
                .order_by(
                    TransferredCardDB.name,
                    UserDB.handle,
                    TransferredCardDB.catalog_id,
                    TransferredCardDB.foil,
                )
                .limit(clamp_limit(limit))
                .offset(clamp_offset(offset))
            )
            return transfer_to_model(db_transfer, total.scalar_one(), lines.scalars().all())

    async def _list(
        self, session: AsyncSession, criterion: ColumnElement[bool], limit: int, offset: int
    ) -> list[Transfer]:
        totals = _transfer_totals()
        result = await session.execute(
            select(TransferDB, func.coalesce(totals.c.quantity, 0))
            .outerjoin(totals, totals.c.transfer_id == TransferDB.id)
            .where(criterion)
            .order_by(TransferDB.opened, TransferDB.id)
            .limit(clamp_limit(limit))
            .offset(clamp_offset(offset))
        )
        return [transfer_to_model(db_transfer, quantity) for db_transfer, quantity in result.all()]
