"""
Stock ledger.

Owns the (printing, owner, keeper) -> quantity relation.

INVARIANTS:
1. A stock row never holds a negative quantity
2. A stock row with quantity zero is deleted, not stored
3. Adding to an existing row is additive (upsert), never an overwrite
4. A batch is applied completely or not at all
"""

import logging
from collections.abc import Sequence

from sqlalchemy import ColumnElement, Select, and_, delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardledger.db.pagination import clamp_limit, clamp_offset
from cardledger.db.transaction import atomic, reading
from cardledger.ledger.users import resolve_user_ids
from cardledger.ledger.validation import validate_rows
from cardledger.models.db import CardDB
from cardledger.models.failure import StockEntryNotFoundError, ValidationError
from cardledger.models.inventory import Card, CardRow

logger = logging.getLogger(__name__)


def _stock_key(
    catalog_id: str, foil: bool, owner_id: int, keeper_id: int
) -> ColumnElement[bool]:
    return and_(
        CardDB.catalog_id == catalog_id,
        CardDB.foil == foil,
        CardDB.owner_id == owner_id,
        CardDB.keeper_id == keeper_id,
    )


async def get_stock_quantity(
    session: AsyncSession, card: Card, owner_id: int, keeper_id: int
) -> int:
    """Quantity currently on the stock row, 0 if there is none."""
    result = await session.execute(
        select(CardDB.quantity).where(_stock_key(card.catalog_id, card.foil, owner_id, keeper_id))
    )
    quantity = result.scalar_one_or_none()
    return quantity or 0


async def deposit_stock(
    session: AsyncSession, card: Card, owner_id: int, keeper_id: int, quantity: int
) -> None:
    """Add copies to a stock row, creating it if it does not exist yet."""
    result = await session.execute(
        update(CardDB)
        .where(_stock_key(card.catalog_id, card.foil, owner_id, keeper_id))
        .values(quantity=CardDB.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:  # type: ignore[attr-defined]
        return

    await session.execute(
        insert(CardDB).values(
            name=card.name,
            oracle_id=card.oracle_id,
            catalog_id=card.catalog_id,
            foil=card.foil,
            owner_id=owner_id,
            keeper_id=keeper_id,
            quantity=quantity,
        )
    )


async def withdraw_stock(
    session: AsyncSession, card: Card, owner_id: int, keeper_id: int, quantity: int
) -> bool:
    """
    Remove copies from a stock row if enough are held.

    The check and the decrement are one conditional UPDATE, so concurrent
    withdrawals cannot both succeed against the same copies. A row that
    reaches zero is deleted.

    Returns:
        True if the copies were removed, False if fewer than `quantity` are held.
    """
    key = _stock_key(card.catalog_id, card.foil, owner_id, keeper_id)
    result = await session.execute(
        update(CardDB)
        .where(key, CardDB.quantity >= quantity)
        .values(quantity=CardDB.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:  # type: ignore[attr-defined]
        return False

    await session.execute(delete(CardDB).where(key, CardDB.quantity == 0))
    return True


def card_row_to_model(db_card: CardDB) -> CardRow:
    """Convert a database stock row to a domain model."""
    return CardRow(
        card=Card(
            name=db_card.name,
            oracle_id=db_card.oracle_id,
            catalog_id=db_card.catalog_id,
            foil=db_card.foil,
        ),
        owner=db_card.owner.handle,
        keeper=db_card.keeper.handle,
        quantity=db_card.quantity,
    )


class StockLedger:
    """Adds, corrects and lists stock rows on the store it was constructed with."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_cards(self, rows: Sequence[CardRow]) -> None:
        """
        Add copies to stock, one upsert per row, in a single transaction.

        Raises:
            EmptyBatchError, TooManyRowsError, ZeroQuantityError: Invalid batch
            UserNotFoundError: An owner or keeper is not registered
        """
        validate_rows("adding cards", rows)

        async with atomic(self._session_factory, "adding cards") as session:
            user_ids = await resolve_user_ids(
                session, [row.owner for row in rows] + [row.keeper for row in rows]
            )
            for row in rows:
                logger.debug(
                    "Adding %d of %s (%s) owner=%s keeper=%s",
                    row.quantity,
                    row.card.name,
                    row.card.catalog_id,
                    row.owner,
                    row.keeper,
                )
                await deposit_stock(
                    session, row.card, user_ids[row.owner], user_ids[row.keeper], row.quantity
                )

        logger.info("Added %d card rows", len(rows))

    async def modify_quantity(
        self, owner: str, keeper: str, catalog_id: str, foil: bool, quantity: int
    ) -> None:
        """
        Set an existing stock row to an exact quantity.

        This is a correction, not an upsert: the row must already exist.
        Setting the quantity to 0 deletes the row.

        Raises:
            ValidationError: Negative quantity
            StockEntryNotFoundError: No such stock row
            UserNotFoundError: Owner or keeper is not registered
        """
        if quantity < 0:
            raise ValidationError("quantity must not be negative", detail=str(quantity))

        operation = f"modifying quantity of {catalog_id}"
        async with atomic(self._session_factory, operation) as session:
            user_ids = await resolve_user_ids(session, [owner, keeper])
            key = _stock_key(catalog_id, foil, user_ids[owner], user_ids[keeper])
            if quantity == 0:
                result = await session.execute(delete(CardDB).where(key))
            else:
                result = await session.execute(
                    update(CardDB)
                    .where(key)
                    .values(quantity=quantity)
                    .execution_options(synchronize_session=False)
                )
            if not result.rowcount:  # type: ignore[attr-defined]
                raise StockEntryNotFoundError(catalog_id, foil, owner, keeper)

        logger.info(
            "Set %s (foil=%s) owner=%s keeper=%s to %d", catalog_id, foil, owner, keeper, quantity
        )

    async def cards_by_oracle_id(
        self, oracle_id: str, limit: int = 0, offset: int = 0
    ) -> list[CardRow]:
        """All stock of one logical card, across printings, owners and keepers."""
        async with reading(self._session_factory, f"getting cards {oracle_id!r}") as session:
            return await self._list(
                session, select(CardDB).where(CardDB.oracle_id == oracle_id), limit, offset
            )

    async def cards_by_owner(self, owner: str, limit: int = 0, offset: int = 0) -> list[CardRow]:
        """
        Stock owned by a user, wherever it is kept.

        Raises:
            UserNotFoundError: Owner is not registered
        """
        async with reading(self._session_factory, f"getting cards owned by {owner!r}") as session:
            user_ids = await resolve_user_ids(session, [owner])
            return await self._list(
                session, select(CardDB).where(CardDB.owner_id == user_ids[owner]), limit, offset
            )

    async def cards_by_keeper(self, keeper: str, limit: int = 0, offset: int = 0) -> list[CardRow]:
        """
        Stock physically held by a user, whoever owns it.

        Raises:
            UserNotFoundError: Keeper is not registered
        """
        async with reading(self._session_factory, f"getting cards kept by {keeper!r}") as session:
            user_ids = await resolve_user_ids(session, [keeper])
            return await self._list(
                session, select(CardDB).where(CardDB.keeper_id == user_ids[keeper]), limit, offset
            )

    async def _list(
        self, session: AsyncSession, query: Select[tuple[CardDB]], limit: int, offset: int
    ) -> list[CardRow]:
        result = await session.execute(
            query.order_by(
                CardDB.name,
                CardDB.catalog_id,
                CardDB.foil,
                CardDB.owner_id,
                CardDB.keeper_id,
            )
            .limit(clamp_limit(limit))
            .offset(clamp_offset(offset))
        )
        return [card_row_to_model(db_card) for db_card in result.scalars().all()]
