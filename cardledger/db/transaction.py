"""
Unit-of-work helpers.

Every ledger operation runs on its own session from the factory it was
constructed with. Mutations run inside `atomic()`: either every statement
commits or none does. Reads run inside `reading()`.

Database errors are wrapped with the operation name. A failed rollback is
reported alongside the error that triggered it, never instead of it.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardledger.models.failure import StorageError, TransactionError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(
    session_factory: async_sessionmaker[AsyncSession], operation: str
) -> AsyncIterator[AsyncSession]:
    """
    Run the enclosed block as one transaction.

    Args:
        session_factory: Store the operation runs against
        operation: Human-readable operation name used in error messages

    Raises:
        StorageError: A statement failed and the rollback succeeded
        TransactionError: The commit failed, or the rollback failed after
            another error (both errors are attached)
    """
    async with session_factory() as session:
        await session.begin()
        try:
            yield session
        except Exception as exc:
            try:
                await session.rollback()
            except SQLAlchemyError as rollback_exc:
                logger.warning("Rollback failed while %s: %s", operation, rollback_exc)
                raise TransactionError(operation, exc, rollback_exc) from exc
            if isinstance(exc, SQLAlchemyError):
                raise StorageError(operation, exc) from exc
            raise

        try:
            await session.commit()
        except SQLAlchemyError as exc:
            try:
                await session.rollback()
            except SQLAlchemyError as rollback_exc:
                logger.warning("Rollback failed while %s: %s", operation, rollback_exc)
                raise TransactionError(operation, exc, rollback_exc) from exc
            raise TransactionError(operation, exc) from exc


@asynccontextmanager
async def reading(
    session_factory: async_sessionmaker[AsyncSession], operation: str
) -> AsyncIterator[AsyncSession]:
    """Provide a session for read-only queries, wrapping database errors."""
    async with session_factory() as session:
        try:
            yield session
        except SQLAlchemyError as exc:
            raise StorageError(operation, exc) from exc
