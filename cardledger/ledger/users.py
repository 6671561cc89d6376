"""
User directory.

Registers community members and resolves their handles to database ids
for the other ledger components.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardledger.db.transaction import atomic, reading
from cardledger.models.db import UserDB
from cardledger.models.failure import DuplicateUserError, StorageError, UserNotFoundError
from cardledger.models.inventory import User

logger = logging.getLogger(__name__)


def user_to_model(db_user: UserDB) -> User:
    """Convert a database user to a domain model."""
    return User(id=db_user.id, handle=db_user.handle, email=db_user.email)


async def resolve_user_ids(session: AsyncSession, handles: Iterable[str]) -> dict[str, int]:
    """
    Map every handle to its user id.

    Raises:
        UserNotFoundError: For the first handle that is not registered
    """
    wanted = set(handles)
    result = await session.execute(
        select(UserDB.handle, UserDB.id).where(UserDB.handle.in_(wanted))
    )
    ids = {handle: user_id for handle, user_id in result.all()}
    for handle in sorted(wanted):
        if handle not in ids:
            raise UserNotFoundError(handle)
    return ids


class UserDirectory:
    """Adds and looks up users on the store it was constructed with."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_user(self, handle: str, email: str = "") -> User:
        """
        Register a new user.

        Raises:
            DuplicateUserError: If the handle is already registered
        """
        try:
            async with atomic(self._session_factory, f"adding user {handle!r}") as session:
                existing = await session.execute(select(UserDB.id).where(UserDB.handle == handle))
                if existing.scalar_one_or_none() is not None:
                    raise DuplicateUserError(handle)
                db_user = UserDB(handle=handle, email=email)
                session.add(db_user)
                await session.flush()
                user = user_to_model(db_user)
        except StorageError as e:
            if isinstance(e.cause, IntegrityError):
                # Lost a race with a concurrent insert of the same handle
                raise DuplicateUserError(handle) from e
            raise

        logger.info("Added user %s", handle)
        return user

    async def get_user_by_handle(self, handle: str) -> User:
        async with reading(self._session_factory, f"getting user {handle!r}") as session:
            result = await session.execute(select(UserDB).where(UserDB.handle == handle))
            db_user = result.scalar_one_or_none()
        if db_user is None:
            raise UserNotFoundError(handle)
        return user_to_model(db_user)

    async def get_user_by_id(self, user_id: int) -> User:
        async with reading(self._session_factory, f"getting user {user_id}") as session:
            db_user = await session.get(UserDB, user_id)
        if db_user is None:
            raise UserNotFoundError(str(user_id))
        return user_to_model(db_user)
