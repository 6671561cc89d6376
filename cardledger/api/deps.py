"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardledger.db.database import get_session_factory
from cardledger.models.failure import CatalogUnavailableError
from cardledger.services.card_identity_cache import CardIdentityCache

SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


def get_card_identity_cache(request: Request) -> CardIdentityCache:
    """
    The identity cache built at startup.

    Raises:
        CatalogUnavailableError: No catalog was loaded (503)
    """
    cache: CardIdentityCache | None = getattr(request.app.state, "card_identity_cache", None)
    if cache is None:
        raise CatalogUnavailableError()
    return cache


IdentityCache = Annotated[CardIdentityCache, Depends(get_card_identity_cache)]
