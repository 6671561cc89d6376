"""
Liveness and readiness endpoints.

/ready reports each dependency on its own. The database gates readiness;
the card catalog is informational, since stock and transfer routes work
without it and only name lookups need it.
"""

import logging

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardledger.api.deps import SessionFactory

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    """Per-dependency readiness report."""

    status: str
    database: str
    catalog: str
    printings: int | None = None


async def database_status(factory: async_sessionmaker[AsyncSession]) -> str:
    """Round-trip a trivial query through a fresh session."""
    try:
        async with factory() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Database unreachable: %s", e)
        return "disconnected"
    return "connected"


def catalog_status(request: Request) -> tuple[str, int | None]:
    """Whether the identity cache was loaded at startup, and its printing count."""
    cache = getattr(request.app.state, "card_identity_cache", None)
    if cache is None:
        return "missing", None
    return "loaded", len(cache)


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness: the process answers. No dependency is touched."""
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def ready(
    request: Request, response: Response, factory: SessionFactory
) -> ReadinessResponse:
    """503 when the database is unreachable; catalog state never affects the code."""
    database = await database_status(factory)
    catalog, printings = catalog_status(request)
    if database != "connected":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(
            status="not ready", database=database, catalog=catalog, printings=printings
        )
    return ReadinessResponse(
        status="ready", database=database, catalog=catalog, printings=printings
    )
