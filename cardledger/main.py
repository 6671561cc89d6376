import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cardledger.api import (
    cards_router,
    catalog_router,
    health_router,
    requests_router,
    transfers_router,
    users_router,
)
from cardledger.config import settings
from cardledger.db.database import init_db
from cardledger.models.failure import ApiResponse, LedgerError
from cardledger.services.card_identity_cache import CardIdentityCache

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()

    app.state.card_identity_cache = None
    if settings.catalog_path is not None and settings.catalog_path.exists():
        app.state.card_identity_cache = CardIdentityCache.from_file(settings.catalog_path)
    else:
        logger.warning("No card catalog at %s; catalog lookups disabled", settings.catalog_path)
    yield


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("cardledger"),
    lifespan=lifespan,
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(_request: Request, exc: LedgerError) -> JSONResponse:
    """Classify every ledger failure by its kind."""
    if exc.status_code >= 500:
        logger.error("Ledger failure: %s", exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error: %s", exc)
    return JSONResponse(
        status_code=500,
        content=ApiResponse.unknown_failure(type(exc).__name__).model_dump(mode="json"),
    )


app.include_router(cards_router)
app.include_router(catalog_router)
app.include_router(health_router)
app.include_router(requests_router)
app.include_router(transfers_router)
app.include_router(users_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
