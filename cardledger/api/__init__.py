from cardledger.api.cards import router as cards_router
from cardledger.api.catalog import router as catalog_router
from cardledger.api.health import router as health_router
from cardledger.api.requests import router as requests_router
from cardledger.api.transfers import router as transfers_router
from cardledger.api.users import router as users_router

__all__ = [
    "cards_router",
    "catalog_router",
    "health_router",
    "requests_router",
    "transfers_router",
    "users_router",
]
