"""
Database engine and session management.

Provides the async SQLAlchemy engine and the session factory that ledger
components are constructed with.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cardledger.config import settings
from cardledger.models.db import Base

# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Dependency that provides the session factory ledger components run on.

    Usage in FastAPI:
        @app.get("/items")
        async def get_items(factory=Depends(get_session_factory)):
            ledger = StockLedger(factory)
    """
    return async_session_factory


async def init_db() -> None:
    """
    Initialize database tables.

    Creates all tables defined in the ORM models.
    Should be called once at application startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
