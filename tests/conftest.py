from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cardledger.db.database import get_session_factory
from cardledger.ledger.users import UserDirectory
from cardledger.main import app
from cardledger.models.db import Base
from cardledger.models.inventory import Card
from cardledger.services.card_identity_cache import CardIdentityCache


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory the ledger components under test run on."""
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def users(session_factory) -> UserDirectory:
    """Directory with alice, bob and carol registered."""
    directory = UserDirectory(session_factory)
    for handle in ("alice", "bob", "carol"):
        await directory.add_user(handle, f"{handle}@example.com")
    return directory


@pytest.fixture
def bolt() -> Card:
    return Card(name="Lightning Bolt", oracle_id="bolt-oracle", catalog_id="bolt-m10-en")


@pytest.fixture
def foil_bolt() -> Card:
    return Card(
        name="Lightning Bolt", oracle_id="bolt-oracle", catalog_id="bolt-m10-en", foil=True
    )


@pytest.fixture
def old_bolt() -> Card:
    """Another printing of the same logical card."""
    return Card(name="Lightning Bolt", oracle_id="bolt-oracle", catalog_id="bolt-lea-en")


@pytest.fixture
def swiftspear() -> Card:
    return Card(
        name="Monastery Swiftspear", oracle_id="swiftspear-oracle", catalog_id="swift-bro-en"
    )


@pytest.fixture
def sample_bulk_path() -> Path:
    return Path(__file__).parent / "fixtures" / "scryfall_sample.json"


@pytest.fixture
async def client(session_factory, sample_bulk_path: Path):
    """Provide an async test client on the in-memory store with the sample catalog loaded."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.state.card_identity_cache = CardIdentityCache.from_file(sample_bulk_path)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    app.state.card_identity_cache = None
