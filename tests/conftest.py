import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TELEMETRY_ENABLED"] = "false"
os.environ["ADAPTER_MODE"] = "simulate"
os.environ["ADAPTER_SIMULATED_LATENCY_MS"] = "0"
os.environ["CREDENTIALS_ENCRYPTION_KEY"] = "YWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWE="
os.environ["API_KEY_PEPPER"] = "test-pepper"
os.environ.pop("PUBLISH_QUEUE_URL", None)
os.environ.pop("SHARED_WEBHOOK_SECRET", None)

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import Base + all models so metadata is complete
from crosspost.models.base import Base
import crosspost.models  # noqa: F401

from crosspost.main import app
from crosspost.core.db import get_db
from crosspost.adapters.registry import AdapterRegistry
from crosspost.api.deps import get_adapter_registry, get_dispatcher, get_reconciler
from crosspost.services.channel_store import default_channel_lookup
from crosspost.services.dispatcher import PublishDispatcher
from crosspost.services.reconciler import SyncReconciler

from fakes import RecordingAdapter
from fixtures_seed import seed_owner, seed_other_owner  # noqa: F401


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def async_engine():
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine):
    session_factory = async_sessionmaker(async_engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def adapters():
    return {
        "ebay": RecordingAdapter("ebay"),
        "facebook": RecordingAdapter("facebook"),
        "poshmark": RecordingAdapter("poshmark"),
    }


@pytest.fixture
def registry(adapters):
    return AdapterRegistry(list(adapters.values()))


@pytest.fixture
def lookup():
    return default_channel_lookup()


@pytest.fixture
def reconciler(registry, lookup):
    return SyncReconciler(registry, lookup, adapter_timeout=2.0)


@pytest.fixture
def dispatcher(registry):
    return PublishDispatcher(registry, adapter_timeout=2.0)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, registry, dispatcher, reconciler):
    """
    HTTP client that uses the test DB session and recording adapters via dependency overrides.
    """
    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_adapter_registry] = lambda: registry
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_reconciler] = lambda: reconciler

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
