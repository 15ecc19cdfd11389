"""pytest fixtures for GenStudio backend tests.

Provides:
- utc_timezone: Autouse fixture enforcing UTC timezone
- session_factory: Function-scoped SQLite database (one file per test) with tables created
- session: Function-scoped database session
- uow_factory: Function-scoped UnitOfWork factory
- settings / storage / processor: Test configuration, tmp upload dir, deterministic processing
- app / test_client: Application wired to the fixtures above, driven through ASGITransport
- signup: Helper creating an account and returning auth headers
"""

import os

# Must be set before genstudio.app builds its module-level app
os.environ.setdefault("APP_ENV", "test")

from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from genstudio.app import create_app  # noqa: E402
from genstudio.core.config import Settings  # noqa: E402
from genstudio.core.database import (  # noqa: E402
    create_all_tables,
    dispose_engine,
    setup_db_session,
)
from genstudio.services.simulation import FixedProcessingStrategy  # noqa: E402
from genstudio.services.storage import UploadStorage  # noqa: E402
from genstudio.uow import create_uow_factory  # noqa: E402
from genstudio.workers.generation_processor import GenerationProcessor  # noqa: E402

TEST_JWT_SECRET = "test-secret-0123456789abcdef0123456789"

# Smallest byte string that carries a PNG signature
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 120


@pytest.fixture(scope="session", autouse=True)
def utc_timezone():
    """Enforce UTC timezone for all tests."""
    os.environ["TZ"] = "UTC"
    yield


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Provide a fresh SQLite database per test with all tables created."""
    factory = setup_db_session(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_all_tables(factory)
    yield factory
    await dispose_engine(factory)


@pytest_asyncio.fixture(scope="function")
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide function-scoped database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def uow_factory(session_factory):
    """Provide function-scoped UnitOfWork factory over the test database."""
    return create_uow_factory(session_factory)


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Test settings: tmp upload dir, fast bcrypt, fixed JWT secret."""
    return Settings(  # type: ignore[call-arg]
        APP_ENV="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        JWT_SECRET=TEST_JWT_SECRET,
        BCRYPT_ROUNDS=4,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def storage(settings) -> UploadStorage:
    storage = UploadStorage(settings.upload_dir, settings.upload_url_prefix)
    storage.ensure_directory()
    return storage


@pytest.fixture
def processing_strategy() -> FixedProcessingStrategy:
    """Processing that succeeds immediately. Tests swap `processor.strategy` as needed."""
    return FixedProcessingStrategy(succeed=True, delay=0.0)


@pytest_asyncio.fixture
async def processor(uow_factory, storage, processing_strategy):
    processor = GenerationProcessor(uow_factory, storage, processing_strategy)
    yield processor
    await processor.shutdown()


@pytest_asyncio.fixture
async def app(settings, processing_strategy, session_factory, uow_factory, storage, processor):
    """Application with app.state populated directly (lifespan does not run under ASGITransport)."""
    app = create_app(settings=settings, processing_strategy=processing_strategy)
    app.state.session_factory = session_factory
    app.state.uow_factory = uow_factory
    app.state.storage = storage
    app.state.processor = processor
    return app


@pytest_asyncio.fixture
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide AsyncClient for testing API endpoints with database access."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def signup(test_client):
    """Create an account through the API and return its Authorization header."""

    async def _signup(email: str = "alice@example.com", password: str = "secret123") -> dict:
        response = await test_client.post(
            "/api/auth/signup", json={"email": email, "password": password}
        )
        assert response.status_code == 201, response.text
        token = response.json()["data"]["token"]
        return {"Authorization": f"Bearer {token}"}

    return _signup


@pytest.fixture
def png_upload():
    """Multipart `files` entry for a small PNG image."""
    return {"image": ("photo.png", PNG_BYTES, "image/png")}
