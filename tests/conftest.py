import os

# Must be set before docsign.config is imported anywhere
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("EMAIL_PROVIDER", "mock")
os.environ.setdefault("SHARE_LINK_BASE_URL", "http://test-frontend")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from docsign.main import app
from docsign.database import Base, get_db
from docsign.api.deps import create_access_token
from docsign.models.user import User
from docsign.models.document import Document
from docsign.services.email_service import MockEmailService, get_email_service
from docsign.services.storage_service import LocalContentStorage, get_content_storage

from tests.factories import UserFactory, DocumentFactory, PDF_BYTES, persist


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """File-backed SQLite so separate sessions see each other's commits."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path) -> LocalContentStorage:
    return LocalContentStorage(tmp_path / "uploads")


@pytest.fixture
def mock_notifier() -> MockEmailService:
    return MockEmailService()


@pytest_asyncio.fixture
async def owner(test_db: AsyncSession) -> User:
    """Document owner used by most tests."""
    return await persist(test_db, UserFactory(email="owner@example.com", name="Olivia Owner"))


@pytest_asyncio.fixture
async def other_user(test_db: AsyncSession) -> User:
    return await persist(test_db, UserFactory(email="intruder@example.com", name="Ian Intruder"))


@pytest_asyncio.fixture
async def document(test_db: AsyncSession, owner: User, storage: LocalContentStorage) -> Document:
    """A stored PDF belonging to owner."""
    stored = await storage.save("contract.pdf", PDF_BYTES)
    return await persist(
        test_db,
        DocumentFactory(
            owner_id=owner.id,
            original_name="contract.pdf",
            file_name=stored.file_name,
            file_path=stored.locator,
            size=stored.size,
        ),
    )


@pytest_asyncio.fixture
async def client(test_db: AsyncSession, storage: LocalContentStorage, mock_notifier: MockEmailService):
    """Create test client with overridden database and collaborators."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_content_storage] = lambda: storage
    app.dependency_overrides[get_email_service] = lambda: mock_notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def authenticated_client(client: AsyncClient, owner: User):
    """Client carrying the owner's bearer token."""
    token = create_access_token({"sub": str(owner.id), "email": owner.email})
    client.headers["Authorization"] = f"Bearer {token}"
    return client
