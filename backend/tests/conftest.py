"""Pytest fixtures for the snapfeed backend."""

from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

from api.deps import get_db
from api.v1 import media as media_api
from app import create_app
from core.config import settings
from db.session import build_engine
from models import User
from services import posts as post_service


def _run_alembic_migrations(database_url: str) -> None:
    """Apply Alembic migrations to the given database URL."""
    backend_dir = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_dir / "alembic"))

    original_database_url = settings.database_url
    try:
        settings.database_url = database_url
        command.upgrade(alembic_cfg, "head")
    finally:
        settings.database_url = original_database_url


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory) -> str:
    """Create and migrate a file-backed SQLite database for tests."""
    db_dir = tmp_path_factory.mktemp("sqlite")
    db_path = db_dir / "backend-test.db"
    database_url = f"sqlite+aiosqlite:///{db_path}"
    _run_alembic_migrations(database_url)
    return database_url


@pytest_asyncio.fixture()
async def test_engine(test_database_url: str) -> AsyncIterator[AsyncEngine]:
    """Create an async engine bound to the migrated SQLite test database."""
    engine = build_engine(test_database_url)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_maker(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest.fixture()
def app(session_maker: async_sessionmaker[AsyncSession]) -> Iterator[FastAPI]:
    """Create the FastAPI app with a test database dependency override."""
    application = create_app()

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an HTTPX async client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture(autouse=True)
async def clean_database(session_maker: async_sessionmaker[AsyncSession]) -> AsyncIterator[None]:
    """Clear tables before each test to guarantee isolation."""
    async with session_maker() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    yield


@pytest_asyncio.fixture()
async def db_session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


class FakeObjectStore:
    """In-memory stand-in for the MinIO bucket."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.deleted: list[str] = []
        self.presigned: list[tuple[str, int | None]] = []
        self.fail_deletes = False

    def upload_object(self, object_key: str, data: bytes, content_type: str, client: Any = None) -> None:
        self.objects[object_key] = (data, content_type)

    def delete_object(self, object_key: str, client: Any = None) -> None:
        if self.fail_deletes:
            raise RuntimeError("object store unavailable")
        self.deleted.append(object_key)
        self.objects.pop(object_key, None)

    def create_presigned_put_url(
        self,
        object_key: str,
        *,
        expires_seconds: int | None = None,
        client: Any = None,
    ) -> str:
        self.presigned.append((object_key, expires_seconds))
        return f"http://minio.test/{settings.minio_bucket}/{object_key}?signature=fake"


@pytest.fixture(autouse=True)
def object_store(monkeypatch: pytest.MonkeyPatch) -> FakeObjectStore:
    """Route every storage call made by the API through an in-memory fake."""
    store = FakeObjectStore()
    monkeypatch.setattr(post_service, "upload_object", store.upload_object)
    monkeypatch.setattr(post_service, "delete_object", store.delete_object)
    monkeypatch.setattr(media_api, "create_presigned_put_url", store.create_presigned_put_url)
    return store


def _encode_identity_token(external_id: str, **claims: Any) -> str:
    payload: dict[str, Any] = {
        "sub": external_id,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        **claims,
    }
    return jwt.encode(payload, settings.identity_jwt_key, algorithm=settings.identity_jwt_algorithms[0])


@pytest.fixture()
def make_token() -> Callable[..., str]:
    """Mint identity-provider session tokens signed with the test key."""
    return _encode_identity_token


@pytest.fixture()
def auth_headers() -> Callable[..., dict[str, str]]:
    def _headers(user_or_external_id: User | str, **claims: Any) -> dict[str, str]:
        external_id = (
            user_or_external_id.external_id
            if isinstance(user_or_external_id, User)
            else user_or_external_id
        )
        return {"Authorization": f"Bearer {_encode_identity_token(external_id, **claims)}"}

    return _headers


@pytest.fixture()
def create_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Insert a synced user row directly."""

    async def _create(name: str = "user", external_id: str | None = None) -> User:
        user = User(external_id=external_id or f"idp_{name}", name=name)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _create
