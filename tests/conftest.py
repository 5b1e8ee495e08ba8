import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./drive-test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef0123456789")
os.environ.setdefault("SHARE_PASSWORD_BCRYPT_ROUNDS", "4")
os.environ["RATE_LIMIT_BACKEND"] = "memory"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.database import Base, get_db
from app.core.rate_limit import rate_limit_store
from app.core.security import create_access_token
from app.main import app
from app.services.folder_service import folder_service

OWNER_ID = "user-owner"
OTHER_USER_ID = "user-other"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'drive.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    rate_limit_store.clear()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
    rate_limit_store.clear()


def auth_headers(user_id: str = OWNER_ID) -> dict:
    token = create_access_token({"sub": user_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def owned_file(db):
    return await folder_service.create_file(
        db,
        name="report.pdf",
        size_bytes=2048,
        mime_type="application/pdf",
        object_path="uploads/report.pdf",
        folder_id=None,
        owner_id=OWNER_ID,
    )
