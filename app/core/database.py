from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from app.core.config import settings


def _engine_kwargs(database_url: str) -> dict:
    # SQLite (tests, local dev) does not accept the server pool settings
    if database_url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 10,
        "max_overflow": 20,
        "pool_recycle": 3600,
    }


def _normalize_url(database_url: str) -> str:
    # Convert postgres:// and postgresql:// to the asyncpg driver
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


DATABASE_URL = _normalize_url(settings.DATABASE_URL)

engine = create_async_engine(DATABASE_URL, echo=False, **_engine_kwargs(DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """Yield a database session for the duration of one request."""
    async with AsyncSessionLocal() as session:
        yield session
