import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from config.settings import settings, IS_PRODUCTION

logger = logging.getLogger(__name__)

# Production must run on PostgreSQL (row level security on subscriptions)
if IS_PRODUCTION:
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL must be set in production. SQLite is not allowed in production.")
    if "sqlite" in settings.database_url.lower():
        raise RuntimeError("SQLite is forbidden in production. Use a PostgreSQL DATABASE_URL.")

DATABASE_URL = settings.database_url or "sqlite+aiosqlite:///./sql_app.db"


def to_async_url(url: str) -> str:
    """Point plain postgres URLs (as hosting dashboards hand them out) at asyncpg."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


async_url = to_async_url(DATABASE_URL)

engine = create_async_engine(
    async_url,
    echo=False,
    future=True,
    pool_pre_ping=not async_url.startswith("sqlite"),
)

Base = declarative_base()

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def init_db():
    """
    Create every table registered on Base.
    Called once on application startup.
    """
    async with engine.begin() as conn:
        # Registers the ORM classes with Base
        import database_models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Tables ready on {engine.dialect.name}")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function that yields a database session.

    Services that need an all-or-nothing boundary (project creation and
    deletion) commit or roll back themselves; anything left pending is
    committed here once the request handler returns.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
