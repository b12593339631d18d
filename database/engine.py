from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
import logging

from core.config import settings

logger = logging.getLogger(__name__)


def build_engine(url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine for the given URL (defaults to settings)."""
    return create_async_engine(
        url or settings.database_url,
        echo=settings.database_echo if echo is None else echo,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


db_engine = build_engine()

# Create async session maker to be used throughout the application
AsyncSessionLocal = build_session_factory(db_engine)


# Base class for declarative models
class Base(DeclarativeBase):
    pass


async def init_db(engine: AsyncEngine | None = None):
    """Create tables for all registered models."""
    # Register models on Base.metadata
    import database.models.workflow  # noqa: F401

    target = engine or db_engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def close_db(engine: AsyncEngine | None = None):
    """Close database engine and connections."""
    await (engine or db_engine).dispose()
