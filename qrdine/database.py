"""
Database Connection Module
Handles the relational database connection using SQLAlchemy async engine.
"""

import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from qrdine.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


def _engine_options() -> dict:
    # SQLite uses a static/single-connection pool that rejects sizing args
    if settings.is_sqlite:
        return {"echo": settings.database_echo}
    return {
        "echo": settings.database_echo,
        "pool_size": 5,  # Connection pool size
        "max_overflow": 10,  # Extra connections when pool is full
        "pool_pre_ping": True,
    }


engine = create_async_engine(settings.database_url, **_engine_options())

# Session factory - creates new database sessions
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False  # Objects remain accessible after commit
)


# Base class for all our models
class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Models must be imported so their tables are registered on Base.metadata
    from qrdine import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")
