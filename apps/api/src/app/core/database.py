"""
Database Configuration

Async SQLAlchemy engine, session factory and the FastAPI session dependency.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


engine = create_async_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_timeout=settings.database_timeout_seconds,
    # asyncpg connection setup and per-statement limits; both surface as 503
    connect_args={
        "timeout": settings.database_timeout_seconds,
        "command_timeout": settings.database_timeout_seconds,
    },
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a database session for one request.

    Usage in FastAPI:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Check connectivity on startup."""
    async with engine.connect() as connection:
        await connection.execute(text("SELECT 1"))


async def close_db() -> None:
    """Dispose of the connection pool."""
    await engine.dispose()
