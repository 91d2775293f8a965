"""
Database Configuration
SQLAlchemy setup for PostgreSQL
"""

import os
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from typing import AsyncGenerator, Optional

from fdp_support.config import settings


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


def async_database_url(url: str) -> str:
    """Convert postgres:// and postgresql:// to postgresql+asyncpg://"""
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url.replace("postgresql://", "postgresql+asyncpg://", 1)


def build_engine(url: Optional[str] = None) -> AsyncEngine:
    """
    Create the async engine with pool and statement timeouts from settings.
    SQLite URLs (tests, local dev) get no pool arguments.
    """
    url = async_database_url(url or settings.DATABASE_URL)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.DEBUG)

    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=3600,
        pool_pre_ping=True,
        connect_args={"command_timeout": settings.DB_STATEMENT_TIMEOUT_SECONDS},
    )


DATABASE_URL = async_database_url(settings.DATABASE_URL)

# Avoid creating the async engine during Alembic autogenerate runs
ALEMBIC_MODE = os.getenv("ALEMBIC_MODE") == "1" or os.getenv("ALEMBIC_CONTEXT") == "1"

if not ALEMBIC_MODE:
    engine = build_engine()

    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )
else:
    engine = None
    async_session_factory = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting database session
    Use in FastAPI routes as:
    async def my_route(db: AsyncSession = Depends(get_db))
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """Initialize database (create tables) when AUTO_CREATE_TABLES is set"""
    if not settings.AUTO_CREATE_TABLES:
        return
    async with engine.begin() as conn:
        # Import all models here to ensure they're registered
        from fdp_support.infrastructure.db import models  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections"""
    if engine is not None:
        await engine.dispose()
