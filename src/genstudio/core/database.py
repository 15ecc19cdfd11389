"""Database session factory setup."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel


def setup_db_session(db_url: str, pool_size: int = 20) -> async_sessionmaker[AsyncSession]:
    """Create async database session factory.

    Args:
        db_url: Async database URL (sqlite+aiosqlite://... or postgresql+psycopg://...)
        pool_size: Maximum number of connections in the pool (ignored for SQLite)

    Returns:
        Async session factory for creating database sessions
    """
    if db_url.startswith("sqlite"):
        # SQLite picks its own pool class; it does not accept pool sizing
        engine = create_async_engine(db_url, echo=False)
    else:
        engine = create_async_engine(
            db_url,
            pool_size=pool_size,
            max_overflow=0,  # No overflow beyond pool_size
            pool_pre_ping=True,  # Verify connections before using
            echo=False,  # Don't log SQL queries (use structlog instead)
        )

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Prevent lazy loading issues after commit
    )

    return session_factory


async def create_all_tables(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Create any missing tables for all registered SQLModel entities.

    Used for local SQLite databases and tests; deployed databases are migrated
    with Alembic instead.
    """
    # Register entities with SQLModel metadata
    import genstudio.models  # noqa: F401

    engine = session_factory.kw["bind"]
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def dispose_engine(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Close all pooled connections held by the factory's engine."""
    await session_factory.kw["bind"].dispose()
