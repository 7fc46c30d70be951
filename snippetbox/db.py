"""Database engine construction, session factory, and health checks."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import Settings
from .logger import logger

# Base class for ORM models
Base = declarative_base()

# ==================== Connection Pool Setup ====================


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database.

    Pool sizing and driver timeouts only apply to PostgreSQL; SQLite keeps
    SQLAlchemy's defaults.
    """
    if settings.is_sqlite:
        return create_async_engine(settings.DB_URL, echo=False)

    engine = create_async_engine(
        settings.DB_URL,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,  # Verify connections before use
        connect_args={
            "timeout": settings.DB_CONNECT_TIMEOUT,
            "command_timeout": settings.DB_QUERY_TIMEOUT,
        },
    )
    logger.info(
        f"Database engine configured: pool_size={settings.DB_POOL_SIZE}, "
        f"max_overflow={settings.DB_MAX_OVERFLOW}, timeout={settings.DB_POOL_TIMEOUT}s"
    )
    return engine


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory for creating database sessions."""
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


# ==================== Health ====================


async def check_db_connection(session_factory: async_sessionmaker[AsyncSession]) -> bool:
    """Check if database connection is healthy.

    Returns:
        True if a trivial query succeeds, False otherwise
    """
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return False


async def verify_database(settings: Settings) -> bool:
    """Open a throwaway engine and ping the database once."""
    engine = create_engine(settings)
    try:
        return await check_db_connection(create_sessionmaker(engine))
    finally:
        await engine.dispose()

# ==================== Cleanup ====================


async def dispose_engine(engine: AsyncEngine):
    """Gracefully close all database connections.

    Called during application shutdown to properly cleanup connection pool.
    """
    logger.info("Disposing database engine and closing connections")
    try:
        await engine.dispose()
        logger.info("Database connections closed successfully")
    except Exception as e:
        logger.error(f"Error disposing database engine: {str(e)}", exc_info=True)
