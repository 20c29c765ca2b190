"""
Database connection and session management for SQLAlchemy 2.0.
Configured for async operations (asyncpg in production, aiosqlite locally).
"""
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from sqlalchemy import text
from urllib.parse import urlparse
import logging
import socket

from portfolio.config import settings

logger = logging.getLogger(__name__)

# Create declarative base for models
Base = declarative_base()


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _engine_args(url: str) -> dict:
    """Build engine keyword arguments for the configured backend."""
    args = {
        "echo": False,  # Set to True for SQL query logging in development
    }

    if url.startswith("postgresql"):
        args.update({
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,  # Verify connections before using (handles stale connections)
            "pool_recycle": 3600,
            "connect_args": {
                "server_settings": {
                    "application_name": "portfolio-api"
                }
            }
        })
    elif _is_sqlite(url):
        # aiosqlite connections are bound to the event loop that opened them
        args["poolclass"] = NullPool

    return args


engine = create_async_engine(settings.DATABASE_URL, **_engine_args(settings.DATABASE_URL))

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncSession:
    """
    FastAPI dependency for database sessions.
    Provides async database session with automatic commit/rollback.

    Usage:
        @router.get("/endpoint")
        async def my_endpoint(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {str(e)}", exc_info=True)
            raise
        finally:
            await session.close()


def _validate_database_url(url: str) -> tuple[bool, str]:
    """
    Validate database URL and provide diagnostic information.
    Returns (is_valid, diagnostic_message)
    """
    if not url:
        return False, "DATABASE_URL is empty"

    if _is_sqlite(url):
        return True, f"SQLite database: {url}"

    try:
        parsed = urlparse(url)

        if not url.startswith(("postgresql://", "postgresql+asyncpg://")):
            return False, (
                "Invalid database URL scheme. Expected postgresql+asyncpg:// or "
                f"sqlite+aiosqlite://, got: {parsed.scheme}"
            )

        hostname = parsed.hostname
        if not hostname:
            return False, "No hostname found in DATABASE_URL"

        try:
            socket.getaddrinfo(hostname, None)
            dns_status = "DNS resolution successful"
        except socket.gaierror as e:
            dns_status = f"DNS resolution failed: {str(e)}"

        return True, (
            f"URL format valid. Hostname: {hostname}, Port: {parsed.port or 5432}, "
            f"Database: {parsed.path or '/postgres'}. {dns_status}"
        )

    except ValueError as e:
        return False, f"Error parsing DATABASE_URL: {str(e)}"


async def init_db():
    """
    Initialize database connection on startup.
    SQLite databases get their tables created here; PostgreSQL is migrated with Alembic.
    """
    is_valid, diagnostic = _validate_database_url(settings.DATABASE_URL)
    if not is_valid:
        logger.error(f"Invalid DATABASE_URL: {diagnostic}")
        raise ValueError(f"Invalid DATABASE_URL: {diagnostic}")

    logger.info(f"Database URL validation: {diagnostic}")

    # Register models on Base.metadata
    from portfolio import models  # noqa: F401

    try:
        async with engine.begin() as conn:
            if _is_sqlite(settings.DATABASE_URL):
                await conn.run_sync(Base.metadata.create_all)
            await conn.execute(text("SELECT 1"))
            logger.info("Database connection initialized successfully")
    except Exception as e:
        error_msg = str(e)
        if "connection refused" in error_msg.lower() or "timeout" in error_msg.lower():
            logger.error(
                f"Database connection failed - Connection refused/timeout: {error_msg}\n"
                f"Diagnostic: {diagnostic}"
            )
        elif "authentication failed" in error_msg.lower() or "password" in error_msg.lower():
            logger.error(
                f"Database connection failed - Authentication error: {error_msg}\n"
                f"Diagnostic: {diagnostic}"
            )
        else:
            logger.error(
                f"Database connection failed ({type(e).__name__}): {error_msg}\n"
                f"Diagnostic: {diagnostic}"
            )
        raise


async def close_db():
    """
    Close database connections.
    Used for shutdown events.
    """
    await engine.dispose()
    logger.info("Database connections closed")
