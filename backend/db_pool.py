"""
Shared asyncpg connection pool for the API process.
The batch CLI creates its own short-lived pool.
"""
import asyncpg
import logging

from backend.config import settings
from cooccurrence.storage import CooccurrenceStore


logger = logging.getLogger(__name__)

_pool: asyncpg.Pool = None


async def get_asyncpg_pool() -> asyncpg.Pool:
    """Get or create the shared asyncpg connection pool."""
    global _pool
    if _pool is None or _pool._closed:
        if not settings.DATABASE_URL:
            raise RuntimeError("DATABASE_URL environment variable is not set")
        # Strip SQLAlchemy dialect prefix if present
        dsn = settings.DATABASE_URL.replace("postgresql+asyncpg://", "postgresql://")
        _pool = await asyncpg.create_pool(
            dsn,
            min_size=2,
            max_size=8,
            max_inactive_connection_lifetime=300,
            command_timeout=300,
        )
        logger.info("asyncpg connection pool created (min=2, max=8)")
    return _pool


async def close_asyncpg_pool():
    """Close the pool on app shutdown."""
    global _pool
    if _pool and not _pool._closed:
        await _pool.close()
        logger.info("asyncpg connection pool closed")
    _pool = None


async def get_cooccurrence_store() -> CooccurrenceStore:
    """FastAPI dependency: storage boundary over the shared pool."""
    pool = await get_asyncpg_pool()
    return CooccurrenceStore(pool)
