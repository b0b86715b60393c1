# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Async PostgreSQL connection management
# PURPOSE: Provide connection pooling for psycopg3 async
# CREATED: 09 OCT 2026
# ============================================================================
"""
Database Connection Pool

Manages async PostgreSQL connections using psycopg3 and psycopg_pool.
One pool per worker process; each build checks out a single connection
for its whole run and returns it in the pipeline's cleanup step.

Connection settings:
1. DATABASE_URL environment variable
2. Individual POSTGRES_* components

Usage:
    from repositories.database import init_pool

    pool = await init_pool()
    async with pool.connection() as conn:
        result = await conn.execute("SELECT 1")
"""

import logging
import os
from typing import Optional

from psycopg import sql as psycopg_sql
from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)

APPLICATION_NAME = os.environ.get("BUILDER_DB_APPLICATION_NAME", "function-builder")

# Global pool instance
_pool: Optional[AsyncConnectionPool] = None


def get_connection_string() -> str:
    """
    Get database connection string from environment.

    Priority:
    1. DATABASE_URL environment variable
    2. Individual POSTGRES_* components
    """
    if url := os.environ.get("DATABASE_URL"):
        return url

    host = os.environ.get("POSTGRES_HOST", "localhost")
    port = os.environ.get("POSTGRES_PORT", "5432")
    name = os.environ.get("POSTGRES_DB", "postgres")
    user = os.environ.get("POSTGRES_USER", "postgres")
    password = os.environ.get("POSTGRES_PASSWORD", "")
    sslmode = os.environ.get("POSTGRES_SSLMODE", "require")

    return f"postgresql://{user}:{password}@{host}:{port}/{name}?sslmode={sslmode}"


def _safe_conninfo(conninfo: str) -> str:
    """Strip credentials from a connection string for logging."""
    if "@" in conninfo:
        return conninfo.split("@")[-1]
    if "password=" in conninfo:
        return conninfo.split("password=")[0] + "password=***"
    return conninfo


async def init_pool(
    min_size: int = 1,
    max_size: int = 4,
    connection_string: Optional[str] = None,
) -> AsyncConnectionPool:
    """
    Initialize the global connection pool.

    Args:
        min_size: Minimum connections to maintain
        max_size: Maximum connections allowed
        connection_string: Override connection string (defaults to env)
    """
    global _pool

    if _pool is not None:
        logger.warning("Pool already initialized, returning existing pool")
        return _pool

    conninfo = connection_string or get_connection_string()
    logger.info(f"Initializing connection pool: {_safe_conninfo(conninfo)}")

    # Builds hold a connection across long npm/docker steps, so idle
    # connections are checked before being handed out.
    _pool = AsyncConnectionPool(
        conninfo=conninfo,
        min_size=min_size,
        max_size=max_size,
        kwargs={"application_name": APPLICATION_NAME},
        check=AsyncConnectionPool.check_connection,
        open=False,
    )

    await _pool.open()
    logger.info(f"Connection pool opened (min={min_size}, max={max_size})")

    return _pool


async def close_pool() -> None:
    """Close the global connection pool."""
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Connection pool closed")


# ============================================================================
# SCHEMA CONSTANTS
# ============================================================================

SCHEMA = os.environ.get("BUILDER_DB_SCHEMA", "public")

# Use with psycopg sql.SQL().format() for injection-safe queries
TABLE_FUNCTIONS = psycopg_sql.Identifier(SCHEMA, "functions")
