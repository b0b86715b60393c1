# ============================================================================
# FUNCTION REPOSITORY
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Function record access
# PURPOSE: Read function metadata and record provider registration
# CREATED: 09 OCT 2026
# ============================================================================
"""
Function Repository

Database access for the functions table. A repository instance holds one
pooled connection for the duration of a build; close() hands it back.

Registration writes are durable: the transaction sets
synchronous_commit = remote_apply so the commit is acknowledged only after
synchronous standbys (when configured) have applied it.
"""

import logging
from typing import Optional

from psycopg import AsyncConnection, sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.models import FunctionRecord
from .database import TABLE_FUNCTIONS

logger = logging.getLogger(__name__)


class FunctionRepository:
    """Repository for FunctionRecord entities bound to one connection."""

    def __init__(self, conn: AsyncConnection, pool: Optional[AsyncConnectionPool] = None):
        """
        Args:
            conn: Connection to use for every query
            pool: Pool the connection came from (None if owned directly)
        """
        self._conn = conn
        self._pool = pool

    @classmethod
    async def acquire(cls, pool: AsyncConnectionPool) -> "FunctionRepository":
        """Check a connection out of the pool."""
        conn = await pool.getconn()
        logger.debug("Database connection established.")
        return cls(conn, pool)

    async def get(self, function_id: str) -> Optional[FunctionRecord]:
        """
        Get a function by id.

        Returns:
            FunctionRecord or None if not found
        """
        async with self._conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                sql.SQL("""
                SELECT id, runtime, entry_point, name, account_id, version,
                       func_id, provider_app_id, invoke_url
                FROM {} WHERE id = %s
                """).format(TABLE_FUNCTIONS),
                (function_id,),
            )
            row = await cur.fetchone()
        # Close the implicit read transaction before the connection idles
        await self._conn.commit()

        if row is None:
            return None
        return FunctionRecord.from_row(row)

    async def record_registration(
        self,
        function_id: str,
        invoke_url: str,
        func_id: str,
    ) -> bool:
        """
        Persist the provider function id and public invoke URL.

        Returns:
            True if a row was updated
        """
        async with self._conn.transaction():
            await self._conn.execute("SET LOCAL synchronous_commit TO 'remote_apply'")
            result = await self._conn.execute(
                sql.SQL("""
                UPDATE {} SET
                    invoke_url = %(invoke_url)s,
                    func_id = %(func_id)s
                WHERE id = %(id)s
                """).format(TABLE_FUNCTIONS),
                {"id": function_id, "invoke_url": invoke_url, "func_id": func_id},
            )
            updated = result.rowcount == 1

        if updated:
            logger.info(f"Recorded provider registration for {function_id}: func_id={func_id}")
        else:
            logger.warning(f"No function row updated for {function_id}")
        return updated

    async def close(self) -> None:
        """Return the connection to its pool (or close it)."""
        if self._conn is None:
            return
        if self._pool is not None:
            await self._pool.putconn(self._conn)
        else:
            await self._conn.close()
        self._conn = None
