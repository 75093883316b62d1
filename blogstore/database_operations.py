import logging
from typing import Any

import asyncpg

from blogstore.db_context import Database
from blogstore.errors import translate_errors

logger = logging.getLogger(__name__)


def affected_rows(status: str) -> int:
    """Extract the row count from a command status such as "DELETE 3"."""
    try:
        return int(status.split()[-1])
    except (IndexError, ValueError):
        return 0


class DatabaseOperations:
    """Composition class for database operations.

    Statements run on the connection of the scope active in the calling task;
    engine faults are re-raised as blogstore errors.
    """

    def __init__(self, db: Database):
        self.db = db

    def get_connection(self) -> asyncpg.Connection:
        """Get the connection of the active scope"""
        conn = self.db.get_current_connection()
        if not conn:
            raise ValueError(
                "No active scope found. Database operations must run inside db.read() or db.write()."
            )
        return conn

    def _log(self, query: str, params: list[Any]):
        logger.debug("SQL: %s (%d params)", query, len(params))
        Database.log_query(query, params)

    async def fetch_all(self, query: str, params: list[Any]) -> list[Any]:
        """Execute query and fetch all rows"""
        conn = self.get_connection()
        self._log(query, params)
        with translate_errors("fetch"):
            return await conn.fetch(query, *params)

    async def fetch_one(self, query: str, params: list[Any]) -> Any:
        """Execute a query and fetch one row"""
        conn = self.get_connection()
        self._log(query, params)
        with translate_errors("fetch"):
            return await conn.fetchrow(query, *params)

    async def fetch_value(self, query: str, params: list[Any]) -> Any:
        """Execute query and fetch single value"""
        conn = self.get_connection()
        self._log(query, params)
        with translate_errors("fetch"):
            return await conn.fetchval(query, *params)

    async def execute_query(self, query: str, params: list[Any]) -> str:
        """Execute query and return the command status"""
        conn = self.get_connection()
        self._log(query, params)
        with translate_errors("execute"):
            return await conn.execute(query, *params)

    async def execute_script(self, script: str):
        """Execute several parameterless statements at once"""
        conn = self.get_connection()
        self._log(script, [])
        with translate_errors("execute script"):
            await conn.execute(script)
