import asyncio
import logging
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import wraps
from typing import Any

import asyncpg
from pydantic import BaseModel, Field, PositiveInt

from blogstore.errors import StorageError, translate_errors

logger = logging.getLogger(__name__)


class DatabaseConfig(BaseModel):
    """Connection settings for a Database handle"""

    dsn: str = Field(description="PostgreSQL connection string")
    min_size: PositiveInt = 1
    max_size: PositiveInt = 10


@dataclass
class QueryLog:
    """Represents a logged query"""

    query: str
    params: list[Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    stack_trace: str | None = None


class QueryTracker:
    """Tracks queries executed during a context"""

    def __init__(self):
        self.queries: list[QueryLog] = []
        self._enabled: bool = False

    def enable(self):
        """Enable query tracking"""
        self._enabled = True

    def disable(self):
        """Disable query tracking"""
        self._enabled = False

    def is_enabled(self) -> bool:
        """Check if query tracking is enabled"""
        return self._enabled

    def log_query(self, query: str, params: list[Any], stack_trace: str | None = None):
        """Log a query with its parameters and optional stack trace"""
        if self._enabled:
            self.queries.append(
                QueryLog(query=query, params=params, stack_trace=stack_trace)
            )

    def get_queries(self) -> list[QueryLog]:
        """Get all logged queries"""
        return self.queries.copy()

    def count(self) -> int:
        """Get the number of logged queries"""
        return len(self.queries)


# Context variable to store the query tracker
_query_tracker: ContextVar[QueryTracker | None] = ContextVar(
    "query_tracker", default=None
)


class ReadWriteLock:
    """Asyncio reader/writer lock.

    Any number of readers may hold the lock together; a writer holds it alone.
    A waiting writer blocks new readers so a steady stream of reads cannot
    starve writes. Not reentrant.
    """

    def __init__(self):
        self._condition = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def writer_active(self) -> bool:
        return self._writer

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._condition:
            await self._condition.wait_for(
                lambda: not self._writer and self._waiting_writers == 0
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._condition:
            self._waiting_writers += 1
            try:
                await self._condition.wait_for(
                    lambda: not self._writer and self._readers == 0
                )
            finally:
                self._waiting_writers -= 1
                # Readers blocked behind this writer re-check on cancellation
                self._condition.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._condition:
                self._writer = False
                self._condition.notify_all()


@dataclass
class _Scope:
    connection: asyncpg.Connection
    writable: bool
    owner: asyncio.Task | None = field(default_factory=asyncio.current_task)


class Database:
    """Shared handle over a PostgreSQL pool guarded by a reader/writer lock.

    Every model operation runs inside a scope:

    - `read()`: shared lock, pooled connection, read-only repeatable-read
      transaction so multi-statement reads see one snapshot.
    - `write()`: exclusive lock, pooled connection, read-write transaction.

    Scopes nest within a task: an inner scope reuses the outer connection (a
    write scope opens a savepoint) instead of acquiring the lock again. A scope
    belongs to the task that opened it; tasks spawned inside it (e.g. by
    asyncio.gather) cannot use it and get a StorageError. The lock, the
    connection and the transaction are released on every exit path.

    Usage:
        async with await Database.connect(DatabaseConfig(dsn=dsn)) as db:
            posts = PostModel(db)
            async with db.write():
                await posts.insert(post)
                await resources.insert(resource)
    """

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool
        self._lock = ReadWriteLock()
        self._scope: ContextVar[_Scope | None] = ContextVar(
            f"blogstore_scope_{id(self)}", default=None
        )

    @classmethod
    async def connect(cls, config: DatabaseConfig) -> "Database":
        """Create the connection pool and wrap it in a handle"""
        with translate_errors("connect"):
            pool = await asyncpg.create_pool(
                config.dsn, min_size=config.min_size, max_size=config.max_size
            )
        logger.info(
            "Connected pool (min_size=%d, max_size=%d)", config.min_size, config.max_size
        )
        return cls(pool)

    async def close(self):
        await self._pool.close()
        logger.info("Closed pool")

    async def __aenter__(self) -> "Database":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def lock(self) -> ReadWriteLock:
        return self._lock

    def _active_scope(self) -> _Scope | None:
        scope = self._scope.get()
        if scope is not None and scope.owner is not asyncio.current_task():
            raise StorageError(
                "The active scope belongs to another task; "
                "run concurrent operations outside of db.read() / db.write()"
            )
        return scope

    def get_current_connection(self) -> asyncpg.Connection | None:
        """Get the connection of the scope active in this task, if any"""
        scope = self._active_scope()
        return scope.connection if scope else None

    @asynccontextmanager
    async def read(self) -> AsyncIterator[asyncpg.Connection]:
        """Open a read scope (or join the scope already active in this task)"""
        current = self._active_scope()
        if current is not None:
            yield current.connection
            return

        async with self._lock.read():
            with translate_errors("read transaction"):
                async with self._pool.acquire() as conn, conn.transaction(
                    isolation="repeatable_read", readonly=True
                ):
                    token = self._scope.set(_Scope(conn, writable=False))
                    try:
                        yield conn
                    finally:
                        self._scope.reset(token)

    @asynccontextmanager
    async def write(self) -> AsyncIterator[asyncpg.Connection]:
        """Open a write scope (or a savepoint inside the active write scope)"""
        current = self._active_scope()
        if current is not None:
            if not current.writable:
                raise StorageError("Cannot open a write scope inside a read scope")
            with translate_errors("savepoint"):
                async with current.connection.transaction():
                    yield current.connection
            return

        async with self._lock.write():
            with translate_errors("write transaction"):
                async with self._pool.acquire() as conn, conn.transaction():
                    token = self._scope.set(_Scope(conn, writable=True))
                    try:
                        yield conn
                    finally:
                        self._scope.reset(token)

    @staticmethod
    def get_query_tracker() -> QueryTracker | None:
        """Get the current query tracker from context"""
        return _query_tracker.get()

    @staticmethod
    def log_query(query: str, params: list[Any]):
        """Log a query to the current query tracker if available"""
        tracker = _query_tracker.get()
        if tracker:
            # Skip the last 2 frames: this method and the DatabaseOperations method
            stack = traceback.extract_stack()[:-2]
            tracker.log_query(query, params, "".join(traceback.format_list(stack)))

    @staticmethod
    @asynccontextmanager
    async def track_queries() -> AsyncIterator[QueryTracker]:
        """Context manager for query tracking.

        async with Database.track_queries() as tracker:
            await posts.select_one("hello-world")
            queries = tracker.get_queries()
        """
        current_tracker = _query_tracker.get()

        if current_tracker:
            # Already have a tracker, just enable it
            was_enabled = current_tracker.is_enabled()
            current_tracker.enable()
            try:
                yield current_tracker
            finally:
                if not was_enabled:
                    current_tracker.disable()
        else:
            tracker = QueryTracker()
            tracker.enable()
            token = _query_tracker.set(tracker)
            try:
                yield tracker
            finally:
                _query_tracker.reset(token)


def transactional(write: bool = True):
    """Decorator running a model method inside a scope of `self.db`.

    Args:
        write: Open a write scope when True, a read scope otherwise

    Example:
        class PostModel(Model[Post, str, PostUpdateMask]):
            @transactional(write=False)
            async def select_one(self, key: str) -> Post:
                ...
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            scope = self.db.write() if write else self.db.read()
            async with scope:
                return await func(self, *args, **kwargs)

        return wrapper

    return decorator
