import itertools

import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

from blogstore.db_context import Database, DatabaseConfig
from blogstore.post_model import PostModel
from blogstore.resource_model import PostResourceModel


@pytest.fixture(scope="session")
def postgres_container():
    """Start a PostgreSQL test container for the session."""
    with PostgresContainer("postgres:17") as postgres:
        yield postgres


@pytest.fixture(scope="session")
def dsn(postgres_container) -> str:
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    return f"postgresql://{postgres_container.username}:{postgres_container.password}@{host}:{port}/{postgres_container.dbname}"


class FakeClock:
    """Deterministic clock: every call returns one second later."""

    def __init__(self, start: int = 1_700_000_000):
        self._counter = itertools.count(start)
        self.last: int | None = None

    def __call__(self) -> int:
        self.last = next(self._counter)
        return self.last


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def db(dsn):
    """A Database handle with the blog schema initialized, emptied after each test."""
    # Create a new pool for each test to avoid event loop issues
    database = await Database.connect(DatabaseConfig(dsn=dsn, min_size=1, max_size=5))
    await PostModel(database).init_schema()
    await PostResourceModel(database).init_schema()

    yield database

    async with database.write() as conn:
        await conn.execute(
            "TRUNCATE TABLE posts, posts_tags, posts_resources RESTART IDENTITY CASCADE"
        )
    await database.close()


@pytest.fixture
def post_model(db, clock):
    return PostModel(db, clock=clock)


@pytest.fixture
def resource_model(db, clock):
    return PostResourceModel(db, clock=clock)

