from contextlib import asynccontextmanager

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from csv_gateway.core.database import DatabaseConnector
from csv_gateway.core.schemas import DatabaseConfig, GatewayConfig, QueryDefinition
from csv_gateway.main import create_app


QUERIES = [
    {"name": "Users", "query": "SELECT id, name FROM users ORDER BY id"},
    {"name": "tricky", "query": "SELECT id, note FROM notes ORDER BY id"},
    {"name": "numbers", "query": "SELECT n FROM numbers ORDER BY n"},
    {"name": "broken", "query": "SELECT id FROM no_such_table"},
    {"name": "purge", "query": "DELETE FROM users WHERE 0"},
    # Rows 3 and 4 hold malformed JSON, so fetching them fails mid-stream
    {
        "name": "parsed",
        "query": "SELECT id, json_extract(note, '$') AS parsed FROM notes ORDER BY id",
    },
]


class SpyConnector:
    """Stands in for DatabaseConnector and records every connection attempt."""

    def __init__(self, connector=None):
        self.connector = connector
        self.attempts = 0
        self.connections = []

    @asynccontextmanager
    async def connect(self):
        self.attempts += 1
        if self.connector is None:
            raise AssertionError("no database connection expected")
        async with self.connector.connect() as connection:
            self.connections.append(connection)
            yield connection

    async def dispose(self):
        if self.connector is not None:
            await self.connector.dispose()


# Create a fresh sqlite file for every test and seed it
@pytest_asyncio.fixture(scope="function")
async def database_path(tmp_path):
    path = tmp_path / "gateway.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{path}")
    async with engine.begin() as conn:
        await conn.execute(text("CREATE TABLE users (id INTEGER, name TEXT)"))
        await conn.execute(
            text("INSERT INTO users (id, name) VALUES (1, 'Alice'), (2, NULL)")
        )
        await conn.execute(text("CREATE TABLE notes (id INTEGER, note TEXT)"))
        await conn.execute(
            text("INSERT INTO notes (id, note) VALUES (:id, :note)"),
            [
                {"id": 1, "note": None},
                {"id": 2, "note": "null"},
                {"id": 3, "note": 'a, "quoted"\nline'},
                {"id": 4, "note": ""},
            ],
        )
        await conn.execute(text("CREATE TABLE numbers (n INTEGER)"))
        await conn.execute(
            text("INSERT INTO numbers (n) VALUES (:n)"),
            [{"n": n} for n in range(2500)],
        )
    await engine.dispose()
    return path


@pytest.fixture(scope="function")
def gateway_config(database_path):
    return GatewayConfig(
        database=DatabaseConfig(driver="sqlite+aiosqlite", name=str(database_path)),
        queries=[QueryDefinition(**q) for q in QUERIES],
    )


@pytest_asyncio.fixture(scope="function")
async def spy_connector(gateway_config):
    spy = SpyConnector(DatabaseConnector(gateway_config.database))
    yield spy
    await spy.dispose()


# Client
@pytest_asyncio.fixture(scope="function")
async def client(gateway_config, spy_connector):
    app = create_app(gateway_config, connector=spy_connector, flush_rows=7)

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
