import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from csv_gateway.core.errors import DatabaseConnectionError
from csv_gateway.core.schemas import DatabaseConfig

logger = logging.getLogger(__name__)


def local_utc_offset() -> str:
    """UTC offset of this process's local time zone, e.g. '+02:00'."""
    offset = datetime.now().astimezone().strftime("%z")
    return f"{offset[:3]}:{offset[3:]}"


def build_url(config: DatabaseConfig) -> URL:
    query = {"charset": "utf8mb4"} if config.is_mysql else {}
    return URL.create(
        config.driver,
        username=config.username,
        password=config.password,
        host=config.host,
        port=config.port if config.host else None,
        database=config.name,
        query=query,
    )


def set_session_time_zone(dbapi_connection, connection_record):
    """
    Align the session time zone with ours on every new connection.

    Read at connect time so a daylight saving change is picked up by the
    next request.
    """
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute(f"SET time_zone = '{local_utc_offset()}'")
    finally:
        cursor.close()


class DatabaseConnector:
    """
    Opens one connection per request.

    NullPool means the engine never keeps a connection around, so two
    requests can never share one live connection or cursor.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine: AsyncEngine = create_async_engine(
            build_url(config),
            poolclass=NullPool,
        )
        if config.is_mysql:
            event.listen(self.engine.sync_engine, "connect", set_session_time_zone)

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncConnection]:
        """
        Acquire a live connection for the duration of the block.

        Raises:
            DatabaseConnectionError: host unreachable, credentials rejected
                or unknown database.
        """
        try:
            connection = await self.engine.connect()
        except (SQLAlchemyError, OSError) as error:
            logger.error(f"Error connecting to database: {error}")
            raise DatabaseConnectionError(str(error)) from error

        try:
            yield connection
        finally:
            await connection.close()

    async def dispose(self):
        await self.engine.dispose()
