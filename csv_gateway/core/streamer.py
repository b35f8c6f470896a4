import csv
import io
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, List, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncResult

from csv_gateway.core.errors import MetadataError, QueryExecutionError, RowError


# -----------------------------------------------------------------------------
# STREAMER MODULE
# Purpose: turn a live query result into CSV text, one chunk of whole rows at a
# time, without ever holding the full result set in memory.
# -----------------------------------------------------------------------------

logger = logging.getLogger(__name__)

NULL_TEXT = "null"
DEFAULT_FLUSH_ROWS = 100


def to_text(value: Any) -> str:
    """
    Render one column value as a CSV field.

    NULL becomes the bare literal ``null``. A text value "null" renders the
    same way, so the two cannot be told apart in the output.
    """
    if value is None:
        return NULL_TEXT
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def render_row(values: Sequence[Any]) -> List[str]:
    return [to_text(value) for value in values]


class CsvSink:
    """RFC 4180 writer that buffers text until it is flushed."""

    def __init__(self):
        self._buffer = io.StringIO()
        self._writer = csv.writer(self._buffer, lineterminator="\n")
        self.pending_rows = 0

    def write_row(self, fields: Sequence[str]):
        self._writer.writerow(fields)
        self.pending_rows += 1

    def flush(self) -> str:
        """Hand over everything written so far and start a fresh buffer."""
        chunk = self._buffer.getvalue()
        self._buffer.seek(0)
        self._buffer.truncate(0)
        self.pending_rows = 0
        return chunk


class ResultCursor:
    """Forward-only, single-pass view over a server side result."""

    def __init__(self, result: AsyncResult, columns: Sequence[str]):
        self._result = result
        self.columns: Tuple[str, ...] = tuple(columns)

    @classmethod
    async def open(cls, connection: AsyncConnection, statement: str) -> "ResultCursor":
        """
        Execute a statement and read its column names.

        Raises:
            QueryExecutionError: the database rejected the statement.
            MetadataError: the column names could not be read, or the
                statement does not return rows.
        """
        try:
            result = await connection.stream(text(statement))
        except SQLAlchemyError as error:
            logger.error(f"Error running query: {error}")
            raise QueryExecutionError(str(error)) from error

        try:
            columns = list(result.keys())
        except SQLAlchemyError as error:
            await result.close()
            logger.error(f"Error getting columns name: {error}")
            raise MetadataError(str(error)) from error

        if not columns:
            await result.close()
            raise MetadataError("statement did not return any columns")

        return cls(result, columns)

    async def rows(self) -> AsyncIterator[Tuple[Any, ...]]:
        # Drivers can surface fetch failures unwrapped, e.g. UnicodeDecodeError
        try:
            async for row in self._result:
                yield tuple(row)
        except Exception as error:
            raise RowError(str(error)) from error

    async def close(self):
        await self._result.close()


async def iter_csv(
    cursor, flush_rows: int = DEFAULT_FLUSH_ROWS
) -> AsyncIterator[str]:
    """
    Yield CSV text for a cursor: the header first, then the data rows.

    Every chunk holds whole rows only. Buffered rows are handed over each
    ``flush_rows`` rows and once more at the end. When a row cannot be read,
    whatever the exception, the rows already written are still yielded and
    a RowError is raised afterwards; nothing is rolled back.

    Args:
        cursor: Anything with ``columns`` and an async ``rows()`` iterator.
        flush_rows: Rows to buffer per chunk (values below 1 mean 1).

    Yields:
        CSV text chunks.
    """
    flush_rows = max(1, flush_rows)
    width = len(cursor.columns)
    sink = CsvSink()
    sink.write_row(list(cursor.columns))

    failure = None
    try:
        async for row in cursor.rows():
            # Guard for hand-written cursors, SQLAlchemy rows always match
            if len(row) != width:
                raise RowError(
                    f"row has {len(row)} values, expected {width} columns"
                )
            sink.write_row(render_row(row))
            if sink.pending_rows >= flush_rows:
                yield sink.flush()
    except RowError as error:
        failure = error
    except Exception as error:
        failure = RowError(str(error))
        failure.__cause__ = error

    if failure is not None:
        logger.error(f"Error fetching results: {failure.message}")

    tail = sink.flush()
    if tail:
        yield tail
    if failure is not None:
        raise failure


async def stream(
    connection: AsyncConnection,
    statement: str,
    sink: Callable[[str], Awaitable[Any]],
    flush_rows: int = DEFAULT_FLUSH_ROWS,
):
    """
    Run a statement and write its result as CSV into ``sink``.

    The cursor is closed on every exit path. Errors propagate unchanged as
    QueryExecutionError, MetadataError or RowError.

    Example:
        async with connector.connect() as connection:
            await stream(connection, "SELECT 1 AS one", write)
    """
    cursor = await ResultCursor.open(connection, statement)
    try:
        async for chunk in iter_csv(cursor, flush_rows):
            await sink(chunk)
    finally:
        await cursor.close()
