import logging
from contextlib import AsyncExitStack
from typing import Annotated, AsyncIterator, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from csv_gateway.api.deps import get_connector, get_flush_rows, get_registry
from csv_gateway.core.database import DatabaseConnector
from csv_gateway.core.errors import QueryNotFoundError
from csv_gateway.core.registry import QueryRegistry
from csv_gateway.core.streamer import ResultCursor, iter_csv

router = APIRouter(tags=["Query"])

logger = logging.getLogger(__name__)

# Objects create_app put on app.state
registry_dep = Annotated[QueryRegistry, Depends(get_registry)]
connector_dep = Annotated[DatabaseConnector, Depends(get_connector)]
flush_rows_dep = Annotated[int, Depends(get_flush_rows)]


async def _body(chunks: AsyncIterator[str], resources: AsyncExitStack):
    # Closes cursor and connection however the body ends: done, failed or client gone
    try:
        async for chunk in chunks:
            yield chunk
    finally:
        await resources.aclose()


@router.get("/query")
async def run_query(
    request: Request,
    registry: registry_dep,
    connector: connector_dep,
    flush_rows: flush_rows_dep,
    id: Optional[str] = None,
):
    """
    Run a configured query and stream its result as CSV.

    Everything that can fail before the first byte (lookup, connect,
    execute, column names) is reported with a proper status code. A row
    failure after that point can only cut the body short.
    """
    logger.info(f"Query: {request.url}")

    definition = registry.lookup(id)
    if definition is None:
        raise QueryNotFoundError(id or "")

    # Any failure or cancellation before the response exists unwinds the stack
    async with AsyncExitStack() as stack:
        connection = await stack.enter_async_context(connector.connect())
        cursor = await ResultCursor.open(connection, definition.statement)
        stack.push_async_callback(cursor.close)
        resources = stack.pop_all()

    return StreamingResponse(
        _body(iter_csv(cursor, flush_rows), resources),
        media_type="text/csv; charset=utf-8",
        # Runs if the body was never iterated; a second aclose is a no-op
        background=BackgroundTask(resources.aclose),
    )
