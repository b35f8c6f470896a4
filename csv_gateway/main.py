import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from csv_gateway.api.router import api_router
from csv_gateway.core.config import settings
from csv_gateway.core.database import DatabaseConnector
from csv_gateway.core.errors import GatewayError
from csv_gateway.core.registry import QueryRegistry
from csv_gateway.core.schemas import GatewayConfig

logger = logging.getLogger(__name__)


async def gateway_error_handler(request: Request, error: GatewayError):
    """Translate a typed failure into a short plain text response."""
    if error.status_code < 500:
        logger.warning(f"{request.url.path}: {error.message}")
    else:
        logger.error(f"{request.url.path}: {error}")
    return PlainTextResponse(str(error), status_code=error.status_code)


def create_app(
    config: GatewayConfig,
    connector: Optional[DatabaseConnector] = None,
    flush_rows: Optional[int] = None,
) -> FastAPI:
    """
    Build the application around an already loaded configuration.

    Args:
        config: Validated configuration; its queries become the registry.
        connector: Connector to use instead of one built from config.database.
        flush_rows: Rows per streamed chunk, defaults to CSV_FLUSH_ROWS.
    """
    registry = QueryRegistry(config.queries)
    connector = connector or DatabaseConnector(config.database)

    # Close the engine once everything is done
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Loaded {len(registry)} queries: {', '.join(registry.names())}"
        )
        yield
        await connector.dispose()

    app = FastAPI(title="CSV Query Gateway", lifespan=lifespan)
    app.state.registry = registry
    app.state.connector = connector
    app.state.flush_rows = flush_rows or settings.CSV_FLUSH_ROWS

    app.add_exception_handler(GatewayError, gateway_error_handler)

    # Include the master router containing all our endpoints
    app.include_router(api_router)
    return app
