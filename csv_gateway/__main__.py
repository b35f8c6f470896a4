import argparse
import asyncio
import logging
import sys

import uvicorn

from csv_gateway.core.config import load_config, resolve_config_path, settings
from csv_gateway.core.database import DatabaseConnector
from csv_gateway.core.errors import ConfigError, GatewayError
from csv_gateway.core.registry import QueryRegistry
from csv_gateway.core.schemas import GatewayConfig
from csv_gateway.core.streamer import stream
from csv_gateway.main import create_app

logger = logging.getLogger("csv_gateway")


async def export_query(config: GatewayConfig, query_id: str, out=None) -> int:
    """Stream one configured query as CSV to ``out`` (stdout by default)."""
    out = out or sys.stdout
    definition = QueryRegistry(config.queries).lookup(query_id)
    if definition is None:
        logger.error(f"Could not find query {query_id}")
        return 1

    async def write(chunk: str):
        out.write(chunk)
        out.flush()

    connector = DatabaseConnector(config.database)
    try:
        async with connector.connect() as connection:
            await stream(connection, definition.statement, write, settings.CSV_FLUSH_ROWS)
    except GatewayError as error:
        logger.error(str(error))
        return 1
    finally:
        await connector.dispose()
    return 0


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="csv_gateway", description="Serve pre-approved SQL queries as CSV."
    )
    parser.add_argument(
        "config", nargs="?", help="YAML configuration file (default: $CONFIG_FILE)"
    )
    parser.add_argument(
        "--export", metavar="ID", help="write one query to stdout and exit"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=settings.LOG_LEVEL.upper())

    try:
        config = load_config(resolve_config_path(args.config))
    except ConfigError as error:
        logger.error(str(error))
        return 2

    if args.export:
        return asyncio.run(export_query(config, args.export))

    logger.info(f"Starting web service on port {settings.PORT}...")
    uvicorn.run(
        create_app(config),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
