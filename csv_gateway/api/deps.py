from fastapi import Request

from csv_gateway.core.database import DatabaseConnector
from csv_gateway.core.registry import QueryRegistry


# This is the "Bridge" that gives the routes access to what create_app built
def get_registry(request: Request) -> QueryRegistry:
    return request.app.state.registry


def get_connector(request: Request) -> DatabaseConnector:
    return request.app.state.connector


def get_flush_rows(request: Request) -> int:
    return request.app.state.flush_rows
