from fastapi import status


# =========================
# Base
# =========================
class GatewayError(Exception):
    """Base for every failure the gateway reports to a caller."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    prefix = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"{self.prefix}: {self.message}"


# =========================
# Client errors
# =========================
class QueryNotFoundError(GatewayError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, query_id: str):
        super().__init__(f"Could not find query {query_id}")
        self.query_id = query_id

    def __str__(self):
        # Body stays short and fixed, the id is only logged
        return "404 - Not Found"


# =========================
# Server errors
# =========================
class DatabaseConnectionError(GatewayError):
    prefix = "error connecting to database"


class QueryExecutionError(GatewayError):
    prefix = "error running query"


class MetadataError(GatewayError):
    prefix = "error getting columns name"


class RowError(GatewayError):
    """Raised mid-stream, after the 200 status is already on the wire."""

    prefix = "error fetching results"


# Startup only, never reaches a request
class ConfigError(Exception):
    pass
