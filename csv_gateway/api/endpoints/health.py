from fastapi import APIRouter, status
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["Health"])


# No registry, no database: this cannot fail
@router.api_route(
    "/health",
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    response_class=PlainTextResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check():
    return "ok"
