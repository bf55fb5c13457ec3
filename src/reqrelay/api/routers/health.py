"""Health endpoint.

GET /health runs the same checks as `reqrelay-api --health-check` and is
not behind the API key, so orchestrators can probe it.
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from reqrelay.services.health import run_health_check

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    """Report database, broker and migration health.

    Returns 200 when every check passes, 503 otherwise. The body is the
    health report itself, not the request envelope.
    """
    from reqrelay.core.settings import get_settings

    settings = getattr(request.app.state, "settings", None) or get_settings()
    report = await run_health_check(settings)

    status_code = status.HTTP_200_OK if report.is_healthy else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=status_code, content=report.to_dict())
