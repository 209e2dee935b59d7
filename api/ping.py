from datetime import timezone
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from api.dependencies import get_ping_service
from api.rate_limit import limiter, PING_RATE_LIMIT
from api.models import PingResponse
from api.services.errors import NotFoundError
from api.services.ping_service import PingService
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


@router.api_route("/ping/{token}", methods=["GET", "POST"])
@limiter.limit(PING_RATE_LIMIT)
def ping(
    request: Request,
    token: str,
    ping_service: PingService = Depends(get_ping_service),
):
    """
    Public liveness endpoint for cron jobs. No authentication: knowing the
    token is the capability.
    """
    try:
        result = ping_service.ingest(token)
    except NotFoundError as e:
        return JSONResponse(status_code=404, content={"error": str(e)})
    except SQLAlchemyError as e:
        logger.error(f"Ping error: {e}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return JSONResponse(
        status_code=200,
        content=PingResponse(
            success=True,
            message="Ping received",
            timestamp=result.received_at.replace(tzinfo=timezone.utc).isoformat(),
        ).model_dump(),
    )
