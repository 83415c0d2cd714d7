"""Health check endpoint."""

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from slotmanager import __version__
from slotmanager.api.deps import DbSession
from slotmanager.middleware.rate_limit import limiter
from slotmanager.schemas import HealthCheckResponse
from slotmanager.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=HealthCheckResponse)
@limiter.exempt
async def health_check(db: DbSession) -> HealthCheckResponse:
    """
    Liveness probe with a database round trip.

    Reports ``degraded`` instead of failing when the database is unreachable.
    """
    try:
        await db.execute(text("SELECT 1"))
        database_status = "connected"
    except SQLAlchemyError as e:
        logger.error("Database health check failed", extra={"error": str(e)})
        database_status = f"error: {e}"

    return HealthCheckResponse(
        status="healthy" if database_status == "connected" else "degraded",
        version=__version__,
        database=database_status,
    )
