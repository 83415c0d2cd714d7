"""Rate limiting using SlowAPI."""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from slotmanager.config import settings

# Per-client limits kept in process memory
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri="memory://",
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render a rate-limit rejection in the API error format."""
    response = JSONResponse(
        status_code=429,
        content={"error": "Too many requests", "detail": f"Rate limit exceeded: {exc.detail}"},
    )
    return request.app.state.limiter._inject_headers(
        response, request.state.view_rate_limit
    )
