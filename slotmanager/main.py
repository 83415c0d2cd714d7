"""Main FastAPI application."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from slotmanager import __version__
from slotmanager.config import settings
from slotmanager.database import async_engine
from slotmanager.utils.logger import setup_logging, get_logger
from slotmanager.utils.telemetry import (
    setup_telemetry,
    instrument_app,
    instrument_sqlalchemy,
)
from slotmanager.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from slotmanager.middleware.logging import LoggingMiddleware
from slotmanager.api.v1.router import api_router

# Setup logging and telemetry
setup_logging()
setup_telemetry()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    logger.info(
        f"Starting {settings.PROJECT_NAME}",
        extra={
            "version": __version__,
            "environment": settings.ENVIRONMENT,
            "api_prefix": settings.API_V1_PREFIX,
            "slot_limit": settings.SLOT_LIMIT,
            "slot_window_days": settings.SLOT_WINDOW_DAYS,
            "slot_timezone": settings.SLOT_TIMEZONE,
        },
    )

    instrument_app(app)
    instrument_sqlalchemy(async_engine.sync_engine)

    yield

    logger.info(f"Shutting down {settings.PROJECT_NAME}")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=__version__,
    description="Capacity-limited allocation of phones and IPs over a rolling window",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
# Applies RATE_LIMIT_PER_MINUTE to routes without their own limit
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render HTTP errors as ``{"error": ..., "detail": ...}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed requests are client errors (400) with field details."""
    logger.info(
        "Request validation failed",
        extra={"path": request.url.path, "errors": len(exc.errors())},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation error",
            "details": jsonable_encoder(exc.errors()),
        },
    )


app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/", tags=["Root"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": settings.PROJECT_NAME,
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "docs_url": "/docs",
        "health_check": f"{settings.API_V1_PREFIX}/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "slotmanager.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
