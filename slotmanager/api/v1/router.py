"""Main router for API v1."""

from fastapi import APIRouter

from slotmanager.api.v1.endpoints import allocations, auth, dashboard, health, ips, phones

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(health.router, prefix="/health", tags=["Health"])
api_router.include_router(phones.router, prefix="/phones", tags=["Phones"])
api_router.include_router(ips.router, prefix="/ips", tags=["IPs"])
api_router.include_router(
    allocations.router,
    prefix="/allocations",
    tags=["Allocations"],
)
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
