"""Dashboard endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from slotmanager.api.deps import AsOf, CurrentUser, DbSession, get_dashboard_service
from slotmanager.schemas import DashboardResponse
from slotmanager.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("", response_model=DashboardResponse, summary="Usage overview")
async def get_dashboard(
    current_user: CurrentUser,
    session: DbSession,
    service: Annotated[DashboardService, Depends(get_dashboard_service)],
    as_of: AsOf,
) -> DashboardResponse:
    """
    Resource totals, window bounds and usage of every phone and IP.

    Usage is evaluated for the window containing ``as_of`` (default: now).
    """
    return await service.build(session, as_of=as_of)
