"""IP registry endpoints."""

import math
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from slotmanager.api.deps import AsOf, CurrentUser, DbSession, get_ip_service
from slotmanager.core.exceptions import to_http_exception
from slotmanager.models import IpAddress
from slotmanager.schemas import (
    IpCreate,
    IpResponse,
    IpUpdate,
    PaginatedResponse,
    UsageResponse,
)
from slotmanager.services.errors import SlotManagerError
from slotmanager.services.resource_service import ResourceService
from slotmanager.utils.context import operation_context

router = APIRouter()

IpService = Annotated[ResourceService, Depends(get_ip_service)]


@router.get("", response_model=PaginatedResponse[IpResponse], summary="List IPs")
async def list_ips(
    current_user: CurrentUser,
    session: DbSession,
    service: IpService,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=500, description="Items per page"),
):
    """List registered IPs, newest first."""
    total = await service.count_resources(session)
    ips = await service.list_resources(
        session, offset=(page - 1) * page_size, limit=page_size
    )

    return PaginatedResponse[IpResponse](
        items=[IpResponse.model_validate(ip) for ip in ips],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total > 0 else 0,
    )


@router.post(
    "",
    response_model=IpResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an IP",
)
async def create_ip(
    ip_data: IpCreate,
    current_user: CurrentUser,
    session: DbSession,
    service: IpService,
) -> IpAddress:
    """Register an IP. The address must not be registered yet."""
    with operation_context("ip.create", resource_kind="ip"):
        try:
            return await service.create_resource(session, ip_data.model_dump())
        except SlotManagerError as e:
            raise to_http_exception(e) from e


@router.get("/{ip_id}", response_model=IpResponse, summary="Get IP")
async def get_ip(
    ip_id: str,
    current_user: CurrentUser,
    session: DbSession,
    service: IpService,
) -> IpAddress:
    try:
        return await service.get_resource(session, ip_id)
    except SlotManagerError as e:
        raise to_http_exception(e) from e


@router.patch("/{ip_id}", response_model=IpResponse, summary="Update IP")
async def update_ip(
    ip_id: str,
    ip_data: IpUpdate,
    current_user: CurrentUser,
    session: DbSession,
    service: IpService,
) -> IpAddress:
    with operation_context("ip.update", resource_kind="ip", resource_id=ip_id):
        try:
            return await service.update_resource(
                session, ip_id, ip_data.model_dump(exclude_unset=True)
            )
        except SlotManagerError as e:
            raise to_http_exception(e) from e


@router.delete(
    "/{ip_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete IP",
    description="Delete an IP together with all of its allocations.",
)
async def delete_ip(
    ip_id: str,
    current_user: CurrentUser,
    session: DbSession,
    service: IpService,
) -> Response:
    with operation_context("ip.delete", resource_kind="ip", resource_id=ip_id):
        try:
            await service.delete_resource(session, ip_id)
        except SlotManagerError as e:
            raise to_http_exception(e) from e

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{ip_id}/usage", response_model=UsageResponse, summary="Get IP usage")
async def get_ip_usage(
    ip_id: str,
    current_user: CurrentUser,
    session: DbSession,
    service: IpService,
    as_of: AsOf,
) -> UsageResponse:
    """Slots used by an IP in the window containing ``as_of`` (default: now)."""
    try:
        return await service.get_usage_report(session, ip_id, as_of=as_of)
    except SlotManagerError as e:
        raise to_http_exception(e) from e
