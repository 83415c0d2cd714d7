"""Phone registry endpoints."""

import math
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from slotmanager.api.deps import AsOf, CurrentUser, DbSession, get_phone_service
from slotmanager.core.exceptions import to_http_exception
from slotmanager.models import Phone
from slotmanager.schemas import (
    PaginatedResponse,
    PhoneCreate,
    PhoneResponse,
    PhoneUpdate,
    UsageResponse,
)
from slotmanager.services.errors import SlotManagerError
from slotmanager.services.resource_service import ResourceService
from slotmanager.utils.context import operation_context

router = APIRouter()

PhoneService = Annotated[ResourceService, Depends(get_phone_service)]


@router.get(
    "",
    response_model=PaginatedResponse[PhoneResponse],
    summary="List phones",
)
async def list_phones(
    current_user: CurrentUser,
    session: DbSession,
    service: PhoneService,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=500, description="Items per page"),
):
    """List registered phones, newest first."""
    total = await service.count_resources(session)
    phones = await service.list_resources(
        session, offset=(page - 1) * page_size, limit=page_size
    )

    return PaginatedResponse[PhoneResponse](
        items=[PhoneResponse.model_validate(phone) for phone in phones],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total > 0 else 0,
    )


@router.post(
    "",
    response_model=PhoneResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a phone",
)
async def create_phone(
    phone_data: PhoneCreate,
    current_user: CurrentUser,
    session: DbSession,
    service: PhoneService,
) -> Phone:
    """Register a phone. The phone number must not be registered yet."""
    with operation_context("phone.create", resource_kind="phone"):
        try:
            return await service.create_resource(session, phone_data.model_dump())
        except SlotManagerError as e:
            raise to_http_exception(e) from e


@router.get("/{phone_id}", response_model=PhoneResponse, summary="Get phone")
async def get_phone(
    phone_id: str,
    current_user: CurrentUser,
    session: DbSession,
    service: PhoneService,
) -> Phone:
    """Get a phone by ID."""
    try:
        return await service.get_resource(session, phone_id)
    except SlotManagerError as e:
        raise to_http_exception(e) from e


@router.patch("/{phone_id}", response_model=PhoneResponse, summary="Update phone")
async def update_phone(
    phone_id: str,
    phone_data: PhoneUpdate,
    current_user: CurrentUser,
    session: DbSession,
    service: PhoneService,
) -> Phone:
    """Update the fields present in the request body."""
    with operation_context("phone.update", resource_kind="phone", resource_id=phone_id):
        try:
            return await service.update_resource(
                session, phone_id, phone_data.model_dump(exclude_unset=True)
            )
        except SlotManagerError as e:
            raise to_http_exception(e) from e


@router.delete(
    "/{phone_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete phone",
    description="Delete a phone together with all of its allocations.",
)
async def delete_phone(
    phone_id: str,
    current_user: CurrentUser,
    session: DbSession,
    service: PhoneService,
) -> Response:
    """Delete a phone and cascade to its allocations."""
    with operation_context("phone.delete", resource_kind="phone", resource_id=phone_id):
        try:
            await service.delete_resource(session, phone_id)
        except SlotManagerError as e:
            raise to_http_exception(e) from e

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{phone_id}/usage",
    response_model=UsageResponse,
    summary="Get phone usage",
)
async def get_phone_usage(
    phone_id: str,
    current_user: CurrentUser,
    session: DbSession,
    service: PhoneService,
    as_of: AsOf,
) -> UsageResponse:
    """Slots used by a phone in the window containing ``as_of`` (default: now)."""
    try:
        return await service.get_usage_report(session, phone_id, as_of=as_of)
    except SlotManagerError as e:
        raise to_http_exception(e) from e
