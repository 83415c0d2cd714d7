"""Allocation ledger endpoints."""

import math
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from slotmanager.api.deps import AsOf, CurrentUser, DbSession, get_allocation_service
from slotmanager.core.exceptions import BadRequestError, to_http_exception
from slotmanager.models import Allocation, ResourceKind
from slotmanager.schemas import AllocationCreate, AllocationResponse, PaginatedResponse
from slotmanager.services.allocation_service import AllocationService
from slotmanager.services.errors import AllocationRejected, SlotManagerError
from slotmanager.utils.context import operation_context, set_context
from slotmanager.utils.logger import get_logger
from slotmanager.utils.telemetry import get_tracer, add_span_attributes

logger = get_logger(__name__)
tracer = get_tracer()

router = APIRouter()

LedgerService = Annotated[AllocationService, Depends(get_allocation_service)]


@router.get(
    "",
    response_model=PaginatedResponse[AllocationResponse],
    summary="List allocations",
    description=(
        "List allocations, newest first. Expired allocations are included "
        "unless active_only is set."
    ),
)
async def list_allocations(
    current_user: CurrentUser,
    session: DbSession,
    service: LedgerService,
    as_of: AsOf,
    kind: Optional[ResourceKind] = Query(None, description="Resource kind"),
    resource_id: Optional[str] = Query(None, description="Phone or IP ID"),
    active_only: bool = Query(False, description="Only allocations in the window"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=500, description="Items per page"),
):
    """List ledger entries with optional resource and window filters."""
    if resource_id is not None and kind is None:
        raise BadRequestError("kind is required when filtering by resource_id")

    filters = dict(
        kind=kind, resource_id=resource_id, active_only=active_only, reference=as_of
    )
    total = await service.count_allocations(session, **filters)
    allocations = await service.list_allocations(
        session, offset=(page - 1) * page_size, limit=page_size, **filters
    )

    return PaginatedResponse[AllocationResponse](
        items=[AllocationResponse.model_validate(a) for a in allocations],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total > 0 else 0,
    )


@router.post(
    "",
    response_model=AllocationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an allocation",
    description=(
        "Consume capacity units of one phone or one IP. The request is "
        "refused when it would push the resource over the slot limit."
    ),
)
async def create_allocation(
    allocation_data: AllocationCreate,
    current_user: CurrentUser,
    session: DbSession,
    service: LedgerService,
) -> Allocation:
    """Admit and record an allocation."""
    with tracer.start_as_current_span("api.allocation.create") as span:
        set_context(action="allocation.create")
        add_span_attributes(
            **{
                "user.id": current_user.id,
                "allocation.count": allocation_data.count,
            }
        )

        try:
            allocation = await service.create_allocation(session, allocation_data)
        except AllocationRejected as e:
            logger.info(
                "Allocation rejected",
                extra={
                    "reason": type(e).__name__,
                    "current_usage": e.current_usage,
                    "requested": e.requested,
                },
            )
            raise to_http_exception(e) from e
        except SlotManagerError as e:
            span.record_exception(e)
            raise to_http_exception(e) from e

        return allocation


@router.get(
    "/{allocation_id}",
    response_model=AllocationResponse,
    summary="Get allocation",
)
async def get_allocation(
    allocation_id: str,
    current_user: CurrentUser,
    session: DbSession,
    service: LedgerService,
) -> Allocation:
    try:
        return await service.get_allocation(session, allocation_id)
    except SlotManagerError as e:
        raise to_http_exception(e) from e


@router.delete(
    "/{allocation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete allocation",
)
async def delete_allocation(
    allocation_id: str,
    current_user: CurrentUser,
    session: DbSession,
    service: LedgerService,
) -> Response:
    """Delete an allocation, freeing its units immediately."""
    with operation_context("allocation.delete"):
        try:
            await service.delete_allocation(session, allocation_id)
        except SlotManagerError as e:
            raise to_http_exception(e) from e

    return Response(status_code=status.HTTP_204_NO_CONTENT)
