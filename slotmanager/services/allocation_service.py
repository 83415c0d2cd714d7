"""Allocation ledger service."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from slotmanager.config import settings
from slotmanager.core.window import to_storage, utc_now, window_bounds
from slotmanager.models import Allocation, ResourceKind
from slotmanager.schemas.allocation import AllocationCreate
from slotmanager.services.admission import AdmissionController
from slotmanager.services.errors import AllocationConflict, AllocationNotFound
from slotmanager.services.usage_service import UsageService, resource_column
from slotmanager.utils.logger import get_logger
from slotmanager.utils.context import set_context
from slotmanager.utils.telemetry import get_tracer, add_span_attributes

logger = get_logger(__name__)
tracer = get_tracer()


def _filters(
    kind: Optional[ResourceKind],
    resource_id: Optional[str],
    active_only: bool,
    reference: Optional[datetime],
) -> list:
    conditions = []
    if kind is not None:
        column = resource_column(kind)
        if resource_id is not None:
            conditions.append(column == resource_id)
        else:
            conditions.append(column.is_not(None))
    if active_only:
        cutoff, upper = window_bounds(reference)
        conditions.append(Allocation.used_at >= to_storage(cutoff))
        conditions.append(Allocation.used_at < to_storage(upper))
    return conditions


class AllocationService:
    """Service owning allocation rows: create, delete and read paths."""

    def __init__(
        self,
        usage_service: Optional[UsageService] = None,
        admission: Optional[AdmissionController] = None,
    ):
        """Initialize service."""
        self.usage_service = usage_service or UsageService()
        self.admission = admission or AdmissionController(self.usage_service)

    async def create_allocation(
        self,
        session: AsyncSession,
        request: AllocationCreate,
    ) -> Allocation:
        """
        Admit and persist an allocation in a single transaction.

        The resource row is locked before usage is read, and usage is checked
        again after the insert is flushed, so concurrent requests cannot push
        a resource over the limit.

        Args:
            session: Database session
            request: Parsed allocation request

        Returns:
            Persisted Allocation

        Raises:
            InvalidResourceReference: Neither or both resources referenced
            InvalidCount: Count outside ``[1, SLOT_LIMIT]``
            ResourceNotFound: Referenced resource does not exist
            CapacityExceeded: Usage plus count would exceed the limit
            AllocationConflict: A concurrent write took the remaining capacity
        """
        with tracer.start_as_current_span("service.allocation.create") as _span:
            if request.used_at is None:
                request = request.model_copy(update={"used_at": utc_now()})

            logger.info(
                "Creating allocation",
                extra={
                    "phone_id": request.phone_id,
                    "ip_id": request.ip_id,
                    "count": request.count,
                    "used_at": request.used_at.isoformat(),
                },
            )

            try:
                decision = await self.admission.evaluate(session, request, lock=True)
                decision.raise_for_rejection()

                set_context(
                    resource_kind=decision.resource_kind.value,
                    resource_id=decision.resource_id,
                )

                allocation = Allocation(
                    phone_id=request.phone_id,
                    ip_id=request.ip_id,
                    count=request.count,
                    used_at=to_storage(request.used_at),
                )
                session.add(allocation)
                await session.flush()

                # Re-verify inside the transaction, including the new row
                usage = await self.usage_service.usage_for(
                    session,
                    decision.resource_kind,
                    decision.resource_id,
                    reference=request.used_at,
                )
                if usage > settings.SLOT_LIMIT:
                    logger.warning(
                        "Concurrent allocation exceeded slot limit",
                        extra={
                            "resource_id": decision.resource_id,
                            "usage": usage,
                            "limit": settings.SLOT_LIMIT,
                        },
                    )
                    raise AllocationConflict(
                        f"Allocation conflicted with a concurrent request "
                        f"(Usage: {usage}, Limit: {settings.SLOT_LIMIT}); retry"
                    )

                await session.commit()
            except Exception:
                await session.rollback()
                raise

            add_span_attributes(**{"allocation.id": allocation.id})
            logger.info(
                "Allocation created",
                extra={
                    "allocation_id": allocation.id,
                    "resource_kind": decision.resource_kind.value,
                    "resource_id": decision.resource_id,
                    "usage": usage,
                },
            )

            return allocation

    async def get_allocation(
        self,
        session: AsyncSession,
        allocation_id: str,
    ) -> Allocation:
        """
        Get allocation by ID.

        Raises:
            AllocationNotFound: If the allocation does not exist
        """
        result = await session.execute(
            select(Allocation).where(Allocation.id == allocation_id)
        )
        allocation = result.scalar_one_or_none()
        if allocation is None:
            raise AllocationNotFound(f"Allocation '{allocation_id}' not found")
        return allocation

    async def list_allocations(
        self,
        session: AsyncSession,
        kind: Optional[ResourceKind] = None,
        resource_id: Optional[str] = None,
        active_only: bool = False,
        reference: Optional[datetime] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Allocation]:
        """
        List allocations, newest ``used_at`` first.

        All rows are returned, expired ones included, unless ``active_only``
        restricts the result to the window containing ``reference``.

        Args:
            session: Database session
            kind: Restrict to allocations of this resource kind
            resource_id: Restrict to one resource (requires ``kind``)
            active_only: Only allocations inside the current window
            reference: Instant the window is evaluated for (default: now)
            offset: Rows to skip
            limit: Maximum rows to return

        Returns:
            List of Allocation
        """
        stmt = (
            select(Allocation)
            .where(*_filters(kind, resource_id, active_only, reference))
            .order_by(Allocation.used_at.desc(), Allocation.created_at.desc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_resource(
        self,
        session: AsyncSession,
        kind: ResourceKind,
        resource_id: str,
    ) -> List[Allocation]:
        """All allocations of one resource, expired ones included."""
        return await self.list_allocations(session, kind=kind, resource_id=resource_id)

    async def count_allocations(
        self,
        session: AsyncSession,
        kind: Optional[ResourceKind] = None,
        resource_id: Optional[str] = None,
        active_only: bool = False,
        reference: Optional[datetime] = None,
    ) -> int:
        """Count allocations matching the same filters as :meth:`list_allocations`."""
        stmt = (
            select(func.count(Allocation.id))
            .where(*_filters(kind, resource_id, active_only, reference))
        )
        result = await session.execute(stmt)
        return result.scalar_one()

    async def delete_allocation(
        self,
        session: AsyncSession,
        allocation_id: str,
    ) -> None:
        """
        Delete an allocation. Always permitted; it only frees capacity.

        Raises:
            AllocationNotFound: If the allocation does not exist
        """
        with tracer.start_as_current_span("service.allocation.delete") as _span:
            add_span_attributes(**{"allocation.id": allocation_id})

            allocation = await self.get_allocation(session, allocation_id)
            resource_id = allocation.resource_id
            await session.delete(allocation)
            await session.commit()

            logger.info(
                "Allocation deleted",
                extra={"allocation_id": allocation_id, "resource_id": resource_id},
            )

    async def cascade_on_resource_delete(
        self,
        session: AsyncSession,
        kind: ResourceKind,
        resource_id: str,
    ) -> int:
        """
        Delete every allocation of a resource within the caller's transaction.

        The caller deletes the resource and commits.

        Returns:
            Number of allocations removed
        """
        stmt = delete(Allocation).where(resource_column(kind) == resource_id)
        result = await session.execute(stmt)
        return result.rowcount or 0
