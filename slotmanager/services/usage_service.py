"""Slot usage aggregation.

Usage is never stored: every call sums allocation counts from the ledger for
the window containing the reference instant.
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from slotmanager.config import settings
from slotmanager.core.window import window_bounds, to_storage, utc_now
from slotmanager.models import Allocation, ResourceKind
from slotmanager.schemas.usage import UsageResponse
from slotmanager.utils.logger import get_logger
from slotmanager.utils.telemetry import get_tracer, add_span_attributes

logger = get_logger(__name__)
tracer = get_tracer()


class UsageSummary(BaseModel):
    """Display figures derived from a usage value."""

    usage: int = Field(..., description="Units used in the current window")
    limit: int = Field(..., description="Units allowed per window")
    remaining: int = Field(..., description="Units still available")
    percentage: float = Field(..., description="Usage as a percentage (0-100)")
    at_capacity: bool = Field(..., description="Whether the limit is reached")


def resource_column(kind: ResourceKind):
    """Allocation column referencing resources of ``kind``."""
    if kind == ResourceKind.PHONE:
        return Allocation.phone_id
    return Allocation.ip_id


def _units():
    # Rows without a count predate the column default and count as one unit
    return func.coalesce(func.sum(func.coalesce(Allocation.count, 1)), 0)


def _window_clause(reference: Optional[datetime]):
    cutoff, upper = window_bounds(reference)
    return and_(
        Allocation.used_at >= to_storage(cutoff),
        Allocation.used_at < to_storage(upper),
    )


def summarize(usage: int, limit: Optional[int] = None) -> UsageSummary:
    """Build a :class:`UsageSummary` for ``usage``."""
    if limit is None:
        limit = settings.SLOT_LIMIT
    return UsageSummary(
        usage=usage,
        limit=limit,
        remaining=max(0, limit - usage),
        percentage=round(min(usage / limit * 100, 100.0), 2),
        at_capacity=usage >= limit,
    )


class UsageService:
    """Service computing slot usage from the allocation ledger."""

    async def usage_for(
        self,
        session: AsyncSession,
        kind: ResourceKind,
        resource_id: str,
        reference: Optional[datetime] = None,
    ) -> int:
        """
        Sum allocation units for one resource inside the window.

        Args:
            session: Database session
            kind: Resource kind (phone or ip)
            resource_id: Resource identifier
            reference: Instant the window is evaluated for (default: now)

        Returns:
            Units used, 0 when no allocation matches
        """
        with tracer.start_as_current_span("service.usage.usage_for") as _span:
            add_span_attributes(
                **{
                    "resource.kind": kind.value,
                    "resource.id": resource_id,
                }
            )

            stmt = select(_units()).where(
                and_(
                    resource_column(kind) == resource_id,
                    _window_clause(reference),
                )
            )
            result = await session.execute(stmt)
            usage = int(result.scalar_one())

            logger.debug(
                "Usage computed",
                extra={
                    "resource_kind": kind.value,
                    "resource_id": resource_id,
                    "usage": usage,
                },
            )

            return usage

    async def usage_by_resource(
        self,
        session: AsyncSession,
        kind: ResourceKind,
        reference: Optional[datetime] = None,
    ) -> Dict[str, int]:
        """
        Usage of every resource of ``kind`` with allocations in the window.

        Resources without allocations in the window are absent from the
        result.
        """
        with tracer.start_as_current_span("service.usage.by_resource") as _span:
            add_span_attributes(**{"resource.kind": kind.value})

            column = resource_column(kind)
            stmt = (
                select(column, _units())
                .where(and_(column.is_not(None), _window_clause(reference)))
                .group_by(column)
            )
            result = await session.execute(stmt)
            return {row[0]: int(row[1]) for row in result.all()}

    async def usage_report(
        self,
        session: AsyncSession,
        kind: ResourceKind,
        resource_id: str,
        reference: Optional[datetime] = None,
    ) -> UsageResponse:
        """Usage of one resource with its summary figures and window bounds."""
        if reference is None:
            reference = utc_now()
        usage = await self.usage_for(session, kind, resource_id, reference=reference)
        cutoff, upper = window_bounds(reference)
        return UsageResponse(
            resource_kind=kind,
            resource_id=resource_id,
            as_of=reference,
            window_start=cutoff,
            window_end=upper,
            **summarize(usage).model_dump(),
        )
