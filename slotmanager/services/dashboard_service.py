"""Dashboard aggregation: totals and per-resource usage."""

from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from slotmanager.config import settings
from slotmanager.core.window import utc_now, window_bounds
from slotmanager.models import RESOURCE_MODELS, ResourceKind
from slotmanager.schemas.usage import DashboardResponse, DashboardTotals, ResourceUsage
from slotmanager.services.allocation_service import AllocationService
from slotmanager.services.resource_service import NATURAL_KEYS, ResourceService
from slotmanager.services.usage_service import UsageService, summarize
from slotmanager.utils.logger import get_logger
from slotmanager.utils.telemetry import trace_operation

logger = get_logger(__name__)


class DashboardService:
    """Builds the overview shown on the dashboard."""

    def __init__(
        self,
        usage_service: Optional[UsageService] = None,
        allocation_service: Optional[AllocationService] = None,
    ):
        self.usage_service = usage_service or UsageService()
        self.allocation_service = allocation_service or AllocationService(
            usage_service=self.usage_service
        )

    async def _resource_lines(
        self,
        session: AsyncSession,
        kind: ResourceKind,
        reference: datetime,
    ) -> List[ResourceUsage]:
        model = RESOURCE_MODELS[kind]
        key = getattr(model, NATURAL_KEYS[kind])
        result = await session.execute(
            select(model.id, key, model.provider).order_by(key)
        )
        usage: Dict[str, int] = await self.usage_service.usage_by_resource(
            session, kind, reference=reference
        )
        return [
            ResourceUsage(
                id=resource_id,
                label=label,
                provider=provider,
                **summarize(usage.get(resource_id, 0)).model_dump(),
            )
            for resource_id, label, provider in result.all()
        ]

    async def build(
        self,
        session: AsyncSession,
        as_of: Optional[datetime] = None,
    ) -> DashboardResponse:
        """
        Totals and usage of every phone and IP as of ``as_of`` (default: now).

        Resources without allocations in the window appear with zero usage.
        """
        reference = as_of or utc_now()

        with trace_operation("service.dashboard.build"):
            phones = await self._resource_lines(session, ResourceKind.PHONE, reference)
            ips = await self._resource_lines(session, ResourceKind.IP, reference)

            totals = DashboardTotals(
                phones=await ResourceService(ResourceKind.PHONE).count_resources(session),
                ips=await ResourceService(ResourceKind.IP).count_resources(session),
                allocations=await self.allocation_service.count_allocations(session),
                active_allocations=await self.allocation_service.count_allocations(
                    session, active_only=True, reference=reference
                ),
            )

        cutoff, upper = window_bounds(reference)
        logger.debug(
            "Dashboard built",
            extra={"phones": totals.phones, "ips": totals.ips},
        )

        return DashboardResponse(
            as_of=reference,
            window_start=cutoff,
            window_end=upper,
            limit=settings.SLOT_LIMIT,
            window_days=settings.SLOT_WINDOW_DAYS,
            timezone=settings.SLOT_TIMEZONE,
            totals=totals,
            phones=phones,
            ips=ips,
        )
