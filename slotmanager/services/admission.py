"""Admission control for new allocations.

A request is admitted only when ``current usage + count <= SLOT_LIMIT`` for
the window containing its ``used_at``. Preconditions are checked in a fixed
order and each failure carries its own reason.
"""

from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from slotmanager.config import settings
from slotmanager.core.validation import has_single_resource, is_valid_count
from slotmanager.core.window import utc_now
from slotmanager.models import RESOURCE_MODELS, ResourceKind
from slotmanager.schemas.allocation import AllocationCreate
from slotmanager.services.errors import (
    AllocationRejected,
    CapacityExceeded,
    InvalidCount,
    InvalidResourceReference,
    ResourceNotFound,
)
from slotmanager.services.usage_service import UsageService
from slotmanager.utils.logger import get_logger
from slotmanager.utils.telemetry import get_tracer, add_span_attributes

logger = get_logger(__name__)
tracer = get_tracer()

RESOURCE_LABELS = {
    ResourceKind.PHONE: "Phone",
    ResourceKind.IP: "IP",
}


class RejectionReason(str, Enum):
    """Why an allocation request was refused."""

    RESOURCE_REFERENCE = "resource_reference"
    INVALID_COUNT = "invalid_count"
    RESOURCE_NOT_FOUND = "resource_not_found"
    LIMIT_EXCEEDED = "limit_exceeded"


class AdmissionDecision:
    """Outcome of :meth:`AdmissionController.evaluate`."""

    def __init__(
        self,
        admit: bool,
        reason: Optional[RejectionReason] = None,
        message: Optional[str] = None,
        current_usage: Optional[int] = None,
        requested: Optional[int] = None,
        limit: Optional[int] = None,
        resource_kind: Optional[ResourceKind] = None,
        resource_id: Optional[str] = None,
    ):
        self.admit = admit
        self.reason = reason
        self.message = message
        self.current_usage = current_usage
        self.requested = requested
        self.limit = limit
        self.resource_kind = resource_kind
        self.resource_id = resource_id

    def __repr__(self) -> str:
        if self.admit:
            return f"AdmissionDecision(admit=True, current_usage={self.current_usage})"
        return f"AdmissionDecision(admit=False, reason={self.reason}, message={self.message!r})"

    def raise_for_rejection(self) -> None:
        """Raise the domain error matching a rejected decision."""
        if self.admit:
            return

        if self.reason == RejectionReason.RESOURCE_NOT_FOUND:
            raise ResourceNotFound(self.message)

        error_class = {
            RejectionReason.RESOURCE_REFERENCE: InvalidResourceReference,
            RejectionReason.INVALID_COUNT: InvalidCount,
            RejectionReason.LIMIT_EXCEEDED: CapacityExceeded,
        }.get(self.reason, AllocationRejected)
        raise error_class(
            self.message,
            current_usage=self.current_usage,
            requested=self.requested,
            limit=self.limit,
        )


def _reject(reason: RejectionReason, message: str, **kwargs) -> AdmissionDecision:
    return AdmissionDecision(admit=False, reason=reason, message=message, **kwargs)


class AdmissionController:
    """Decides whether an allocation request may enter the ledger."""

    def __init__(self, usage_service: Optional[UsageService] = None):
        """Initialize controller."""
        self.usage_service = usage_service or UsageService()

    async def evaluate(
        self,
        session: AsyncSession,
        request: AllocationCreate,
        lock: bool = False,
    ) -> AdmissionDecision:
        """
        Evaluate an allocation request against the slot policy.

        Args:
            session: Database session
            request: Parsed allocation request
            lock: Lock the resource row (``SELECT ... FOR UPDATE``) so the
                caller can insert in the same transaction without a race

        Returns:
            AdmissionDecision, admitted or carrying the rejection reason
        """
        with tracer.start_as_current_span("service.admission.evaluate") as _span:
            limit = settings.SLOT_LIMIT

            # 1. Exactly one resource reference
            if not has_single_resource(request.phone_id, request.ip_id):
                if request.phone_id is None:
                    message = "Resource reference required: provide phone_id or ip_id"
                else:
                    message = "Resource reference ambiguous: provide phone_id or ip_id, not both"
                return _reject(RejectionReason.RESOURCE_REFERENCE, message)

            if request.phone_id is not None:
                kind, resource_id = ResourceKind.PHONE, request.phone_id
            else:
                kind, resource_id = ResourceKind.IP, request.ip_id

            add_span_attributes(
                **{
                    "resource.kind": kind.value,
                    "resource.id": resource_id,
                    "allocation.count": request.count,
                }
            )

            # 2. Count within [1, SLOT_LIMIT]
            if not is_valid_count(request.count):
                return _reject(
                    RejectionReason.INVALID_COUNT,
                    f"Invalid count: {request.count} (must be between 1 and {limit})",
                    requested=request.count,
                    limit=limit,
                    resource_kind=kind,
                    resource_id=resource_id,
                )

            # 3. Resource exists
            model = RESOURCE_MODELS[kind]
            stmt = select(model.id).where(model.id == resource_id)
            if lock:
                stmt = stmt.with_for_update()
            result = await session.execute(stmt)
            if result.scalar_one_or_none() is None:
                return _reject(
                    RejectionReason.RESOURCE_NOT_FOUND,
                    f"{RESOURCE_LABELS[kind]} not found",
                    resource_kind=kind,
                    resource_id=resource_id,
                )

            # 4. Usage in the window of used_at plus the request fits the limit
            reference = request.used_at or utc_now()
            current = await self.usage_service.usage_for(
                session, kind, resource_id, reference=reference
            )

            if current + request.count > limit:
                logger.info(
                    "Allocation blocked by slot limit",
                    extra={
                        "resource_kind": kind.value,
                        "resource_id": resource_id,
                        "current_usage": current,
                        "requested": request.count,
                        "limit": limit,
                    },
                )
                return _reject(
                    RejectionReason.LIMIT_EXCEEDED,
                    f"Allocation blocked. {RESOURCE_LABELS[kind]} would exceed limit "
                    f"(Current: {current}, Adding: {request.count}, Limit: {limit})",
                    current_usage=current,
                    requested=request.count,
                    limit=limit,
                    resource_kind=kind,
                    resource_id=resource_id,
                )

            return AdmissionDecision(
                admit=True,
                current_usage=current,
                requested=request.count,
                limit=limit,
                resource_kind=kind,
                resource_id=resource_id,
            )
