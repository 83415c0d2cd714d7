"""Domain exceptions raised by the service layer."""

from typing import Optional


class SlotManagerError(Exception):
    """Base exception for slot manager errors."""

    pass


class ResourceNotFound(SlotManagerError):
    """Phone or IP does not exist."""

    pass


class DuplicateResource(SlotManagerError):
    """A phone number or IP address is already registered."""

    pass


class AllocationNotFound(SlotManagerError):
    """Allocation does not exist."""

    pass


class AllocationRejected(SlotManagerError):
    """Admission controller refused an allocation request."""

    def __init__(
        self,
        message: str,
        current_usage: Optional[int] = None,
        requested: Optional[int] = None,
        limit: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.current_usage = current_usage
        self.requested = requested
        self.limit = limit


class InvalidResourceReference(AllocationRejected):
    """Request names no resource, or both a phone and an IP."""

    pass


class InvalidCount(AllocationRejected):
    """Requested count is outside ``[1, SLOT_LIMIT]``."""

    pass


class CapacityExceeded(AllocationRejected):
    """Allocation would push usage over the slot limit."""

    pass


class AllocationConflict(SlotManagerError):
    """Concurrent write pushed usage over the limit; the request may be retried."""

    pass
