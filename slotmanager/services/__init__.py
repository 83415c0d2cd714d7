"""Business logic services."""

# Note: Imports are intentionally not done here to avoid circular import issues.
# Import services directly from their modules:
#   from slotmanager.services.allocation_service import AllocationService
#   from slotmanager.services.resource_service import ResourceService

__all__ = [
    "UsageService",
    "AdmissionController",
    "AllocationService",
    "ResourceService",
]
