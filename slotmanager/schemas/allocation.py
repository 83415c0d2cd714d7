"""Allocation schemas for request/response validation."""

from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from slotmanager.core.validation import ResourceRef, UsedAt, UtcDatetime, empty_to_none


class AllocationCreate(BaseModel):
    """Schema for requesting a new allocation.

    Accepts snake_case or camelCase keys. Blank resource references count as
    absent, and naive ``used_at`` values are read in the slot timezone.
    Range checks on ``count`` and the resource reference rules belong to the
    admission controller.
    """

    phone_id: ResourceRef = Field(default=None, description="Phone to allocate")
    ip_id: ResourceRef = Field(default=None, description="IP to allocate")
    count: StrictInt = Field(default=1, description="Capacity units to consume")
    used_at: Annotated[Optional[UsedAt], BeforeValidator(empty_to_none)] = Field(
        default=None,
        description="When the slot is used (defaults to now)",
        examples=["2026-10-17T09:30:00+08:00", "2026-10-17"],
    )

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AllocationResponse(BaseModel):
    """Schema for allocation response."""

    id: str
    phone_id: Optional[str]
    ip_id: Optional[str]
    count: int
    used_at: UtcDatetime
    created_at: UtcDatetime

    model_config = {"from_attributes": True}
