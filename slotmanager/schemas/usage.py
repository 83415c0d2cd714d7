"""Usage and dashboard schemas."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from slotmanager.models import ResourceKind


class UsageResponse(BaseModel):
    """Current slot usage of one resource."""

    resource_kind: ResourceKind = Field(..., description="phone or ip")
    resource_id: str = Field(..., description="Resource ID")
    usage: int = Field(..., description="Units used in the window")
    limit: int = Field(..., description="Units allowed per window")
    remaining: int = Field(..., description="Units still available")
    percentage: float = Field(..., description="Usage as a percentage (0-100)")
    at_capacity: bool = Field(..., description="Whether the limit is reached")
    as_of: datetime = Field(..., description="Reference instant")
    window_start: datetime = Field(..., description="Inclusive window start (UTC)")
    window_end: datetime = Field(..., description="Exclusive window end (UTC)")


class ResourceUsage(BaseModel):
    """Usage line for one resource on the dashboard."""

    id: str = Field(..., description="Resource ID")
    label: str = Field(..., description="Phone number or IP address")
    provider: Optional[str] = Field(default=None, description="Provider")
    usage: int
    limit: int
    remaining: int
    percentage: float
    at_capacity: bool


class DashboardTotals(BaseModel):
    """Resource and ledger counters."""

    phones: int = Field(..., description="Registered phones")
    ips: int = Field(..., description="Registered IPs")
    allocations: int = Field(..., description="Allocations in the ledger")
    active_allocations: int = Field(..., description="Allocations inside the window")


class DashboardResponse(BaseModel):
    """Overview of resources and slot usage."""

    as_of: datetime
    window_start: datetime
    window_end: datetime
    limit: int
    window_days: int
    timezone: str
    totals: DashboardTotals
    phones: List[ResourceUsage]
    ips: List[ResourceUsage]
