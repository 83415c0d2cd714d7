"""Schemas package for request/response validation."""

from slotmanager.schemas.common import (
    ResponseMessage,
    ErrorResponse,
    PaginatedResponse,
    HealthCheckResponse,
)
from slotmanager.schemas.token import Token, RefreshTokenRequest
from slotmanager.schemas.user import UserResponse, UserLogin, PasswordChange
from slotmanager.schemas.phone import PhoneCreate, PhoneUpdate, PhoneResponse
from slotmanager.schemas.ip import IpCreate, IpUpdate, IpResponse
from slotmanager.schemas.allocation import AllocationCreate, AllocationResponse
from slotmanager.schemas.usage import (
    UsageResponse,
    ResourceUsage,
    DashboardTotals,
    DashboardResponse,
)

__all__ = [
    "ResponseMessage",
    "ErrorResponse",
    "PaginatedResponse",
    "HealthCheckResponse",
    "Token",
    "RefreshTokenRequest",
    "UserResponse",
    "UserLogin",
    "PasswordChange",
    "PhoneCreate",
    "PhoneUpdate",
    "PhoneResponse",
    "IpCreate",
    "IpUpdate",
    "IpResponse",
    "AllocationCreate",
    "AllocationResponse",
    "UsageResponse",
    "ResourceUsage",
    "DashboardTotals",
    "DashboardResponse",
]
