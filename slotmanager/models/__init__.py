"""Database models package."""

from slotmanager.models.base import TimestampModel
from slotmanager.models.user import User
from slotmanager.models.phone import Phone
from slotmanager.models.ip import IpAddress
from slotmanager.models.allocation import Allocation, ResourceKind

# Table model backing each resource kind
RESOURCE_MODELS = {
    ResourceKind.PHONE: Phone,
    ResourceKind.IP: IpAddress,
}

__all__ = [
    "TimestampModel",
    "User",
    "Phone",
    "IpAddress",
    "Allocation",
    "ResourceKind",
    "RESOURCE_MODELS",
]
