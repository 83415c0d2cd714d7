"""IP schemas for request/response validation."""

from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from slotmanager.core.validation import (
    IpAddressStr,
    OptionalShortText,
    OptionalText,
    Port,
    UtcDatetime,
)


class IpBase(BaseModel):
    """Base IP schema with common fields."""

    ip_address: IpAddressStr = Field(
        ..., description="IPv4 or IPv6 address", examples=["192.168.1.101"]
    )
    username: OptionalShortText = Field(default=None, description="Proxy username")
    provider: OptionalShortText = Field(
        default=None, description="Hosting provider", examples=["AWS"]
    )
    remark: OptionalText = Field(default=None, description="Free-text remark")


class IpCreate(IpBase):
    """Schema for registering an IP."""

    port: Port = Field(..., description="Proxy port", examples=[8080])
    password: OptionalShortText = Field(default=None, description="Proxy password")


class IpUpdate(BaseModel):
    """Schema for updating an IP. The address may change if it stays unique."""

    ip_address: Optional[IpAddressStr] = Field(default=None, description="IP address")
    port: Optional[Port] = Field(default=None, description="Proxy port")
    username: OptionalShortText = Field(default=None, description="Proxy username")
    password: OptionalShortText = Field(default=None, description="Proxy password")
    provider: OptionalShortText = Field(default=None, description="Hosting provider")
    remark: OptionalText = Field(default=None, description="Free-text remark")


class IpResponse(IpBase):
    """Schema for IP response."""

    id: str = Field(..., description="IP ID")
    port: Optional[int] = Field(default=None, description="Proxy port")
    password: Optional[str] = Field(default=None, description="Proxy password")
    created_at: UtcDatetime = Field(..., description="Creation timestamp")
    updated_at: UtcDatetime = Field(..., description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)
