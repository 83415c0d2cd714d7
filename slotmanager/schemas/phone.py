"""Phone schemas for request/response validation."""

from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from slotmanager.core.validation import (
    OptionalShortText,
    OptionalText,
    PhoneNumber,
    UtcDatetime,
)


class PhoneBase(BaseModel):
    """Base phone schema with common fields."""

    phone_number: PhoneNumber = Field(
        ..., description="Phone number", examples=["+15550101"]
    )
    email: OptionalShortText = Field(
        default=None, description="Account email", examples=["demo1@example.com"]
    )
    provider: OptionalShortText = Field(
        default=None, description="Carrier or provider", examples=["Verizon"]
    )
    remark: OptionalText = Field(default=None, description="Free-text remark")


class PhoneCreate(PhoneBase):
    """Schema for registering a phone."""

    pass


class PhoneUpdate(BaseModel):
    """Schema for updating a phone. The number may change if it stays unique."""

    phone_number: Optional[PhoneNumber] = Field(default=None, description="Phone number")
    email: OptionalShortText = Field(default=None, description="Account email")
    provider: OptionalShortText = Field(default=None, description="Carrier or provider")
    remark: OptionalText = Field(default=None, description="Free-text remark")


class PhoneResponse(PhoneBase):
    """Schema for phone response."""

    id: str = Field(..., description="Phone ID")
    created_at: UtcDatetime = Field(..., description="Creation timestamp")
    updated_at: UtcDatetime = Field(..., description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)
