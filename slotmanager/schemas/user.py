"""User schemas for request/response validation."""

from pydantic import BaseModel, Field, ConfigDict

from slotmanager.core.validation import UtcDatetime


class UserResponse(BaseModel):
    """Schema for user response (public information)."""

    id: int = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    is_active: bool = Field(..., description="Whether the account is active")
    created_at: UtcDatetime = Field(..., description="Account creation timestamp")

    model_config = ConfigDict(from_attributes=True)


class UserLogin(BaseModel):
    """Schema for user login."""

    username: str = Field(..., description="Username", examples=["admin"])
    password: str = Field(..., description="User password", examples=["admin123"])


class PasswordChange(BaseModel):
    """Schema for changing the current user's password."""

    current_password: str = Field(..., min_length=1, description="Current password")
    new_password: str = Field(
        ...,
        min_length=6,
        max_length=100,
        description="New password (minimum 6 characters)",
    )
