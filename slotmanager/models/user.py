"""User model for the credential check gating the API."""

from typing import Optional
from sqlmodel import Field

from slotmanager.models.base import TimestampModel


class User(TimestampModel, table=True):
    """User database model."""

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(
        unique=True,
        index=True,
        nullable=False,
        max_length=50,
        description="Unique username",
    )
    hashed_password: str = Field(
        nullable=False,
        description="Hashed password using Argon2",
    )
    is_active: bool = Field(
        default=True,
        nullable=False,
        description="Whether the user account is active",
    )
