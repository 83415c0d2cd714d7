"""Base model with common fields for all database models."""

import uuid
from datetime import datetime, UTC

from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Naive UTC timestamp, the storage convention for all datetime columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def new_id() -> str:
    """Generate an opaque record identifier."""
    return str(uuid.uuid4())


class TimestampModel(SQLModel):
    """Base model with created_at and updated_at timestamps."""

    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        description="Timestamp when the record was created",
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": utcnow},
        description="Timestamp when the record was last updated",
    )
