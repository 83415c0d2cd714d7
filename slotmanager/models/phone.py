"""Phone model: a phone number allocations are drawn against."""

from typing import Optional, List, TYPE_CHECKING
from sqlmodel import Field, Relationship

from slotmanager.models.base import TimestampModel, new_id

if TYPE_CHECKING:
    from slotmanager.models.allocation import Allocation


class Phone(TimestampModel, table=True):
    """Phone number resource."""

    __tablename__ = "phones"

    # Primary key
    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)

    # Natural key
    phone_number: str = Field(
        unique=True,
        index=True,
        max_length=32,
        nullable=False,
        description="Phone number (e.g., '+15550101')",
    )

    # Metadata
    email: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Account email attached to the number",
    )
    provider: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Carrier or provider",
    )
    remark: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Free-text remark",
    )

    # Relationships
    allocations: List["Allocation"] = Relationship(
        back_populates="phone",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )
