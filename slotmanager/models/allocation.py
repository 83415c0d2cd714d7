"""Allocation model: the slot ledger."""

from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING
from sqlalchemy import CheckConstraint, Index
from sqlmodel import Field, Relationship, SQLModel

from slotmanager.models.base import new_id, utcnow

if TYPE_CHECKING:
    from slotmanager.models.ip import IpAddress
    from slotmanager.models.phone import Phone


class ResourceKind(str, Enum):
    """Kind of resource an allocation consumes."""

    PHONE = "phone"
    IP = "ip"


class Allocation(SQLModel, table=True):
    """Immutable ledger entry consuming ``count`` units of one resource."""

    __tablename__ = "allocations"

    # Primary key
    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)

    # Foreign keys (exactly one is set)
    phone_id: Optional[str] = Field(
        default=None,
        foreign_key="phones.id",
        ondelete="CASCADE",
        max_length=36,
        description="Phone this allocation consumes",
    )
    ip_id: Optional[str] = Field(
        default=None,
        foreign_key="ips.id",
        ondelete="CASCADE",
        max_length=36,
        description="IP this allocation consumes",
    )

    # Allocation details
    count: int = Field(
        default=1,
        nullable=False,
        sa_column_kwargs={"server_default": "1"},
        description="Capacity units consumed",
    )
    used_at: datetime = Field(
        nullable=False,
        description="Instant the slot was used (naive UTC)",
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        description="Timestamp when the record was created",
    )

    # Relationships
    phone: Optional["Phone"] = Relationship(back_populates="allocations")
    ip: Optional["IpAddress"] = Relationship(back_populates="allocations")

    # Table constraints and indexes
    __table_args__ = (
        CheckConstraint(
            "(phone_id IS NULL) <> (ip_id IS NULL)",
            name="ck_allocations_single_resource",
        ),
        CheckConstraint("count >= 1", name="ck_allocations_count_positive"),
        # Window aggregation per resource
        Index("ix_allocations_phone_used_at", "phone_id", "used_at"),
        Index("ix_allocations_ip_used_at", "ip_id", "used_at"),
    )

    @property
    def resource_kind(self) -> ResourceKind:
        """Kind of the resource this allocation references."""
        return ResourceKind.PHONE if self.phone_id is not None else ResourceKind.IP

    @property
    def resource_id(self) -> str:
        """Identifier of the resource this allocation references."""
        return self.phone_id if self.phone_id is not None else self.ip_id
