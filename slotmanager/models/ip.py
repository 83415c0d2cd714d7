"""IP address model: a proxy endpoint allocations are drawn against."""

from typing import Optional, List, TYPE_CHECKING
from sqlmodel import Field, Relationship

from slotmanager.models.base import TimestampModel, new_id

if TYPE_CHECKING:
    from slotmanager.models.allocation import Allocation


class IpAddress(TimestampModel, table=True):
    """IP address resource."""

    __tablename__ = "ips"

    # Primary key
    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)

    # Natural key
    ip_address: str = Field(
        unique=True,
        index=True,
        max_length=45,
        nullable=False,
        description="IPv4 or IPv6 address (e.g., '192.168.1.101')",
    )

    # Connection details
    port: Optional[int] = Field(
        default=None,
        ge=1,
        le=65535,
        description="Proxy port",
    )
    username: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Proxy username",
    )
    password: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Proxy password",
    )

    # Metadata
    provider: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Hosting provider",
    )
    remark: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Free-text remark",
    )

    # Relationships
    allocations: List["Allocation"] = Relationship(
        back_populates="ip",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )
