"""Shared field constraints for resources and allocations.

Request schemas, the resource registries and the admission controller all
validate against the definitions in this module.
"""

import ipaddress
from datetime import date, datetime, time
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BeforeValidator, Field, StringConstraints

from slotmanager.config import settings
from slotmanager.core.window import as_utc, localize


def empty_to_none(value: Any) -> Any:
    """Treat blank strings from forms as an absent value."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


def normalize_ip_address(value: str) -> str:
    """Validate an IPv4/IPv6 literal and return its canonical form."""
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError as e:
        raise ValueError(f"Invalid IP address: {value}") from e


def coerce_used_at(value: Any) -> Any:
    """Turn a bare date (or ``YYYY-MM-DD`` string) into midnight of that day."""
    if isinstance(value, str) and len(value.strip()) == 10:
        try:
            value = date.fromisoformat(value.strip())
        except ValueError:
            return value
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


def localize_used_at(value: datetime) -> datetime:
    """Interpret naive request datetimes in the slot timezone."""
    return localize(value)


def is_valid_count(count: Any) -> bool:
    """Check that ``count`` is an integer in ``[1, SLOT_LIMIT]``."""
    if isinstance(count, bool) or not isinstance(count, int):
        return False
    return 1 <= count <= settings.SLOT_LIMIT


def has_single_resource(phone_id: Optional[str], ip_id: Optional[str]) -> bool:
    """Exactly one of the two resource references must be set."""
    return (phone_id is None) != (ip_id is None)


# Resource natural keys
PhoneNumber = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=32),
]
IpAddressStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=45),
    AfterValidator(normalize_ip_address),
]

# Optional free-text metadata; blank means absent
OptionalText = Annotated[
    Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]],
    BeforeValidator(empty_to_none),
]
OptionalShortText = Annotated[
    Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=255)]],
    BeforeValidator(empty_to_none),
]
Port = Annotated[int, Field(ge=1, le=65535)]

# Allocation request fields
ResourceRef = Annotated[Optional[str], BeforeValidator(empty_to_none)]
UsedAt = Annotated[
    datetime,
    BeforeValidator(coerce_used_at),
    AfterValidator(localize_used_at),
]

# Stored timestamps are naive UTC; responses carry the offset
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]
