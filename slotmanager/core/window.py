"""Rolling slot window arithmetic.

Usage is counted over calendar days in a fixed timezone rather than over
``now - N * 24h``, so an allocation dated on a given day stays in or out of
the window regardless of the time of the request. Every window is half-open:
``cutoff <= used_at < upper_bound``.

Naive datetimes passed to these helpers are taken to be UTC, which is how
timestamps are stored.
"""

from datetime import datetime, timedelta, timezone as dt_timezone, UTC
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from slotmanager.config import settings


def get_zone(name: Optional[str] = None) -> ZoneInfo:
    """Resolve a timezone name, defaulting to the configured slot timezone."""
    return ZoneInfo(name or settings.SLOT_TIMEZONE)


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt_timezone.utc)
    return value.astimezone(dt_timezone.utc)


def to_storage(value: datetime) -> datetime:
    """Convert to the naive UTC representation used in the database."""
    return as_utc(value).replace(tzinfo=None)


def localize(value: datetime, timezone: Optional[str] = None) -> datetime:
    """Attach the slot timezone to a naive wall-clock datetime.

    Aware values are returned unchanged.
    """
    if value.tzinfo is not None:
        return value
    return value.replace(tzinfo=get_zone(timezone))


def start_of_day(reference: datetime, timezone: Optional[str] = None) -> datetime:
    """Midnight of the calendar day containing ``reference`` in ``timezone``."""
    local = as_utc(reference).astimezone(get_zone(timezone))
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def _shift_days(local_midnight: datetime, days: int) -> datetime:
    # Calendar-day arithmetic on wall-clock time, then re-resolve the offset
    naive = local_midnight.replace(tzinfo=None) + timedelta(days=days)
    return naive.replace(tzinfo=local_midnight.tzinfo).astimezone(dt_timezone.utc)


def cutoff_date(
    reference: datetime,
    timezone: Optional[str] = None,
    window_days: Optional[int] = None,
) -> datetime:
    """Inclusive lower bound of the window ending on ``reference``'s day.

    Args:
        reference: Instant the window is evaluated for
        timezone: IANA zone anchoring calendar days (defaults to settings)
        window_days: Days subtracted from the start of the reference day

    Returns:
        Aware UTC datetime
    """
    if window_days is None:
        window_days = settings.SLOT_WINDOW_DAYS
    return _shift_days(start_of_day(reference, timezone), -window_days)


def window_upper_bound(reference: datetime, timezone: Optional[str] = None) -> datetime:
    """Exclusive upper bound: start of the day after ``reference``."""
    return _shift_days(start_of_day(reference, timezone), 1)


def window_bounds(
    reference: Optional[datetime] = None,
    timezone: Optional[str] = None,
    window_days: Optional[int] = None,
) -> Tuple[datetime, datetime]:
    """Return ``(cutoff, upper_bound)`` for ``reference`` (default: now)."""
    if reference is None:
        reference = utc_now()
    return (
        cutoff_date(reference, timezone, window_days),
        window_upper_bound(reference, timezone),
    )


def is_within_window(
    used_at: datetime,
    reference: Optional[datetime] = None,
    timezone: Optional[str] = None,
    window_days: Optional[int] = None,
) -> bool:
    """Check whether ``used_at`` counts towards usage as of ``reference``."""
    cutoff, upper = window_bounds(reference, timezone, window_days)
    return cutoff <= as_utc(used_at) < upper
