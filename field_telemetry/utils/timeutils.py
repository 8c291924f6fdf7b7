"""Timestamp helpers: clock access at the boundary and calendar period bounds."""

from datetime import datetime, timezone
from typing import Optional, Union

from field_telemetry.models import Granularity


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def resolve_now(now: Optional[datetime]) -> datetime:
    """Return ``now`` unchanged, or read the clock once if it was omitted."""
    return utc_now() if now is None else now


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare cleanly with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def get_period_start(date: datetime, granularity: Union[Granularity, str]) -> datetime:
    """
    Floor a timestamp to the start of its hour or day.

    Operates on the timestamp's own local fields; no timezone conversion is
    performed, so callers must normalize the timezone first.

    Args:
        date: Timestamp to floor
        granularity: ``hourly`` or ``daily``

    Returns:
        Timestamp at the first instant of the period
    """
    granularity = Granularity(granularity)
    if granularity is Granularity.HOURLY:
        return date.replace(minute=0, second=0, microsecond=0)
    return date.replace(hour=0, minute=0, second=0, microsecond=0)


def get_period_end(date: datetime, granularity: Union[Granularity, str]) -> datetime:
    """Ceil a timestamp to the last instant (microsecond resolution) of its hour or day."""
    granularity = Granularity(granularity)
    if granularity is Granularity.HOURLY:
        return date.replace(minute=59, second=59, microsecond=999999)
    return date.replace(hour=23, minute=59, second=59, microsecond=999999)
