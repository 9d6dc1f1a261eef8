"""Optional ``[from, to)`` bounds read from the query string.

Values are either ISO-8601 datetimes or ``DD-MM-YYYY`` dates. Anything without
an offset is interpreted in the IANA zone given by ``tz`` and converted to UTC.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import pytz
from fastapi import Query

from materix.validator import Validator

DATE_FORMAT = "%d-%m-%Y"


@dataclass(frozen=True)
class TimeRange:
    start: Optional[datetime] = None
    end: Optional[datetime] = None


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse(raw: str, tz) -> datetime:
    try:
        parsed = datetime.strptime(raw, DATE_FORMAT)
    except ValueError:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = tz.localize(parsed)
    return parsed.astimezone(timezone.utc)


def parse_time_range(raw_from: Optional[str], raw_to: Optional[str], tz_name: str = "UTC") -> TimeRange:
    v = Validator()
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        v.add_error("tz", "must be a valid IANA time zone")
        v.raise_if_invalid()

    bounds = {}
    for field, raw in (("from", raw_from), ("to", raw_to)):
        if not raw:
            bounds[field] = None
            continue
        try:
            bounds[field] = _parse(raw, tz)
        except ValueError:
            v.add_error(field, "must be an ISO-8601 datetime or a DD-MM-YYYY date")
            bounds[field] = None

    if bounds["from"] and bounds["to"]:
        v.check(bounds["from"] < bounds["to"], "to", "must be after from")
    v.raise_if_invalid()
    return TimeRange(start=bounds["from"], end=bounds["to"])


def time_range_dependency(
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    tz: str = Query("UTC"),
) -> TimeRange:
    return parse_time_range(from_, to, tz)
