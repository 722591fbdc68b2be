"""
Date parsing and range filtering.

Record dates are free text at parse time. Statistics only use dates that
parse as RFC3339 timestamps; everything else is skipped there.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Sequence

from usage_insights.storage.models import UsageRecord

DATE_TIME_SEPARATORS = "Tt "

_RFC3339 = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[" + DATE_TIME_SEPARATORS + r"](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))$"
)

NAIVE_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_rfc3339(text: str) -> Optional[datetime]:
    """Parse an RFC3339 timestamp, keeping its UTC offset.

    Returns:
        Timezone-aware datetime, or None if the text is not RFC3339
    """
    match = _RFC3339.match(text.strip())
    if not match:
        return None

    year, month, day, hour, minute, second, fraction, zulu, sign, off_h, off_m = match.groups()
    if zulu:
        tz = timezone.utc
    else:
        offset = timedelta(hours=int(off_h), minutes=int(off_m))
        if offset >= timedelta(days=1):
            return None
        tz = timezone(-offset if sign == "-" else offset)

    microsecond = int((fraction or "0")[:6].ljust(6, "0"))
    try:
        return datetime(
            int(year), int(month), int(day),
            int(hour), int(minute), int(second), microsecond,
            tzinfo=tz,
        )
    except ValueError:
        return None


def parse_date(text: str) -> datetime:
    """Parse a date as UTC, accepting RFC3339 or 'YYYY-MM-DD HH:MM:SS'.

    Naive timestamps are assumed to be UTC.

    Raises:
        ValueError: If neither format matches
    """
    parsed = parse_rfc3339(text)
    if parsed is not None:
        return parsed.astimezone(timezone.utc)

    try:
        naive = datetime.strptime(text, NAIVE_FORMAT)
    except ValueError:
        raise ValueError(f"Unable to parse date: {text}")
    return naive.replace(tzinfo=timezone.utc)


def format_date_for_display(dt: datetime) -> str:
    """Format a datetime as 'YYYY-MM-DD HH:MM:SS UTC'."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%d %H:%M:%S UTC")


def _parse_bound(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


def filter_by_date_range(
    records: Sequence[UsageRecord],
    start_date: Optional[str] = None,
    end_date: Optional[str] = None
) -> List[UsageRecord]:
    """Keep records whose calendar date falls within [start_date, end_date].

    With no bounds every record is returned. Once a bound is given, records
    whose date is not RFC3339 are dropped. A bound that is not a valid
    YYYY-MM-DD date is ignored.

    Args:
        records: Records to filter
        start_date: Inclusive lower bound, YYYY-MM-DD
        end_date: Inclusive upper bound, YYYY-MM-DD

    Returns:
        New list of matching records, in input order
    """
    if start_date is None and end_date is None:
        return list(records)

    start = _parse_bound(start_date)
    end = _parse_bound(end_date)

    filtered = []
    for record in records:
        parsed = parse_rfc3339(record.date)
        if parsed is None:
            continue
        day = parsed.date()
        if start is not None and day < start:
            continue
        if end is not None and day > end:
            continue
        filtered.append(record)
    return filtered
