"""
Shared helpers for email validation and log timestamps.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil import parser as date_parser

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)*\.[a-zA-Z]{2,}$")
OFFSET_PATTERN = re.compile(r"^([+-])(\d{1,2}):?([0-5]\d)?$")

# RFC 5321 path limit
MAX_EMAIL_LENGTH = 254


def is_valid_email(email: str) -> bool:
    """Validate email address format using regex."""
    if not isinstance(email, str) or len(email) > MAX_EMAIL_LENGTH:
        return False
    return EMAIL_PATTERN.match(email) is not None


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_timestamp(time: Optional[str] = None) -> str:
    """
    Get an ISO-8601 UTC timestamp with millisecond precision.

    Args:
        time: Timestamp to normalize, defaults to now

    Returns:
        Timestamp formatted as YYYY-MM-DDTHH:MM:SS.mmmZ

    Raises:
        ValueError: If time is not an ISO-8601 timestamp
    """
    moment = _to_utc(date_parser.isoparse(time)) if time else datetime.now(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_utc_offset(offset: str) -> timezone:
    """
    Convert an offset such as "+07:00", "-0530", "+7" or "Z" to a timezone.

    Raises:
        ValueError: If the offset cannot be parsed or exceeds 18 hours
    """
    text = (offset or "").strip()
    if text in ("", "Z", "z"):
        return timezone.utc
    match = OFFSET_PATTERN.match(text if text[0] in "+-" else f"+{text}")
    if not match:
        raise ValueError(f"Invalid UTC offset: {offset!r}")
    sign, hours, minutes = match.groups()
    delta = timedelta(hours=int(hours), minutes=int(minutes or 0))
    if delta > timedelta(hours=18):
        raise ValueError(f"UTC offset out of range: {offset!r}")
    return timezone(-delta if sign == "-" else delta)


def format_offset(tz: timezone) -> str:
    total = int(tz.utcoffset(None).total_seconds()) // 60
    sign = "-" if total < 0 else "+"
    hours, minutes = divmod(abs(total), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def local_time(log_time: str, utc_offset: str) -> str:
    """
    Render a stored log time in a fixed UTC offset for display.

    Example:
        local_time("2023-01-01T00:00:00.000Z", "+07:00")
        -> "01 Jan 2023, 07:00:00.000 +07:00"
    """
    tz = parse_utc_offset(utc_offset)
    moment = _to_utc(date_parser.isoparse(log_time)).astimezone(tz)
    return (
        moment.strftime("%d %b %Y, %H:%M:%S.")
        + f"{moment.microsecond // 1000:03d} {format_offset(tz)}"
    )
