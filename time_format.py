"""
Relative-time labels ("3 hours ago") and their approximate inverse.
"""
import re
from datetime import datetime, timedelta

MINUTE = timedelta(minutes=1)
HOUR = timedelta(hours=1)
DAY = timedelta(days=1)
MONTH = timedelta(days=30)

JUST_NOW = "just now"
UNKNOWN = "unknown"

# Checked in this order against the label
_UNITS = [("minute", MINUTE), ("hour", HOUR), ("day", DAY), ("month", MONTH)]
_LEADING_INT = re.compile(r"^\s*(\d+)")


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'} ago"


def format_time_ago(timestamp: datetime, now: datetime) -> str:
    """
    Bucket the time elapsed since `timestamp` into a display label.

    Args:
        timestamp: Moment being described
        now: Evaluation time

    Returns:
        "just now", "N minute(s) ago", "N hour(s) ago", "N day(s) ago" or "N month(s) ago"
    """
    elapsed = now - timestamp
    minutes = elapsed // MINUTE
    hours = elapsed // HOUR
    days = elapsed // DAY

    if minutes < 1:
        return JUST_NOW
    if minutes < 60:
        return _plural(minutes, "minute")
    if hours < 24:
        return _plural(hours, "hour")
    if days < 30:
        return _plural(days, "day")
    return _plural(days // 30, "month")


def parse_time_ago(label: str, now: datetime) -> datetime:
    """
    Recover an approximate timestamp from a label produced by format_time_ago.

    Precision is one unit of the label's bucket, so the result is only good
    for ordering. Unrecognized labels resolve to `now`.
    """
    for unit, size in _UNITS:
        if unit in label:
            match = _LEADING_INT.match(label)
            count = int(match.group(1)) if match else 0
            return now - count * size
    return now
