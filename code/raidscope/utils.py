import math
from datetime import UTC, datetime


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC timezone if naive, return as-is if already aware."""
    return dt if dt.tzinfo else dt.replace(tzinfo=UTC)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 always towards +infinity.

    Built-in round() uses banker's rounding (round(80.5) == 80); every average
    in this package rounds halves up instead (80.5 -> 81, -2.5 -> -2).
    """
    return math.floor(value + 0.5)


def mean(values) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)


def format_clock(ms: int | None) -> str:
    """Format milliseconds as 'm:ss'."""
    if not ms or ms < 0:
        return "00:00"
    seconds = ms // 1000
    return f"{seconds // 60}:{seconds % 60:02d}"


def parse_clock(text: str) -> int | None:
    """Inverse of format_clock(), in seconds. None if unparseable."""
    minutes, _, seconds = text.partition(":")
    if not minutes.isdigit() or not seconds.isdigit():
        return None
    return int(minutes) * 60 + int(seconds)


def epoch_ms_to_datetime(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=UTC)


def format_timestamp(ms: int) -> str:
    """Format epoch milliseconds as 'YYYY-MM-DD HH:MM' (UTC)."""
    return epoch_ms_to_datetime(ms).strftime("%Y-%m-%d %H:%M")
