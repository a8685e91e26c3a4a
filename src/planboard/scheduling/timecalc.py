"""Minute arithmetic on "HH:MM" times of day."""

from planboard.errors import InvalidFormat

__all__ = ["MINUTES_PER_DAY", "DEFAULT_MIN_DURATION", "to_minutes", "to_time_string", "duration",
           "effective_end", "shift_times"]

MINUTES_PER_DAY = 24 * 60
DEFAULT_MIN_DURATION = 5


def to_minutes(hhmm: str) -> int:
    """'HH:MM' -> minutes after midnight, in [0, 1440)."""
    if not isinstance(hhmm, str):
        raise InvalidFormat(f"invalid time: {hhmm!r}, expected HH:MM")
    parts = hhmm.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise InvalidFormat(f"invalid time: {hhmm!r}, expected HH:MM")
    hours, minutes = int(parts[0]), int(parts[1])
    if hours > 23 or minutes > 59:
        raise InvalidFormat(f"time out of range: {hhmm!r}")
    return hours * 60 + minutes


def to_time_string(minutes: int) -> str:
    """Minutes -> zero-padded 'HH:MM', wrapped at 24h. Day rollover is the caller's business."""
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def duration(start: str, end: str, min_minutes: int = DEFAULT_MIN_DURATION) -> int:
    """Length of start..end in minutes, wrapping past midnight, never below ``min_minutes``.

    >>> duration("23:30", "00:15")
    45
    """
    start_min = to_minutes(start)
    return effective_end(start_min, to_minutes(end), min_minutes) - start_min


def effective_end(start: int, end: int, min_minutes: int = DEFAULT_MIN_DURATION) -> int:
    """End minute of a start/end pair measured from the start's day (may exceed 1440)."""
    length = end - start
    if length < 0:
        length += MINUTES_PER_DAY
    return start + max(length, min_minutes)


def shift_times(start: str, end: str, new_start: str) -> tuple[str, str]:
    """Move a start/end pair to ``new_start`` keeping its length; the new end wraps at midnight."""
    length = to_minutes(end) - to_minutes(start)
    if length < 0:
        length += MINUTES_PER_DAY
    return new_start, to_time_string(to_minutes(new_start) + length)
