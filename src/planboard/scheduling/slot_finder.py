from typing import Iterable, Optional

from planboard.datamodel import Interval
from planboard.scheduling.timecalc import DEFAULT_MIN_DURATION, MINUTES_PER_DAY, effective_end

__all__ = ["find_slot"]


def find_slot(busy_for_date: Iterable[Interval], duration: int, window_start: int = 18 * 60,
              window_end: int = MINUTES_PER_DAY, min_duration: int = DEFAULT_MIN_DURATION) -> Optional[Interval]:
    """First-fit search for ``duration`` free minutes inside [window_start, window_end).

    Busy intervals may come in any order and may overlap. An interval whose end is not
    after its start runs past midnight (or is a zero-length entry) and is stretched the
    same way task durations are, so it blocks through to 24:00 or for ``min_duration``.

    Returns the earliest fitting Interval, or None when the day has no room.
    """
    if duration <= 0:
        raise ValueError(f"duration must be positive, got {duration}")

    spans = sorted(
        (iv.start, effective_end(iv.start, iv.end, min_duration)) for iv in busy_for_date
    )
    spans.append((window_end, window_end))

    cursor = window_start
    for start, end in spans:
        if cursor + duration <= start:
            return Interval(cursor, cursor + duration)
        cursor = max(cursor, end)
    return None
