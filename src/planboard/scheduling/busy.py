"""Per-date index of occupied minutes built from calendar tasks.

Intervals are stored in task order, unsorted and unmerged, and malformed times raise
InvalidFormat straight out of to_minutes. A task running past midnight keeps its raw
start/end pair on its own date and also occupies 00:00 up to its end on the next date.
"""

from datetime import timedelta
from typing import Dict, Iterable, List, Tuple

from planboard.datamodel import Interval, Task
from planboard.scheduling.timecalc import DEFAULT_MIN_DURATION, MINUTES_PER_DAY, effective_end, to_minutes
from planboard.utils import format_date, parse_date

__all__ = ["BusyIndex", "build_busy", "add_busy", "drop_task", "restore"]

BusyIndex = Dict[str, List[Interval]]


def build_busy(tasks: Iterable[Task], min_duration: int = DEFAULT_MIN_DURATION) -> BusyIndex:
    busy: BusyIndex = {}
    for task in tasks:
        start, end = to_minutes(task.start_time), to_minutes(task.end_time)
        add_busy(busy, task.date, Interval(start, end, task.task_id))

        spill = effective_end(start, end, min_duration) - MINUTES_PER_DAY
        if spill > 0:
            next_day = format_date(parse_date(task.date) + timedelta(days=1))
            add_busy(busy, next_day, Interval(0, spill, task.task_id))
    return busy


def add_busy(busy: BusyIndex, date: str, interval: Interval) -> None:
    busy.setdefault(date, []).append(interval)


def drop_task(busy: BusyIndex, task_id: int) -> List[Tuple[str, Interval]]:
    """Remove every interval belonging to task_id and return them with their dates."""
    removed: List[Tuple[str, Interval]] = []
    for date, intervals in busy.items():
        removed.extend((date, iv) for iv in intervals if iv.task_id == task_id)
        busy[date] = [iv for iv in intervals if iv.task_id != task_id]
    return removed


def restore(busy: BusyIndex, removed: Iterable[Tuple[str, Interval]]) -> None:
    for date, interval in removed:
        add_busy(busy, date, interval)
