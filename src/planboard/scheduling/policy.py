from dataclasses import dataclass

from planboard.config import settings
from planboard.datamodel import TaskCategory
from planboard.scheduling.timecalc import DEFAULT_MIN_DURATION, MINUTES_PER_DAY

__all__ = ["SchedulePolicy", "default_policy"]


@dataclass(frozen=True)
class SchedulePolicy:
    window_start: int = 18 * 60  # minutes after midnight, inclusive
    window_end: int = MINUTES_PER_DAY  # exclusive, 1440 means midnight
    min_duration: int = DEFAULT_MIN_DURATION
    task_category: TaskCategory = TaskCategory.WORK
    overdue_search_days: int = 6  # extra days after today an overdue reminder may land on

    def __post_init__(self) -> None:
        if not 0 <= self.window_start < self.window_end <= MINUTES_PER_DAY:
            raise ValueError(f"bad search window: {self.window_start}-{self.window_end}")


def default_policy() -> SchedulePolicy:
    return SchedulePolicy(
        window_start=settings.SCHEDULE_WINDOW_START,
        window_end=settings.SCHEDULE_WINDOW_END,
        min_duration=settings.MIN_TASK_MINUTES,
        task_category=TaskCategory(settings.AUTO_TASK_CATEGORY),
        overdue_search_days=settings.OVERDUE_SEARCH_DAYS,
    )
