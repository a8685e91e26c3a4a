"""Automatic placement of due-dated reminders into free evening slots.

One run works on a snapshot: the user's open reminders (personal and group copies) and
their calendar tasks. Reminders are placed soonest-due first, each on the earliest date
from today through its due date that still has room in the search window. Every placement
is committed on its own and immediately marked busy in memory, so later reminders in the
same run never collide with it. Nothing is rolled back if a later reminder fails.

Two runs for the same user at the same time are not coordinated and can double-book.
"""

import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterator, List, Literal, Optional, Tuple

import planboard.storage.reminder as reminder_storage
import planboard.storage.task as task_storage
from planboard.config import settings
from planboard.datamodel import Interval, SchedulableReminder
from planboard.errors import InvalidFormat, PersistenceFailure
from planboard.events import bus, E
from planboard.logger import logger
from planboard.metrics import runtime_metrics
from planboard.scheduling import links
from planboard.scheduling.busy import BusyIndex, add_busy, build_busy, drop_task, restore
from planboard.scheduling.policy import SchedulePolicy, default_policy
from planboard.scheduling.slot_finder import find_slot
from planboard.scheduling.timecalc import to_time_string
from planboard.utils import format_date, iter_dates, now_local, parse_date

__all__ = ["ReminderOutcome", "ScheduleReport", "auto_schedule", "sort_by_due", "candidate_dates", "plan_reminder",
           "minute_of_day"]


@dataclass
class ReminderOutcome:
    reminder_id: int
    title: str
    status: Literal["scheduled", "unscheduled", "failed"]
    task_id: Optional[int] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    created: bool = False  # a new task was made rather than an existing one moved
    error: Optional[str] = None


@dataclass
class ScheduleReport:
    user_id: int
    today: str
    outcomes: List[ReminderOutcome] = field(default_factory=list)

    def _with_status(self, status: str) -> List[ReminderOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def scheduled(self) -> List[ReminderOutcome]:
        return self._with_status("scheduled")

    @property
    def unscheduled(self) -> List[ReminderOutcome]:
        return self._with_status("unscheduled")

    @property
    def failed(self) -> List[ReminderOutcome]:
        return self._with_status("failed")

    def summary(self) -> str:
        return (f"user_id={self.user_id}, today={self.today}, scheduled={len(self.scheduled)}, "
                f"unscheduled={len(self.unscheduled)}, failed={len(self.failed)}")


def sort_by_due(reminders: List[SchedulableReminder]) -> List[SchedulableReminder]:
    """Soonest (and overdue) first; ties keep their incoming order."""
    return sorted(reminders, key=lambda r: r.due_date)


def candidate_dates(due: date, today: date, policy: SchedulePolicy) -> Iterator[date]:
    """Dates to try, from today through the due date.

    An overdue reminder is never placed in the past; it gets today plus
    ``policy.overdue_search_days`` more days instead.
    """
    last = due if due >= today else today + timedelta(days=policy.overdue_search_days)
    return iter_dates(today, last)


def plan_reminder(reminder: SchedulableReminder, busy: BusyIndex, today: date, policy: SchedulePolicy,
                  not_before: Optional[int] = None) -> Optional[Tuple[str, Interval]]:
    """Earliest (date, slot) for the reminder, or None when no date in range has room.

    ``not_before`` is the current minute of day; today's search does not start earlier.
    """
    due = parse_date(reminder.due_date)
    for day in candidate_dates(due, today, policy):
        day_str = format_date(day)
        window_start = policy.window_start
        if day == today and not_before is not None:
            window_start = max(window_start, not_before)
            if window_start >= policy.window_end:
                logger.debug(f"search window for {day_str} has already passed")
                continue
        slot = find_slot(busy.get(day_str, []), reminder.estimate_minutes,
                         window_start, policy.window_end, policy.min_duration)
        if slot is not None:
            return day_str, slot
        logger.debug(f"no room on {day_str} for reminder_id={reminder.reminder_id} "
                     f"({reminder.estimate_minutes} min)")
    return None


def minute_of_day(moment: datetime) -> int:
    """Whole minutes past midnight, rounded up so a running minute counts as gone."""
    minute = moment.hour * 60 + moment.minute
    if moment.second or moment.microsecond:
        minute += 1
    return minute


async def _materialize(user_id: int, reminder: SchedulableReminder, day: str, slot: Interval,
                       policy: SchedulePolicy) -> Tuple[int, bool]:
    """Write the placement: move the linked task, or create one and link it. Returns (task_id, created)."""
    start_time, end_time = to_time_string(slot.start), to_time_string(slot.end)

    if reminder.event_link is not None:
        moved = await task_storage.update_task(reminder.event_link, date=day, start_time=start_time,
                                               end_time=end_time)
        if moved:
            return reminder.event_link, False
        logger.warning(f"reminder_id={reminder.reminder_id} links to missing task_id={reminder.event_link}, "
                       f"creating a new one")

    task = await task_storage.create_task(user_id, reminder.title, day, start_time, end_time,
                                          category=policy.task_category)
    await links.link_reminder_to_task(reminder, task.task_id)
    return task.task_id, True


async def auto_schedule(user_id: int, today: date | None = None, policy: SchedulePolicy | None = None,
                        now: datetime | None = None) -> ScheduleReport:
    """Place every open, due-dated, estimated reminder of ``user_id`` on the calendar.

    ``now`` is the user's local wall-clock time: today becomes its date and today's slots
    before it are skipped. A bare ``today`` searches that day's whole window. With neither,
    the current time in USER_TIMEZONE is used.

    Reads run once up front; writes run one reminder at a time. A persistence failure
    on one reminder is logged and recorded in the report, and the run carries on.
    """
    policy = policy or default_policy()
    if now is None and today is None:
        now = now_local(settings.USER_TIMEZONE)
    if now is not None:
        today = now.date()
    not_before = minute_of_day(now) if now is not None else None

    with logger.contextualize(user_id=user_id):
        started = time.perf_counter()
        report = ScheduleReport(user_id=user_id, today=format_date(today))

        reminders = [SchedulableReminder.from_reminder(r)
                     for r in await reminder_storage.list_schedulable_reminders(user_id)]
        busy = build_busy(await task_storage.list_tasks(user_id), policy.min_duration)
        logger.info(f"auto schedule started: reminders={len(reminders)}, today={report.today}"
                    + (f", not before {to_time_string(not_before)}" if not_before is not None else ""))

        for reminder in sort_by_due(reminders):
            report.outcomes.append(await _schedule_one(user_id, reminder, busy, today, policy, not_before))

        latency_ms = (time.perf_counter() - started) * 1000
        runtime_metrics.record_schedule_run(
            latency_ms,
            scheduled=len(report.scheduled),
            unscheduled=len(report.unscheduled),
            failed=len(report.failed),
            created=sum(1 for o in report.scheduled if o.created),
        )
        logger.info(f"auto schedule finished: {report.summary()}, took {latency_ms:.1f} ms")
    bus.emit(E.SCHEDULE_COMPLETED, user_id=user_id, report=report)
    return report


async def _schedule_one(user_id: int, reminder: SchedulableReminder, busy: BusyIndex, today: date,
                        policy: SchedulePolicy, not_before: Optional[int]) -> ReminderOutcome:
    # a linked reminder may keep or improve its own slot, so its task stops counting as busy
    released = drop_task(busy, reminder.event_link) if reminder.event_link is not None else []

    try:
        placement = plan_reminder(reminder, busy, today, policy, not_before)
    except InvalidFormat as e:
        restore(busy, released)
        logger.warning(f"skipping reminder_id={reminder.reminder_id}: {e}")
        return ReminderOutcome(reminder.reminder_id, reminder.title, "failed", error=str(e))

    if placement is None:
        restore(busy, released)
        logger.warning(f"no free slot for reminder_id={reminder.reminder_id} '{reminder.title}' "
                       f"by {reminder.due_date}")
        return ReminderOutcome(reminder.reminder_id, reminder.title, "unscheduled", task_id=reminder.event_link)

    day, slot = placement
    try:
        task_id, created = await _materialize(user_id, reminder, day, slot, policy)
    except PersistenceFailure as e:
        # the write may or may not have landed; keep both old and new slots blocked for this run
        restore(busy, released)
        add_busy(busy, day, Interval(slot.start, slot.end))
        logger.opt(exception=e).error(f"failed to schedule reminder_id={reminder.reminder_id}: {e}")
        return ReminderOutcome(reminder.reminder_id, reminder.title, "failed", error=str(e))

    add_busy(busy, day, Interval(slot.start, slot.end, task_id))
    outcome = ReminderOutcome(
        reminder_id=reminder.reminder_id,
        title=reminder.title,
        status="scheduled",
        task_id=task_id,
        date=day,
        start_time=to_time_string(slot.start),
        end_time=to_time_string(slot.end),
        created=created,
    )
    logger.debug(f"scheduled reminder_id={reminder.reminder_id} -> task_id={task_id} "
                 f"{day} {outcome.start_time}-{outcome.end_time} ({'created' if created else 'moved'})")
    return outcome
