"""Entry points for user-triggered operations.

Every mutating action fails fast with Unauthenticated when no known user is given,
validates its input with the schemas in planboard.schemas, and only then calls into the
stores and the scheduler. Persistence errors propagate to the caller, who reports them.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Type, TypeVar

from pydantic import BaseModel, ValidationError

import planboard.storage.group as group_storage
import planboard.storage.reminder as reminder_storage
import planboard.storage.task as task_storage
import planboard.storage.user as user_storage
from planboard.config import settings
from planboard.datamodel import Group, GroupReminder, Reminder, Task, TaskCategory, UserInfo
from planboard.errors import NotFound, Unauthenticated, ValidationFailed
from planboard.logger import logger
from planboard.scheduling import links
from planboard.scheduling.auto_schedule import ScheduleReport
from planboard.scheduling import auto_schedule as scheduler
from planboard.scheduling.policy import SchedulePolicy
from planboard.scheduling.timecalc import shift_times, to_minutes
from planboard.schemas import GroupReminderIn, MoveTaskIn, ReminderIn, TaskIn
from planboard.utils import normalize_due_date, now_local, today_local, week_dates

__all__ = [
    "require_user", "user_today",
    "add_reminder", "toggle_reminder_completed", "delete_reminder",
    "add_task", "move_task", "delete_task", "week_tasks",
    "create_group", "join_group", "list_groups", "add_group_reminder", "delete_group_reminder",
    "auto_schedule",
]

M = TypeVar("M", bound=BaseModel)


async def require_user(user_id: Any) -> UserInfo:
    if user_id is None or user_id == "":
        logger.warning("rejected action without a signed-in user")
        raise Unauthenticated("Please login first")
    user = await user_storage.get_user_by_id(user_id)
    if user is None:
        logger.warning(f"rejected action for unknown user_id={user_id}")
        raise Unauthenticated("Please login first")
    return user


def user_today(user: UserInfo) -> date:
    return today_local(user.timezone or settings.USER_TIMEZONE)


def _validate(model: Type[M], **data) -> M:
    try:
        return model(**data)
    except ValidationError as e:
        first = e.errors()[0]
        raise ValidationFailed(str(first.get("msg", "invalid input")), e.errors()) from e


async def _own_reminder(user_id: int, reminder_id: int) -> Reminder:
    reminder = await reminder_storage.get_reminder(reminder_id)
    if reminder is None:
        raise NotFound(f"reminder {reminder_id} not found")
    if reminder.user_id != user_id:
        raise Unauthenticated(f"reminder {reminder_id} belongs to another user")
    return reminder


async def _own_task(user_id: int, task_id: int) -> Task:
    task = await task_storage.get_task(task_id)
    if task is None:
        raise NotFound(f"task {task_id} not found")
    if task.user_id != user_id:
        raise Unauthenticated(f"task {task_id} belongs to another user")
    return task


# ----------------- Reminders ----------------
async def add_reminder(user_id: int, title: str, due_date: Any = None, estimate_minutes: int | None = None,
                       category: str = "", priority: int | None = None) -> Reminder:
    user = await require_user(user_id)
    data = _validate(ReminderIn, title=title, due_date=due_date, estimate_minutes=estimate_minutes,
                     category=category, **({} if priority is None else {"priority": priority}))
    due = normalize_due_date(data.due_date, user.timezone or settings.USER_TIMEZONE)
    return await reminder_storage.create_reminder(
        user.user_id, data.title, due_date=due, estimate_minutes=data.estimate_minutes,
        category=data.category, priority=data.priority,
    )


async def toggle_reminder_completed(user_id: int, reminder_id: int) -> Reminder:
    user_id = (await require_user(user_id)).user_id
    reminder = await _own_reminder(user_id, reminder_id)
    return await reminder_storage.set_reminder_completed(reminder_id, not reminder.is_completed)


async def delete_reminder(user_id: int, reminder_id: int) -> None:
    """Delete the user's reminder (or their copy of a group reminder). The linked task stays."""
    user_id = (await require_user(user_id)).user_id
    await _own_reminder(user_id, reminder_id)
    await reminder_storage.delete_reminder(reminder_id)


# ----------------- Tasks ----------------
async def add_task(user_id: int, name: str, date: str, start_time: str, end_time: str | None = None,
                   category: str = "study") -> Task:
    user_id = (await require_user(user_id)).user_id
    data = _validate(TaskIn, name=name, category=category, date=date, start_time=start_time, end_time=end_time)
    return await task_storage.create_task(user_id, data.name, data.date, data.start_time, data.end_time,
                                          category=data.category)


async def move_task(user_id: int, task_id: int, new_date: str, new_hour: int) -> Task:
    """Drop a task onto another date/hour cell.

    The minute past the hour and the length are kept; the end wraps past midnight if needed.
    Nothing is written when the task lands where it already was.
    """
    user_id = (await require_user(user_id)).user_id
    target = _validate(MoveTaskIn, date=new_date, hour=new_hour)
    task = await _own_task(user_id, task_id)

    minute = to_minutes(task.start_time) % 60
    new_start = f"{target.hour:02d}:{minute:02d}"
    start_time, end_time = shift_times(task.start_time, task.end_time, new_start)

    if task.date == target.date and task.start_time == start_time:
        return task
    await task_storage.update_task(task_id, date=target.date, start_time=start_time, end_time=end_time)
    task.date, task.start_time, task.end_time = target.date, start_time, end_time
    return task


async def delete_task(user_id: int, task_id: int) -> list[Reminder]:
    """Delete a task and clear every reminder link to it; returns the reminders unlinked."""
    user_id = (await require_user(user_id)).user_id
    await _own_task(user_id, task_id)
    await task_storage.delete_task(task_id)
    return await links.unlink_on_task_deletion(task_id)


async def week_tasks(user_id: int, week_offset: int = 0, today: date | None = None,
                     categories: Iterable[str] | None = None) -> tuple[list[str], list[Task]]:
    """The dates of the week ``week_offset`` weeks from now, and the user's tasks in it.

    ``categories`` keeps only tasks of those categories; None shows all of them.
    """
    user = await require_user(user_id)
    shown = None
    if categories is not None:
        categories = list(categories)
        try:
            shown = {TaskCategory(c) for c in categories}
        except ValueError as e:
            raise ValidationFailed(f"unknown task category in {categories!r}") from e
    dates = week_dates(today or user_today(user), week_offset)
    tasks = await task_storage.list_tasks(user.user_id, dates[0], dates[-1])
    if shown is not None:
        tasks = [t for t in tasks if t.category in shown]
    return dates, tasks


# ----------------- Groups ----------------
async def create_group(user_id: int, name: str) -> Group:
    user_id = (await require_user(user_id)).user_id
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("Group name is required")
    return await group_storage.create_group(name, user_id)


async def join_group(user_id: int, code: str) -> bool:
    """Join by invite code. False for an unknown code or an existing membership."""
    user_id = (await require_user(user_id)).user_id
    group = await group_storage.get_group_by_code(code or "")
    if group is None:
        logger.info(f"invalid group code from user_id={user_id}: {code!r}")
        return False
    if user_id in group.member_ids:
        logger.info(f"user_id={user_id} is already in group_id={group.group_id}")
        return False
    return await group_storage.add_member(group.group_id, user_id)


async def list_groups(user_id: int) -> list[Group]:
    user_id = (await require_user(user_id)).user_id
    return await group_storage.list_user_groups(user_id)


async def add_group_reminder(user_id: int, group_id: int, title: str, due_date: Any = None,
                             estimate_minutes: int | None = None, category: str = "",
                             priority: int | None = None) -> tuple[GroupReminder, list[Reminder]]:
    """Create a group reminder and fan it out to every current member."""
    user = await require_user(user_id)
    user_id = user.user_id
    data = _validate(GroupReminderIn, group_id=group_id, title=title, due_date=due_date,
                     estimate_minutes=estimate_minutes, category=category,
                     **({} if priority is None else {"priority": priority}))
    group = await group_storage.get_group(data.group_id)
    if group is None:
        raise NotFound(f"group {data.group_id} not found")
    if user_id not in group.member_ids:
        raise Unauthenticated(f"user {user_id} is not a member of group {data.group_id}")
    due = normalize_due_date(data.due_date, user.timezone or settings.USER_TIMEZONE)
    return await group_storage.create_group_reminder(
        group.group_id, user_id, data.title, due_date=due, estimate_minutes=data.estimate_minutes,
        category=data.category, priority=data.priority,
    )


async def delete_group_reminder(user_id: int, group_reminder_id: int) -> int:
    """Delete a group reminder everywhere; only its creator may do this."""
    user_id = (await require_user(user_id)).user_id
    canonical = await group_storage.get_group_reminder(group_reminder_id)
    if canonical is None:
        raise NotFound(f"group reminder {group_reminder_id} not found")
    if canonical.created_by != user_id:
        raise Unauthenticated(f"group reminder {group_reminder_id} was created by another user")
    return await group_storage.delete_group_reminder(group_reminder_id)


# ----------------- Scheduling ----------------
async def auto_schedule(user_id: int, today: date | None = None, policy: SchedulePolicy | None = None,
                        now: datetime | None = None) -> ScheduleReport:
    """Run the scheduler from the user's current local time, or over all of ``today``'s window when given."""
    user = await require_user(user_id)
    if today is None and now is None:
        now = now_local(user.timezone or settings.USER_TIMEZONE)
    return await scheduler.auto_schedule(user.user_id, today=today, policy=policy, now=now)
