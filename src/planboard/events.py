"""Event bus and the set of event names.

Storage functions emit after every committed write, always with a ``user_id`` keyword,
so listeners (snapshot watchers, metrics) can filter by owner. ``bus.on(event)`` also
works as a decorator.
"""

from pyee.asyncio import AsyncIOEventEmitter


class E:
    REMINDER_CREATED = "reminder.created"
    REMINDER_UPDATED = "reminder.updated"
    REMINDER_DELETED = "reminder.deleted"
    TASK_CREATED = "task.created"
    TASK_UPDATED = "task.updated"
    TASK_DELETED = "task.deleted"
    GROUP_CREATED = "group.created"
    GROUP_JOINED = "group.joined"
    SCHEDULE_COMPLETED = "schedule.completed"

    REMINDER_CHANGES = (REMINDER_CREATED, REMINDER_UPDATED, REMINDER_DELETED)
    TASK_CHANGES = (TASK_CREATED, TASK_UPDATED, TASK_DELETED)


bus = AsyncIOEventEmitter()

__all__ = ["bus", "E"]
