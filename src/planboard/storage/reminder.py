"""Reminder store.

One table holds personal reminders and the per-member copies of group reminders;
``source`` tells them apart. Every read used by the scheduler merges both kinds.
"""

import planboard.storage.db_config as db_config
from planboard.datamodel import DEFAULT_PRIORITY, Reminder, ReminderSource
from planboard.events import bus, E
from planboard.logger import logger
from planboard.storage.db_config import persists
from planboard.utils import now_utc_str

__all__ = [
    "create_reminder", "get_reminder", "list_reminders", "list_schedulable_reminders",
    "set_reminder_completed", "update_reminder_link", "clear_links_to_task", "delete_reminder",
    "row_to_reminder", "REMINDER_COLUMNS",
]

REMINDER_COLUMNS = (
    "reminder_id, user_id, title, due_date, estimate_minutes, category, priority, is_completed, "
    "finished_at_utc, event_link, source, group_id, group_reminder_id, created_at_utc, updated_at_utc"
)


def row_to_reminder(row) -> Reminder:
    return Reminder(
        reminder_id=row["reminder_id"],
        user_id=row["user_id"],
        title=row["title"],
        due_date=row["due_date"],
        estimate_minutes=row["estimate_minutes"],
        category=row["category"],
        priority=row["priority"],
        is_completed=bool(row["is_completed"]),
        finished_at_utc=row["finished_at_utc"],
        event_link=row["event_link"],
        source=ReminderSource(row["source"]),
        group_id=row["group_id"],
        group_reminder_id=row["group_reminder_id"],
        created_at_utc=row["created_at_utc"],
        updated_at_utc=row["updated_at_utc"],
    )


async def _owner_of(reminder_id: int) -> int | None:
    db = db_config.ensure_conn()
    async with db.execute("SELECT user_id FROM reminders WHERE reminder_id = ?", (reminder_id,)) as cursor:
        row = await cursor.fetchone()
    return row["user_id"] if row else None


@persists
async def create_reminder(user_id: int, title: str, due_date: str | None = None,
                          estimate_minutes: int | None = None, category: str = "",
                          priority: int = DEFAULT_PRIORITY, event_link: int | None = None) -> Reminder:
    """Create a personal reminder."""
    db = db_config.ensure_conn()
    now = now_utc_str()
    async with db.execute(
        "INSERT INTO reminders (user_id, title, due_date, estimate_minutes, category, priority, event_link, "
        "source, created_at_utc, updated_at_utc) VALUES (?, ?, ?, ?, ?, ?, ?, 'personal', ?, ?)",
        (user_id, title, due_date, estimate_minutes, category, priority, event_link, now, now),
    ) as cursor:
        reminder_id = cursor.lastrowid
    await db.commit()
    logger.trace(f"created reminder: user_id={user_id}, reminder_id={reminder_id}, title={title}, due_date={due_date}")
    bus.emit(E.REMINDER_CREATED, user_id=user_id, reminder_id=reminder_id)
    return await get_reminder(reminder_id)


@persists
async def get_reminder(reminder_id: int) -> Reminder | None:
    db = db_config.ensure_conn()
    async with db.execute(
        f"SELECT {REMINDER_COLUMNS} FROM reminders WHERE reminder_id = ?", (reminder_id,)
    ) as cursor:
        row = await cursor.fetchone()
    return row_to_reminder(row) if row else None


@persists
async def list_reminders(user_id: int) -> list[Reminder]:
    """All of a user's reminders, soonest due first, undated ones last."""
    db = db_config.ensure_conn()
    async with db.execute(
        f"SELECT {REMINDER_COLUMNS} FROM reminders WHERE user_id = ? "
        "ORDER BY due_date IS NULL, due_date, reminder_id",
        (user_id,),
    ) as cursor:
        rows = await cursor.fetchall()
    return [row_to_reminder(row) for row in rows]


@persists
async def list_schedulable_reminders(user_id: int) -> list[Reminder]:
    """Open reminders (personal and group copies) with a due date and a positive estimate.

    Rows come back in creation order.
    """
    db = db_config.ensure_conn()
    async with db.execute(
        f"SELECT {REMINDER_COLUMNS} FROM reminders WHERE user_id = ? AND is_completed = 0 "
        "AND due_date IS NOT NULL AND estimate_minutes IS NOT NULL AND estimate_minutes > 0 "
        "ORDER BY reminder_id",
        (user_id,),
    ) as cursor:
        rows = await cursor.fetchall()
    return [row_to_reminder(row) for row in rows]


@persists
async def set_reminder_completed(reminder_id: int, completed: bool) -> Reminder | None:
    """Mark a reminder done or open again; finished_at_utc follows the flag."""
    db = db_config.ensure_conn()
    now = now_utc_str()
    async with db.execute(
        "UPDATE reminders SET is_completed = ?, finished_at_utc = ?, updated_at_utc = ? WHERE reminder_id = ?",
        (int(completed), now if completed else None, now, reminder_id),
    ) as cursor:
        changed = cursor.rowcount
    await db.commit()
    if not changed:
        return None
    reminder = await get_reminder(reminder_id)
    logger.trace(f"reminder completion: reminder_id={reminder_id}, completed={completed}")
    bus.emit(E.REMINDER_UPDATED, user_id=reminder.user_id, reminder_id=reminder_id)
    return reminder


@persists
async def update_reminder_link(reminder_id: int, task_id: int | None) -> bool:
    """Point a reminder's event_link at a task (or clear it) and bump updated_at_utc."""
    db = db_config.ensure_conn()
    owner_id = await _owner_of(reminder_id)
    if owner_id is None:
        return False
    await db.execute(
        "UPDATE reminders SET event_link = ?, updated_at_utc = ? WHERE reminder_id = ?",
        (task_id, now_utc_str(), reminder_id),
    )
    await db.commit()
    logger.trace(f"reminder link: reminder_id={reminder_id}, event_link={task_id}")
    bus.emit(E.REMINDER_UPDATED, user_id=owner_id, reminder_id=reminder_id)
    return True


@persists
async def clear_links_to_task(task_id: int) -> list[Reminder]:
    """Clear event_link on every reminder pointing at task_id; return the reminders touched.

    This is a full scan over reminders, there is no reverse index on event_link.
    """
    db = db_config.ensure_conn()
    async with db.execute(
        f"SELECT {REMINDER_COLUMNS} FROM reminders WHERE event_link = ?", (task_id,)
    ) as cursor:
        rows = await cursor.fetchall()
    if not rows:
        return []

    await db.execute(
        "UPDATE reminders SET event_link = NULL, updated_at_utc = ? WHERE event_link = ?",
        (now_utc_str(), task_id),
    )
    await db.commit()
    cleared = [row_to_reminder(row) for row in rows]
    for reminder in cleared:
        reminder.event_link = None
        bus.emit(E.REMINDER_UPDATED, user_id=reminder.user_id, reminder_id=reminder.reminder_id)
    return cleared


@persists
async def delete_reminder(reminder_id: int) -> bool:
    """Delete one reminder. Its linked task, if any, stays on the calendar."""
    db = db_config.ensure_conn()
    owner_id = await _owner_of(reminder_id)
    if owner_id is None:
        return False
    await db.execute("DELETE FROM reminders WHERE reminder_id = ?", (reminder_id,))
    await db.commit()
    logger.trace(f"deleted reminder: reminder_id={reminder_id}")
    bus.emit(E.REMINDER_DELETED, user_id=owner_id, reminder_id=reminder_id)
    return True
