"""Reminder -> task back-links (``event_link``).

Tasks are the calendar's ground truth and reminders only point at them: deleting a
reminder leaves its task alone, deleting a task clears every link to it.
"""

import planboard.storage.reminder as reminder_storage
from planboard.datamodel import Reminder, SchedulableReminder
from planboard.logger import logger

__all__ = ["link_reminder_to_task", "unlink_on_task_deletion"]


async def link_reminder_to_task(reminder: Reminder | SchedulableReminder, task_id: int) -> None:
    """Set the reminder's event_link to task_id (updated_at_utc is bumped by the store)."""
    found = await reminder_storage.update_reminder_link(reminder.reminder_id, task_id)
    if not found:
        logger.warning(f"cannot link missing reminder: reminder_id={reminder.reminder_id}, task_id={task_id}")
        return
    reminder.event_link = task_id


async def unlink_on_task_deletion(task_id: int) -> list[Reminder]:
    """Clear event_link on all personal and group-copy reminders that point at task_id."""
    cleared = await reminder_storage.clear_links_to_task(task_id)
    if cleared:
        logger.debug(f"cleared links to deleted task: task_id={task_id}, "
                     f"reminders={[r.reminder_id for r in cleared]}")
    return cleared
