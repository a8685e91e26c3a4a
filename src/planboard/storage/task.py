import planboard.storage.db_config as db_config
from planboard.datamodel import Task, TaskCategory
from planboard.events import bus, E
from planboard.logger import logger
from planboard.storage.db_config import persists
from planboard.utils import now_utc_str

__all__ = ["create_task", "get_task", "list_tasks", "update_task", "delete_task"]

_COLUMNS = "task_id, user_id, name, category, date, start_time, end_time, created_at_utc, updated_at_utc"
_UPDATABLE = ("name", "category", "date", "start_time", "end_time")


def _row_to_task(row) -> Task:
    return Task(
        task_id=row["task_id"],
        user_id=row["user_id"],
        name=row["name"],
        category=TaskCategory(row["category"]),
        date=row["date"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        created_at_utc=row["created_at_utc"],
        updated_at_utc=row["updated_at_utc"],
    )


@persists
async def create_task(user_id: int, name: str, date: str, start_time: str, end_time: str,
                      category: TaskCategory | str = TaskCategory.STUDY) -> Task:
    db = db_config.ensure_conn()
    category = TaskCategory(category)
    now = now_utc_str()
    async with db.execute(
        "INSERT INTO tasks (user_id, name, category, date, start_time, end_time, created_at_utc, updated_at_utc) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        (user_id, name, category.value, date, start_time, end_time, now, now),
    ) as cursor:
        task_id = cursor.lastrowid
    await db.commit()
    logger.trace(f"created task: user_id={user_id}, task_id={task_id}, {date} {start_time}-{end_time}, name={name}")
    bus.emit(E.TASK_CREATED, user_id=user_id, task_id=task_id)
    return Task(
        task_id=task_id,
        user_id=user_id,
        name=name,
        category=category,
        date=date,
        start_time=start_time,
        end_time=end_time,
        created_at_utc=now,
        updated_at_utc=now,
    )


@persists
async def get_task(task_id: int) -> Task | None:
    db = db_config.ensure_conn()
    async with db.execute(f"SELECT {_COLUMNS} FROM tasks WHERE task_id = ?", (task_id,)) as cursor:
        row = await cursor.fetchone()
    return _row_to_task(row) if row else None


@persists
async def list_tasks(user_id: int, start_date: str | None = None, end_date: str | None = None) -> list[Task]:
    """A user's tasks ordered by date and start time, optionally limited to [start_date, end_date]."""
    db = db_config.ensure_conn()
    sql = f"SELECT {_COLUMNS} FROM tasks WHERE user_id = ?"
    params: list = [user_id]
    if start_date is not None:
        sql += " AND date >= ?"
        params.append(start_date)
    if end_date is not None:
        sql += " AND date <= ?"
        params.append(end_date)
    sql += " ORDER BY date, start_time, task_id"
    async with db.execute(sql, tuple(params)) as cursor:
        rows = await cursor.fetchall()
    return [_row_to_task(row) for row in rows]


@persists
async def update_task(task_id: int, **fields) -> bool:
    """Update some of name/category/date/start_time/end_time in place.

    Returns False when no such task exists.
    """
    unknown = set(fields) - set(_UPDATABLE)
    if unknown:
        raise ValueError(f"cannot update task fields: {sorted(unknown)}")
    if "category" in fields:
        fields["category"] = TaskCategory(fields["category"]).value

    db = db_config.ensure_conn()
    async with db.execute("SELECT user_id FROM tasks WHERE task_id = ?", (task_id,)) as cursor:
        row = await cursor.fetchone()
    if row is None:
        return False
    if not fields:
        return True

    assignments = ", ".join(f"{name} = ?" for name in fields)
    await db.execute(
        f"UPDATE tasks SET {assignments}, updated_at_utc = ? WHERE task_id = ?",
        (*fields.values(), now_utc_str(), task_id),
    )
    await db.commit()
    logger.trace(f"updated task: task_id={task_id}, fields={fields}")
    bus.emit(E.TASK_UPDATED, user_id=row["user_id"], task_id=task_id)
    return True


@persists
async def delete_task(task_id: int) -> bool:
    """Delete a task row. Reminder back-links are cleared by the caller."""
    db = db_config.ensure_conn()
    async with db.execute("SELECT user_id FROM tasks WHERE task_id = ?", (task_id,)) as cursor:
        row = await cursor.fetchone()
    if row is None:
        return False
    await db.execute("DELETE FROM tasks WHERE task_id = ?", (task_id,))
    await db.commit()
    logger.trace(f"deleted task: task_id={task_id}")
    bus.emit(E.TASK_DELETED, user_id=row["user_id"], task_id=task_id)
    return True
