"""Groups, memberships and group reminders.

A group reminder is written once under the group (canonical row) and once per member
into ``reminders`` (fan-out copy with source='group'). Each copy is then owned by its
member: completion, scheduling and links never touch the other copies.
"""

import random
import string

import aiosqlite

import planboard.storage.db_config as db_config
from planboard.datamodel import DEFAULT_PRIORITY, Group, GroupMember, GroupReminder, Reminder
from planboard.events import bus, E
from planboard.logger import logger
from planboard.storage.db_config import persists
from planboard.storage.reminder import REMINDER_COLUMNS, row_to_reminder
from planboard.utils import now_utc_str

__all__ = [
    "generate_group_code", "create_group", "get_group", "get_group_by_code", "add_member",
    "list_user_groups", "create_group_reminder", "get_group_reminder", "delete_group_reminder",
]

GROUP_CODE_ALPHABET = string.ascii_uppercase + string.digits
GROUP_CODE_LENGTH = 8
_CODE_ATTEMPTS = 5


def generate_group_code() -> str:
    return "".join(random.choices(GROUP_CODE_ALPHABET, k=GROUP_CODE_LENGTH))


async def _load_members(group_id: int) -> list[GroupMember]:
    db = db_config.ensure_conn()
    async with db.execute(
        "SELECT m.user_id, m.role, m.joined_at_utc, u.email FROM group_members m "
        "LEFT JOIN users u ON u.user_id = m.user_id WHERE m.group_id = ? ORDER BY m.joined_at_utc, m.user_id",
        (group_id,),
    ) as cursor:
        rows = await cursor.fetchall()
    return [
        GroupMember(user_id=row["user_id"], role=row["role"], joined_at_utc=row["joined_at_utc"], email=row["email"])
        for row in rows
    ]


async def _row_to_group(row) -> Group:
    return Group(
        group_id=row["group_id"],
        name=row["name"],
        code=row["code"],
        created_by=row["created_by"],
        created_at_utc=row["created_at_utc"],
        members=await _load_members(row["group_id"]),
    )


@persists
async def create_group(name: str, created_by: int) -> Group:
    """Create a group with a fresh join code; the creator becomes its owner."""
    db = db_config.ensure_conn()
    now = now_utc_str()
    for attempt in range(1, _CODE_ATTEMPTS + 1):
        code = generate_group_code()
        try:
            async with db.execute(
                "INSERT INTO groups (name, code, created_by, created_at_utc) VALUES (?, ?, ?, ?)",
                (name, code, created_by, now),
            ) as cursor:
                group_id = cursor.lastrowid
            break
        except aiosqlite.IntegrityError as e:
            if "groups.code" not in str(e):
                raise
            await db.rollback()
            logger.warning(f"group code collision, retrying: attempt={attempt}")
    else:
        raise aiosqlite.IntegrityError("could not allocate a unique group code")

    await db.execute(
        "INSERT INTO group_members (group_id, user_id, role, joined_at_utc) VALUES (?, ?, 'owner', ?)",
        (group_id, created_by, now),
    )
    await db.commit()
    logger.info(f"created group: group_id={group_id}, code={code}, created_by={created_by}")
    bus.emit(E.GROUP_CREATED, user_id=created_by, group_id=group_id)
    return await get_group(group_id)


@persists
async def get_group(group_id: int) -> Group | None:
    db = db_config.ensure_conn()
    async with db.execute(
        "SELECT group_id, name, code, created_by, created_at_utc FROM groups WHERE group_id = ?", (group_id,)
    ) as cursor:
        row = await cursor.fetchone()
    return await _row_to_group(row) if row else None


@persists
async def get_group_by_code(code: str) -> Group | None:
    """Look up a group by join code, case-insensitively."""
    db = db_config.ensure_conn()
    async with db.execute(
        "SELECT group_id, name, code, created_by, created_at_utc FROM groups WHERE code = ?",
        (code.strip().upper(),),
    ) as cursor:
        row = await cursor.fetchone()
    return await _row_to_group(row) if row else None


@persists
async def add_member(group_id: int, user_id: int, role: str = "member") -> bool:
    """Add a user to a group. False if they are already a member."""
    db = db_config.ensure_conn()
    async with db.execute(
        "SELECT 1 FROM group_members WHERE group_id = ? AND user_id = ?", (group_id, user_id)
    ) as cursor:
        if await cursor.fetchone():
            return False
    await db.execute(
        "INSERT INTO group_members (group_id, user_id, role, joined_at_utc) VALUES (?, ?, ?, ?)",
        (group_id, user_id, role, now_utc_str()),
    )
    await db.commit()
    logger.info(f"user joined group: group_id={group_id}, user_id={user_id}")
    bus.emit(E.GROUP_JOINED, user_id=user_id, group_id=group_id)
    return True


@persists
async def list_user_groups(user_id: int) -> list[Group]:
    db = db_config.ensure_conn()
    async with db.execute(
        "SELECT g.group_id, g.name, g.code, g.created_by, g.created_at_utc FROM groups g "
        "JOIN group_members m ON m.group_id = g.group_id WHERE m.user_id = ? ORDER BY g.group_id",
        (user_id,),
    ) as cursor:
        rows = await cursor.fetchall()
    return [await _row_to_group(row) for row in rows]


@persists
async def create_group_reminder(group_id: int, created_by: int, title: str, due_date: str | None = None,
                                estimate_minutes: int | None = None, category: str = "",
                                priority: int = DEFAULT_PRIORITY) -> tuple[GroupReminder, list[Reminder]]:
    """Write the canonical group reminder and one copy per current member, in one commit."""
    db = db_config.ensure_conn()
    now = now_utc_str()
    async with db.execute(
        "INSERT INTO group_reminders (group_id, created_by, title, due_date, estimate_minutes, category, priority, "
        "created_at_utc) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        (group_id, created_by, title, due_date, estimate_minutes, category, priority, now),
    ) as cursor:
        group_reminder_id = cursor.lastrowid

    async with db.execute("SELECT user_id FROM group_members WHERE group_id = ? ORDER BY user_id", (group_id,)) as cursor:
        member_ids = [row["user_id"] for row in await cursor.fetchall()]

    await db.executemany(
        "INSERT INTO reminders (user_id, title, due_date, estimate_minutes, category, priority, source, group_id, "
        "group_reminder_id, created_at_utc, updated_at_utc) VALUES (?, ?, ?, ?, ?, ?, 'group', ?, ?, ?, ?)",
        [
            (member_id, title, due_date, estimate_minutes, category, priority, group_id, group_reminder_id, now, now)
            for member_id in member_ids
        ],
    )
    await db.commit()

    async with db.execute(
        f"SELECT {REMINDER_COLUMNS} FROM reminders WHERE group_reminder_id = ? ORDER BY reminder_id",
        (group_reminder_id,),
    ) as cursor:
        copies = [row_to_reminder(row) for row in await cursor.fetchall()]

    logger.info(f"created group reminder: group_reminder_id={group_reminder_id}, group_id={group_id}, "
                f"copies={len(copies)}")
    for copy in copies:
        bus.emit(E.REMINDER_CREATED, user_id=copy.user_id, reminder_id=copy.reminder_id)

    canonical = GroupReminder(
        group_reminder_id=group_reminder_id,
        group_id=group_id,
        created_by=created_by,
        title=title,
        due_date=due_date,
        estimate_minutes=estimate_minutes,
        category=category,
        priority=priority,
        created_at_utc=now,
    )
    return canonical, copies


@persists
async def get_group_reminder(group_reminder_id: int) -> GroupReminder | None:
    db = db_config.ensure_conn()
    async with db.execute(
        "SELECT group_reminder_id, group_id, created_by, title, due_date, estimate_minutes, category, priority, "
        "created_at_utc FROM group_reminders WHERE group_reminder_id = ?",
        (group_reminder_id,),
    ) as cursor:
        row = await cursor.fetchone()
    if row is None:
        return None
    return GroupReminder(**dict(row))


@persists
async def delete_group_reminder(group_reminder_id: int) -> int:
    """Delete the canonical row and every member copy; returns how many copies were removed."""
    db = db_config.ensure_conn()
    async with db.execute(
        "SELECT reminder_id, user_id FROM reminders WHERE group_reminder_id = ?", (group_reminder_id,)
    ) as cursor:
        copies = [(row["reminder_id"], row["user_id"]) for row in await cursor.fetchall()]
    await db.execute("DELETE FROM reminders WHERE group_reminder_id = ?", (group_reminder_id,))
    await db.execute("DELETE FROM group_reminders WHERE group_reminder_id = ?", (group_reminder_id,))
    await db.commit()
    logger.info(f"deleted group reminder: group_reminder_id={group_reminder_id}, copies={len(copies)}")
    for reminder_id, user_id in copies:
        bus.emit(E.REMINDER_DELETED, user_id=user_id, reminder_id=reminder_id)
    return len(copies)
