import planboard.storage.db_config as db_config
from planboard.datamodel import UserInfo
from planboard.logger import logger
from planboard.storage.db_config import persists

__all__ = ["create_user", "get_user_by_id"]

_COLUMNS = "user_id, user_name, email, timezone, created_at_utc"


def _row_to_user(row) -> UserInfo:
    return UserInfo(
        user_id=row["user_id"],
        user_name=row["user_name"],
        email=row["email"],
        timezone=row["timezone"],
        created_at_utc=row["created_at_utc"],
    )


@persists
async def create_user(user_name: str | None = None, email: str | None = None,
                      timezone: str | None = None) -> UserInfo:
    """Create a user and return it."""
    db = db_config.ensure_conn()
    async with db.execute(
        "INSERT INTO users (user_name, email, timezone) VALUES (?, ?, ?)",
        (user_name, email, timezone),
    ) as cursor:
        user_id = cursor.lastrowid
    await db.commit()
    logger.info(f"created user: user_id={user_id}, email={email}")
    return await get_user_by_id(user_id)


@persists
async def get_user_by_id(user_id: int) -> UserInfo | None:
    db = db_config.ensure_conn()
    async with db.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id = ?", (user_id,)) as cursor:
        row = await cursor.fetchone()
    return _row_to_user(row) if row else None

