import aiosqlite
import os
from functools import wraps
from pathlib import Path

from planboard.errors import PersistenceFailure
from planboard.logger import logger

SQL_DIR = Path(__file__).with_name("sql")
SCHEMA_VERSION = 1

conn: aiosqlite.Connection | None = None


def ensure_conn() -> aiosqlite.Connection:
    if conn is None:
        raise PersistenceFailure("database is not initialised, call init_db() first")
    return conn


def persists(func):
    """Run a storage coroutine against the open connection.

    sqlite errors are rolled back and re-raised as PersistenceFailure.
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        db = ensure_conn()
        try:
            return await func(*args, **kwargs)
        except aiosqlite.Error as e:
            try:
                await db.rollback()
            except aiosqlite.Error:
                logger.warning(f"rollback after failed {func.__name__} did not succeed")
            raise PersistenceFailure(f"{func.__name__} failed: {e}") from e
    return wrapper


async def init_db(db_path: str) -> None:
    global conn
    if db_path != ":memory:":
        db_dir = os.path.dirname(db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)
    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await conn.execute("PRAGMA foreign_keys = ON")

    async with conn.execute("PRAGMA user_version") as cursor:
        row = await cursor.fetchone()
        user_version = row[0]

    if user_version < 1:
        init_sql = (SQL_DIR / "db_init_v1.sql").read_text(encoding="utf-8")
        await conn.executescript(init_sql)
        await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        logger.info(f"initialised database schema v{SCHEMA_VERSION}: {db_path}")

    # later schema upgrades go here, keyed on user_version
    await conn.commit()


async def close_db() -> None:
    global conn
    if conn is not None:
        await conn.close()
        conn = None


__all__ = ["conn", "init_db", "close_db", "ensure_conn", "persists"]
