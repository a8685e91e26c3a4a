import os
from dotenv import load_dotenv
from planboard.logger import logger
load_dotenv()

__all__ = [
    "PLANBOARD_DB_PATH",
    "PLANBOARD_LOG_FILE", "PLANBOARD_LOG_LEVEL", "PLANBOARD_CONSOLE_LOG_LEVEL",
    "PLANBOARD_LOG_ROTATION", "PLANBOARD_LOG_RETENTION", "PLANBOARD_ERROR_LOG_RETENTION",
    "USER_TIMEZONE",
    "SCHEDULE_WINDOW_START", "SCHEDULE_WINDOW_END",
    "MIN_TASK_MINUTES", "AUTO_TASK_CATEGORY", "OVERDUE_SEARCH_DAYS",
]


def _parse_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning(f"{name}={raw!r} is not an integer, falling back to {default}")
        return default
    if value < minimum:
        logger.warning(f"{name}={value} is below {minimum}, falling back to {default}")
        return default
    return value


def _parse_window_bound(name: str, default: str) -> int:
    raw = os.getenv(name, default).strip()
    parts = raw.split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        logger.critical(f"{name}={raw!r} is not a HH:MM time")
        raise SystemExit(1)
    hours, minutes = int(parts[0]), int(parts[1])
    total = hours * 60 + minutes
    if minutes > 59 or total > 24 * 60:
        logger.critical(f"{name}={raw!r} is outside 00:00-24:00")
        raise SystemExit(1)
    return total


# Storage
PLANBOARD_DB_PATH = os.getenv("PLANBOARD_DB_PATH", "data/planboard.db")

# Logging
PLANBOARD_LOG_FILE = os.getenv("PLANBOARD_LOG_FILE", "logs/planboard.log")
PLANBOARD_LOG_LEVEL = os.getenv("PLANBOARD_LOG_LEVEL", "DEBUG").strip().upper()
PLANBOARD_CONSOLE_LOG_LEVEL = os.getenv("PLANBOARD_CONSOLE_LOG_LEVEL", "INFO").strip().upper()
PLANBOARD_LOG_ROTATION = os.getenv("PLANBOARD_LOG_ROTATION", "10 MB")
PLANBOARD_LOG_RETENTION = os.getenv("PLANBOARD_LOG_RETENTION", "30 days")
PLANBOARD_ERROR_LOG_RETENTION = os.getenv("PLANBOARD_ERROR_LOG_RETENTION", "90 days")

# User
USER_TIMEZONE = os.getenv("USER_TIMEZONE", "UTC")

# Scheduling policy, window bounds in minutes after midnight
SCHEDULE_WINDOW_START = _parse_window_bound("SCHEDULE_WINDOW_START", "18:00")
SCHEDULE_WINDOW_END = _parse_window_bound("SCHEDULE_WINDOW_END", "24:00")
if SCHEDULE_WINDOW_START >= SCHEDULE_WINDOW_END:
    logger.critical("SCHEDULE_WINDOW_START must be earlier than SCHEDULE_WINDOW_END")
    raise SystemExit(1)

MIN_TASK_MINUTES = _parse_int("MIN_TASK_MINUTES", 5, minimum=1)

AUTO_TASK_CATEGORY = os.getenv("AUTO_TASK_CATEGORY", "work").strip().lower()
if AUTO_TASK_CATEGORY not in ("study", "work", "exercise", "group"):
    logger.warning(f"AUTO_TASK_CATEGORY={AUTO_TASK_CATEGORY!r} is not a known category, using 'work'")
    AUTO_TASK_CATEGORY = "work"

OVERDUE_SEARCH_DAYS = _parse_int("OVERDUE_SEARCH_DAYS", 6)
