"""loguru sinks for planboard.

Records carry a ``user_id`` extra (``-`` outside a user's scope); scheduling runs bind it
with ``logger.contextualize(user_id=...)`` so every line of a run can be grepped by user.
Until setup_logging runs, loguru's default stderr sink is in place.
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

_RECORD = "{name}:{function}:{line} | user={extra[user_id]} - {message}"

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> <level>{level:<8}</level> "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> <magenta>user={extra[user_id]}</magenta> "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | " + _RECORD


def _level(name: str) -> str:
    name = name.strip().upper()
    return "CRITICAL" if name == "FATAL" else name


def setup_logging(log_level: str, log_file: str | Path, console_level: str = "INFO", *,
                  rotation: str = "10 MB", retention: str = "30 days",
                  error_retention: str = "90 days") -> None:
    """Console sink plus a rotating log file and a separate ERROR+ file beside it.

    ``log_file`` of ``logs/planboard.log`` also writes ``logs/planboard_error.log``.
    """
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    error_file = log_file.with_name(f"{log_file.stem}_error{log_file.suffix}")

    files = [(log_file, _level(log_level), retention), (error_file, "ERROR", error_retention)]
    logger.configure(
        extra={"user_id": "-"},
        handlers=[
            {"sink": sys.stderr, "level": _level(console_level), "format": CONSOLE_FORMAT, "colorize": True},
            *(
                {"sink": path, "level": level, "format": FILE_FORMAT, "rotation": rotation,
                 "retention": keep, "compression": "zip", "encoding": "utf-8"}
                for path, level, keep in files
            ),
        ],
    )


__all__ = ["setup_logging", "logger"]
