"""Snapshot subscriptions.

A watcher yields the full result set once on start and again after every change that
touches the watched user. Changes arriving while the consumer is busy collapse into a
single fresh snapshot; consumers are expected to re-render from scratch each time.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Awaitable, Callable, Sequence, TypeVar

import planboard.storage.reminder as reminder_storage
import planboard.storage.task as task_storage
from planboard.datamodel import Reminder, Task
from planboard.events import bus, E
from planboard.logger import logger

__all__ = ["watch_tasks", "watch_reminders"]

T = TypeVar("T")


async def _watch(user_id: int, events: Sequence[str], load: Callable[[], Awaitable[T]]) -> AsyncIterator[T]:
    changed: asyncio.Queue[None] = asyncio.Queue()

    def _on_change(*args, **kwargs) -> None:
        if kwargs.get("user_id") == user_id:
            changed.put_nowait(None)

    for event in events:
        bus.add_listener(event, _on_change)
    logger.debug(f"watch started: user_id={user_id}, events={list(events)}")
    try:
        yield await load()
        while True:
            await changed.get()
            while not changed.empty():
                changed.get_nowait()
            yield await load()
    finally:
        for event in events:
            bus.remove_listener(event, _on_change)
        logger.debug(f"watch stopped: user_id={user_id}")


def watch_tasks(user_id: int, start_date: str | None = None,
                end_date: str | None = None) -> AsyncIterator[list[Task]]:
    return _watch(user_id, E.TASK_CHANGES, lambda: task_storage.list_tasks(user_id, start_date, end_date))


def watch_reminders(user_id: int) -> AsyncIterator[list[Reminder]]:
    return _watch(user_id, E.REMINDER_CHANGES, lambda: reminder_storage.list_reminders(user_id))
