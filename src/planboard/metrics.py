"""
In-process counters for scheduling runs, handy for logging and later export.
"""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass
class RuntimeMetrics:
    schedule_run_count: int = 0
    schedule_total_latency_ms: float = 0.0
    reminders_scheduled: int = 0
    reminders_unscheduled: int = 0
    reminders_failed: int = 0
    tasks_created: int = 0
    tasks_updated: int = 0
    last_schedule_run_at: float | None = None

    def record_schedule_run(self, latency_ms: float, scheduled: int, unscheduled: int, failed: int,
                            created: int) -> None:
        self.schedule_run_count += 1
        self.schedule_total_latency_ms += max(0.0, latency_ms)
        self.reminders_scheduled += scheduled
        self.reminders_unscheduled += unscheduled
        self.reminders_failed += failed
        self.tasks_created += created
        self.tasks_updated += scheduled - created
        self.last_schedule_run_at = time.time()

    def reset(self) -> None:
        self.__init__()

    def snapshot(self) -> dict:
        avg_latency_ms = 0.0
        if self.schedule_run_count > 0:
            avg_latency_ms = self.schedule_total_latency_ms / self.schedule_run_count

        return {
            "schedule_run_count": self.schedule_run_count,
            "schedule_total_latency_ms": round(self.schedule_total_latency_ms, 2),
            "schedule_avg_latency_ms": round(avg_latency_ms, 2),
            "reminders_scheduled": self.reminders_scheduled,
            "reminders_unscheduled": self.reminders_unscheduled,
            "reminders_failed": self.reminders_failed,
            "tasks_created": self.tasks_created,
            "tasks_updated": self.tasks_updated,
            "last_schedule_run_at_epoch": self.last_schedule_run_at,
            "last_schedule_run_at_utc": (
                time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.last_schedule_run_at))
                if self.last_schedule_run_at is not None
                else None
            ),
        }


runtime_metrics = RuntimeMetrics()


__all__ = ["RuntimeMetrics", "runtime_metrics"]
