from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Optional

__all__ = [
    "TaskCategory", "ReminderSource",
    "Reminder", "SchedulableReminder",
    "Task", "Interval",
    "Group", "GroupMember", "GroupReminder",
    "UserInfo",
    "DEFAULT_PRIORITY",
]

DEFAULT_PRIORITY = 3


class TaskCategory(str, Enum):
    STUDY = "study"
    WORK = "work"
    EXERCISE = "exercise"
    GROUP = "group"


class ReminderSource(str, Enum):
    PERSONAL = "personal"
    GROUP = "group"  # per-member fan-out copy of a group reminder


# ----------------- Reminder ----------------
@dataclass
class Reminder:
    reminder_id: int
    user_id: int
    title: str
    due_date: Optional[str] = None  # "YYYY-MM-DD", due by the end of that day
    estimate_minutes: Optional[int] = None
    category: str = ""
    priority: int = DEFAULT_PRIORITY
    is_completed: bool = False
    finished_at_utc: Optional[str] = None  # set iff is_completed
    event_link: Optional[int] = None  # task_id of the materialised calendar task
    source: ReminderSource = ReminderSource.PERSONAL
    group_id: Optional[int] = None
    group_reminder_id: Optional[int] = None
    created_at_utc: Optional[str] = None
    updated_at_utc: Optional[str] = None

    @property
    def is_schedulable(self) -> bool:
        return (
            not self.is_completed
            and self.due_date is not None
            and self.estimate_minutes is not None
            and self.estimate_minutes > 0
        )


@dataclass
class SchedulableReminder:
    """The subset of a reminder the scheduler works with."""
    reminder_id: int
    title: str
    due_date: str
    estimate_minutes: int
    event_link: Optional[int]
    source: ReminderSource

    @classmethod
    def from_reminder(cls, reminder: Reminder) -> "SchedulableReminder":
        if not reminder.is_schedulable:
            raise ValueError(f"reminder {reminder.reminder_id} is completed, undated or has no estimate")
        return cls(
            reminder_id=reminder.reminder_id,
            title=reminder.title,
            due_date=reminder.due_date[:10],
            estimate_minutes=int(reminder.estimate_minutes),
            event_link=reminder.event_link,
            source=ReminderSource(reminder.source),
        )


# ----------------- Task ----------------
@dataclass
class Task:
    task_id: int
    user_id: int
    name: str
    date: str  # "YYYY-MM-DD"
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM", may be earlier than start_time when the task runs past midnight
    category: TaskCategory = TaskCategory.STUDY
    created_at_utc: Optional[str] = None
    updated_at_utc: Optional[str] = None


class Interval(NamedTuple):
    """Occupied or free minutes of one calendar date, end exclusive."""
    start: int
    end: int
    task_id: Optional[int] = None


# ----------------- Group ----------------
@dataclass
class GroupMember:
    user_id: int
    role: str  # 'owner' | 'member'
    joined_at_utc: Optional[str] = None
    email: Optional[str] = None


@dataclass
class Group:
    group_id: int
    name: str
    code: str
    created_by: int
    created_at_utc: Optional[str] = None
    members: List[GroupMember] = field(default_factory=list)

    @property
    def member_ids(self) -> List[int]:
        return [m.user_id for m in self.members]


@dataclass
class GroupReminder:
    """Canonical copy kept under the group; members work on their own fan-out copies."""
    group_reminder_id: int
    group_id: int
    created_by: int
    title: str
    due_date: Optional[str] = None
    estimate_minutes: Optional[int] = None
    category: str = ""
    priority: int = DEFAULT_PRIORITY
    created_at_utc: Optional[str] = None


# ----------------- User ----------------
@dataclass
class UserInfo:
    user_id: int
    user_name: Optional[str] = None
    email: Optional[str] = None
    timezone: Optional[str] = None  # IANA name, e.g. "Europe/Berlin"
    created_at_utc: Optional[str] = None
