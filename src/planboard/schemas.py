from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from planboard.datamodel import DEFAULT_PRIORITY, TaskCategory
from planboard.scheduling.timecalc import to_minutes
from planboard.utils import parse_date


class ReminderIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1)
    due_date: Optional[Union[datetime, date, str]] = None
    estimate_minutes: Optional[int] = Field(default=None, gt=0)
    category: str = ""
    priority: int = Field(default=DEFAULT_PRIORITY, ge=1, le=5)


class GroupReminderIn(ReminderIn):
    group_id: int


class TaskIn(BaseModel):
    """Manual task entry. The end time, when given, must be later the same day."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    category: TaskCategory = TaskCategory.STUDY
    date: str
    start_time: str
    end_time: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        parse_date(value)
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, value: Optional[str]) -> Optional[str]:
        if value:
            to_minutes(value)
        return value or None

    @model_validator(mode="after")
    def _check_order(self) -> "TaskIn":
        if self.end_time is None:
            self.end_time = self.start_time
        elif to_minutes(self.end_time) <= to_minutes(self.start_time):
            raise ValueError("End time must be after start time")
        return self


class MoveTaskIn(BaseModel):
    date: str
    hour: int = Field(ge=0, le=23)

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        parse_date(value)
        return value


__all__ = ["ReminderIn", "GroupReminderIn", "TaskIn", "MoveTaskIn"]
