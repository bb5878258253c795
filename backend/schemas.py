"""
schemas.py — Request and response shapes shared by routes and services.
"""

import json
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PromiseInput(BaseModel):
    id: Optional[int] = None
    text: str
    # Left as a plain string: the reconciler reports bad types by promise name
    type: str
    schedule_days: Optional[list[int]] = None
    weekly_target: Optional[int] = None


class GoalInput(BaseModel):
    id: Optional[int] = None
    goal_id: Optional[str] = None
    goal_text: str
    promises: list[PromiseInput] = []


class ReconcileRequest(BaseModel):
    goals: list[GoalInput]


class SprintCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    start_date: date
    end_date: date
    goals: list[GoalInput]


class SprintDatesUpdate(BaseModel):
    start_date: date
    end_date: date


class PromiseLogCreate(BaseModel):
    completed: bool
    daily_log_id: Optional[int] = None


class DailyLogUpsert(BaseModel):
    date: date
    energy: int = Field(ge=1, le=5)
    sleep_hours: Optional[int] = Field(default=None, ge=0, le=24)
    units: dict[str, int] = {}
    win: Optional[str] = Field(default=None, max_length=500)
    drain: Optional[str] = Field(default=None, max_length=500)
    note: Optional[str] = Field(default=None, max_length=2000)


class PromiseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    sprint_goal_id: int
    sprint_id: int
    text: str
    type: str
    schedule_days: Optional[list[int]] = None
    weekly_target: Optional[int] = None
    sort_order: int

    @field_validator("schedule_days", mode="before")
    @classmethod
    def decode_schedule_days(cls, v):
        # stored as a JSON array in a text column
        if isinstance(v, str):
            return json.loads(v)
        return v


class GoalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    sprint_id: int
    goal_id: Optional[str] = None
    goal_text: str
    sort_order: int
    promises: list[PromiseOut] = []


class SprintOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    start_date: date
    end_date: date
    active: bool
