"""
schedule.py — How promises recur
Pure value types and date arithmetic: weekday indexing (0=Sunday), ISO week
bounds (Monday start), due-date evaluation and weekly target progress.
"""

import json
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Optional

from errors import ValidationError


class PromiseType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


@dataclass(frozen=True)
class PromiseDef:
    """Plain snapshot of a promise, detached from any session."""
    id: int
    goal_id: int
    goal_text: str
    text: str
    type: str
    schedule_days: Optional[tuple[int, ...]] = None
    weekly_target: Optional[int] = None
    active_from: Optional[date] = None
    active_to: Optional[date] = None


@dataclass(frozen=True)
class WeeklyProgress:
    current: int
    target: int
    ratio: float
    week_start: date
    week_end: date

    @property
    def satisfied(self) -> bool:
        return self.current >= self.target


def today() -> date:
    """Server-clock calendar date. Everything that means "today" calls this."""
    return datetime.now(timezone.utc).date()


def weekday_index(d: date) -> int:
    """0=Sunday, 1=Monday, ..., 6=Saturday."""
    return d.isoweekday() % 7


def week_bounds(d: date) -> tuple[date, date]:
    monday = d - timedelta(days=d.weekday())
    return monday, monday + timedelta(days=6)


def calendar_weeks(start: date, end: date) -> list[tuple[date, date]]:
    """Every Monday–Sunday week overlapping [start, end]."""
    weeks = []
    if end < start:
        return weeks
    current, _ = week_bounds(start)
    while current <= end:
        weeks.append((current, current + timedelta(days=6)))
        current += timedelta(days=7)
    return weeks


def days_left_in_week(d: date) -> int:
    """Days after `d` until Sunday: Monday=6 ... Sunday=0."""
    return 6 - d.weekday()


def iter_days(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def normalize_schedule_days(days: Optional[Iterable[int]]) -> Optional[list[int]]:
    if days is None:
        return None
    return sorted(set(days))


def encode_schedule_days(days: Optional[Iterable[int]]) -> Optional[str]:
    normalized = normalize_schedule_days(days)
    return json.dumps(normalized) if normalized is not None else None


def is_due(promise, d: date) -> bool:
    """
    Daily promises are due on their scheduled weekdays only. Weekly promises
    are eligible every day; whether the week is satisfied is a separate
    question answered by weekly_progress().
    """
    if promise.type == PromiseType.WEEKLY:
        return True
    days = promise.schedule_days
    if isinstance(days, str):
        days = json.loads(days)
    if not days:
        return False
    return weekday_index(d) in days


def weekly_progress(logs, weekly_target: int, reference: date) -> WeeklyProgress:
    """Completed logs inside the ISO week containing `reference`, against the target."""
    week_start, week_end = week_bounds(reference)
    current = sum(
        1 for log in logs
        if log.completed and week_start <= log.date <= week_end
    )
    target = max(1, weekly_target or 1)
    return WeeklyProgress(
        current=current,
        target=target,
        ratio=min(1.0, current / target),
        week_start=week_start,
        week_end=week_end,
    )


def is_week_satisfied(promise, logs, reference: date) -> bool:
    own = [log for log in logs if log.promise_id == promise.id]
    return weekly_progress(own, promise.weekly_target, reference).satisfied


def validate_promise_fields(text, promise_type, schedule_days, weekly_target, location: Optional[str] = None):
    """
    Type-specific invariants every persisted promise must satisfy.

    Errors name the promise by its text; a promise with no text is named by
    `location` (e.g. "goals[1].promises[0]") when the caller passes one.
    """
    label = (text or "").strip()
    if not label:
        if location:
            raise ValidationError(f"Promise text must not be empty at {location}", field=f"{location}.text")
        raise ValidationError("Promise text must not be empty", field="text")

    if promise_type not in (PromiseType.DAILY, PromiseType.WEEKLY):
        raise ValidationError(
            f"Promise \"{label}\" has unknown type '{promise_type}'", field=label
        )

    if promise_type == PromiseType.DAILY:
        if not schedule_days:
            raise ValidationError(
                f"Promise \"{label}\" has type 'daily' but no schedule_days specified",
                field=label,
            )
        if any(not isinstance(d, int) or d < 0 or d > 6 for d in schedule_days):
            raise ValidationError(
                f"Promise \"{label}\" has schedule_days outside 0-6", field=label
            )
    else:
        if weekly_target is None or weekly_target < 1:
            raise ValidationError(
                f"Promise \"{label}\" has type 'weekly' but no valid weekly_target specified",
                field=label,
            )
