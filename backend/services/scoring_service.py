"""
scoring_service.py — Period summaries & integrity score
Pure functions over already-fetched data: promise-kept ratios per promise,
per goal, per calendar week, per day and per period, energy average and trend,
motion vs. action units, streaks, and the 0-100 integrity score with its
display bands.
Nothing here touches the database or the cache, and nothing here raises on
empty input.
"""

import json
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from services import schedule

# Units logged against a goal on one day: exactly 1 is motion (planning,
# admin), 2 or more is action (verified work).
MOTION_UNIT_VALUE = 1
ACTION_UNIT_THRESHOLD = 2

# Display bands. Every surface classifies through classify_integrity().
HIGH_INTEGRITY_THRESHOLD = 80
MODERATE_INTEGRITY_THRESHOLD = 50

ENERGY_TREND_DELTA = 0.5


@dataclass
class PromiseSummary:
    promise_id: int
    goal_id: int
    goal_text: str
    text: str
    type: str
    kept: int = 0
    target: int = 0
    ratio: float = 0.0
    week_ratios: list = field(default_factory=list)
    # weekly promises: progress in the week containing period_end
    week_count: Optional[int] = None
    week_target: Optional[int] = None


@dataclass
class GoalSummary:
    goal_id: int
    goal_text: str
    promises: list = field(default_factory=list)
    kept: int = 0
    target: int = 0
    ratio: float = 0.0


@dataclass
class WeekSummary:
    """One Monday-Sunday week of the period, clipped to the period bounds."""
    week_start: date
    week_end: date
    kept: int = 0
    committed: int = 0
    ratio: float = 0.0


@dataclass
class DaySummary:
    date: date
    has_log: bool = False
    # daily promises due that day
    kept: int = 0
    committed: int = 0
    ratio: float = 0.0
    # weekly promises are committed per week; completions are only counted here
    weekly_done: int = 0


@dataclass
class PeriodSummary:
    period_start: date
    period_end: date
    goals: list = field(default_factory=list)
    promises_kept: int = 0
    promises_target: int = 0
    kept_ratio: float = 0.0
    avg_energy: float = 0.0
    energy_trend: str = "stable"
    days_logged: int = 0
    motion_units: int = 0
    action_units: int = 0
    total_units: int = 0
    longest_streak: int = 0
    current_streak: int = 0
    integrity_score: int = 100
    integrity_band: str = "high"
    weeks: list = field(default_factory=list)
    days: list = field(default_factory=list)

    @property
    def promises(self) -> list:
        return [p for g in self.goals for p in g.promises]

    @property
    def period_days(self) -> int:
        return max(0, (self.period_end - self.period_start).days + 1)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _ratio(kept: int, target: int) -> float:
    return kept / target if target > 0 else 0.0


# ----------------------------------------------------------------------
# Integrity score
# ----------------------------------------------------------------------

def calculate_integrity_score(motion_units: float, action_units: float) -> int:
    """
    0-100 from the share of action in all logged units. An 80/20
    action/motion split or better scores 90+, motion outweighing action
    drops below 60. No units at all is treated as nothing to hold against
    the user (100).
    """
    motion = max(0.0, float(motion_units or 0))
    action = max(0.0, float(action_units or 0))
    total = motion + action
    if total == 0:
        return 100

    action_ratio = action / total
    if action_ratio >= 0.8:
        score = 90 + (action_ratio - 0.8) * 50
    elif action_ratio >= 0.5:
        score = 60 + (action_ratio - 0.5) * 100
    else:
        score = action_ratio * 120

    return min(100, max(0, _round_half_up(score)))


def classify_integrity(score: int) -> str:
    if score >= HIGH_INTEGRITY_THRESHOLD:
        return "high"
    if score >= MODERATE_INTEGRITY_THRESHOLD:
        return "moderate"
    return "warning"


# ----------------------------------------------------------------------
# Streaks
# ----------------------------------------------------------------------

def longest_streak(dates: Iterable[date]) -> int:
    ordered = sorted(set(dates))
    if not ordered:
        return 0
    best = current = 1
    for prev, nxt in zip(ordered, ordered[1:]):
        if (nxt - prev).days == 1:
            current += 1
            best = max(best, current)
        else:
            current = 1
    return best


def current_streak(dates: Iterable[date], as_of: date) -> int:
    """Count backward consecutive days. 1 day grace: today not logged yet doesn't break it."""
    logged = set(dates)
    curr = as_of if as_of in logged else as_of - timedelta(days=1)
    streak = 0
    while curr in logged:
        streak += 1
        curr -= timedelta(days=1)
    return streak


# ----------------------------------------------------------------------
# Units & energy
# ----------------------------------------------------------------------

def _unit_values(daily_log) -> list[int]:
    units = getattr(daily_log, "units", None)
    if isinstance(units, str):
        units = json.loads(units) if units else {}
    if not units:
        return []
    values = units.values() if isinstance(units, dict) else units
    return [int(v) for v in values if v]


def split_units(daily_logs) -> tuple[int, int, int]:
    """(motion, action, total) units across daily logs."""
    motion = action = total = 0
    for log in daily_logs:
        for v in _unit_values(log):
            total += v
            if v == MOTION_UNIT_VALUE:
                motion += v
            elif v >= ACTION_UNIT_THRESHOLD:
                action += v
    return motion, action, total


def energy_trend(energies: list[float]) -> str:
    """Compare the later half of the period against the earlier half."""
    if len(energies) < 4:
        return "stable"
    half = len(energies) // 2
    first = sum(energies[:half]) / half
    second = sum(energies[-half:]) / half
    if second - first <= -ENERGY_TREND_DELTA:
        return "down"
    if second - first >= ENERGY_TREND_DELTA:
        return "up"
    return "stable"


# ----------------------------------------------------------------------
# Per-promise accounting
# ----------------------------------------------------------------------

def _active_window(promise, period_start: date, period_end: date) -> tuple[date, date]:
    start = max(period_start, promise.active_from) if getattr(promise, "active_from", None) else period_start
    end = min(period_end, promise.active_to) if getattr(promise, "active_to", None) else period_end
    return start, end


def _summarize_promise(promise, logs: list, period_start: date, period_end: date, weeks=None, days=None) -> PromiseSummary:
    """
    Kept vs. target for one promise, week by week. When `weeks` / `days`
    (dicts keyed by calendar week start / date) are given, the same counts
    are added to them.
    """
    summary = PromiseSummary(
        promise_id=promise.id,
        goal_id=promise.goal_id,
        goal_text=promise.goal_text,
        text=promise.text,
        type=str(getattr(promise.type, "value", promise.type)),
    )
    start, end = _active_window(promise, period_start, period_end)
    if end < start:
        return summary

    completed = {log.date for log in logs if log.completed and start <= log.date <= end}

    for week_start, week_end in schedule.calendar_weeks(start, end):
        lo, hi = max(week_start, start), min(week_end, end)
        if promise.type == schedule.PromiseType.WEEKLY:
            overlap = (hi - lo).days + 1
            full = promise.weekly_target or 1
            target = full if overlap == 7 else max(1, _round_half_up(full * overlap / 7))
            done = sorted(d for d in completed if lo <= d <= hi)
            kept = min(len(done), target)
            if days is not None:
                for d in done:
                    days[d].weekly_done += 1
        else:
            due = [d for d in schedule.iter_days(lo, hi) if schedule.is_due(promise, d)]
            target = len(due)
            kept = sum(1 for d in due if d in completed)
            if days is not None:
                for d in due:
                    days[d].committed += 1
                    if d in completed:
                        days[d].kept += 1
        if target == 0:
            continue
        summary.kept += kept
        summary.target += target
        summary.week_ratios.append(round(_ratio(kept, target), 4))
        if weeks is not None:
            weeks[week_start].kept += kept
            weeks[week_start].committed += target

    summary.ratio = _ratio(summary.kept, summary.target)

    if promise.type == schedule.PromiseType.WEEKLY:
        progress = schedule.weekly_progress(
            [log for log in logs if log.date <= end], promise.weekly_target, end
        )
        summary.week_count = progress.current
        summary.week_target = progress.target

    return summary


# ----------------------------------------------------------------------
# Period summary
# ----------------------------------------------------------------------

def summarize(promise_logs, promises, period_start: date, period_end: date, daily_logs=None) -> PeriodSummary:
    """
    Summarize one period (a week, a month, a whole sprint).

    promise_logs: entries with promise_id, date, completed.
    promises: PromiseDef-like objects (id, goal_id, goal_text, text, type,
        schedule_days, weekly_target, optional active_from / active_to).
    daily_logs: optional entries with date, energy and a units map.
    """
    summary = PeriodSummary(period_start=period_start, period_end=period_end)
    if period_end < period_start:
        return summary

    promise_logs = [l for l in (promise_logs or []) if period_start <= l.date <= period_end]
    daily_logs = sorted(
        (l for l in (daily_logs or []) if period_start <= l.date <= period_end),
        key=lambda l: l.date,
    )

    logs_by_promise: dict = {}
    for log in promise_logs:
        logs_by_promise.setdefault(log.promise_id, []).append(log)

    weeks = {
        week_start: WeekSummary(week_start=max(week_start, period_start), week_end=min(week_end, period_end))
        for week_start, week_end in schedule.calendar_weeks(period_start, period_end)
    }
    days = {d: DaySummary(date=d) for d in schedule.iter_days(period_start, period_end)}

    goals: dict = {}
    for promise in promises or []:
        ps = _summarize_promise(
            promise, logs_by_promise.get(promise.id, []), period_start, period_end, weeks=weeks, days=days
        )
        goal = goals.get(promise.goal_id)
        if goal is None:
            goal = goals[promise.goal_id] = GoalSummary(goal_id=promise.goal_id, goal_text=promise.goal_text)
        goal.promises.append(ps)
        goal.kept += ps.kept
        goal.target += ps.target

    for goal in goals.values():
        goal.ratio = _ratio(goal.kept, goal.target)
    summary.goals = list(goals.values())
    summary.promises_kept = sum(g.kept for g in summary.goals)
    summary.promises_target = sum(g.target for g in summary.goals)
    summary.kept_ratio = _ratio(summary.promises_kept, summary.promises_target)

    for week in weeks.values():
        week.ratio = round(_ratio(week.kept, week.committed), 4)
    logged_days = {l.date for l in daily_logs}
    for day in days.values():
        day.has_log = day.date in logged_days
        day.ratio = round(_ratio(day.kept, day.committed), 4)
    summary.weeks = list(weeks.values())
    summary.days = list(days.values())

    energies = [l.energy for l in daily_logs if getattr(l, "energy", None) is not None]
    summary.avg_energy = round(sum(energies) / len(energies), 2) if energies else 0.0
    summary.energy_trend = energy_trend(energies)

    summary.motion_units, summary.action_units, summary.total_units = split_units(daily_logs)
    summary.integrity_score = calculate_integrity_score(summary.motion_units, summary.action_units)
    summary.integrity_band = classify_integrity(summary.integrity_score)

    engaged = {l.date for l in daily_logs} | {l.date for l in promise_logs}
    summary.days_logged = len(engaged)
    summary.longest_streak = longest_streak(engaged)
    summary.current_streak = current_streak(engaged, period_end)

    return summary
