"""
alert_service.py — Rule-based diagnostics over a period
Each alert is "<TITLE>: <detail>". Rules run in a fixed order so the same
inputs always produce the same list. Titles containing CRITICAL or TRAP mark
an alert as critical; consumers match on those substrings.
Alerts are advisory and never block a write.
"""

from datetime import date
from typing import Optional

from services import schedule
from services.scoring_service import PeriodSummary

MIN_DAYS_LOGGED_PER_WEEK = 5
LOW_ENERGY_THRESHOLD = 3.0
MIN_LOGS_FOR_ENERGY_ALERT = 3
HIGH_NOMINAL_UNITS = 10
HIGH_NOMINAL_KEPT_RATIO = 0.8
AT_RISK_DAYS_LEFT = 2
NEAR_ZERO_RATIO = 0.1
MIN_WEEKS_FOR_TRAP = 2
SCOPE_OVERLOAD_RATIO = 0.5
SCOPE_OVERLOAD_GOALS = 2

CRITICAL_TAGS = ("CRITICAL", "TRAP")


def is_critical_alert(alert: str) -> bool:
    return any(tag in alert for tag in CRITICAL_TAGS)


def _at_risk(promise, as_of: date, summary: PeriodSummary) -> Optional[str]:
    if promise.type != schedule.PromiseType.WEEKLY or promise.week_target is None:
        return None
    week_start, week_end = schedule.week_bounds(summary.period_end)
    if not week_start <= as_of <= week_end:
        return None
    needed = promise.week_target - promise.week_count
    if needed <= 0:
        return None
    days_left = schedule.days_left_in_week(as_of)
    # today still counts as an opportunity
    if days_left <= AT_RISK_DAYS_LEFT or needed > days_left + 1:
        return (
            f"AT_RISK: \"{promise.text}\" is at {promise.week_count}/{promise.week_target} "
            f"this week with {days_left} days left."
        )
    return None


def generate_alerts(logs, summary: Optional[PeriodSummary], as_of: Optional[date] = None) -> list[str]:
    """
    logs: the period's daily log entries (date, energy).
    summary: the PeriodSummary for the same period.
    as_of: the day the review is looked at; defaults to the period end.
    """
    logs = list(logs or [])
    if summary is None:
        return ["NO_ENGAGEMENT: No logs recorded this period. Integrity starts with showing up."] if not logs else []

    alerts: list[str] = []
    as_of = as_of or summary.period_end
    days_logged = max(len({l.date for l in logs}), summary.days_logged)

    if days_logged == 0:
        alerts.append("NO_ENGAGEMENT: No logs recorded this period. Integrity starts with showing up.")
    elif summary.period_days >= 7 and days_logged < MIN_DAYS_LOGGED_PER_WEEK * (summary.period_days // 7):
        alerts.append(
            f"VISIBILITY_GAP: Only {days_logged} days logged this period. Integrity requires daily audits."
        )

    if summary.avg_energy and summary.avg_energy < LOW_ENERGY_THRESHOLD and len(logs) >= MIN_LOGS_FOR_ENERGY_ALERT:
        alerts.append(
            "CRITICAL_ENERGY_LEVEL: Your average energy is below baseline. Priority: RECOVERY."
        )

    if summary.total_units > 0 and summary.motion_units > summary.action_units:
        alerts.append(
            "SIMULATION_TRAP: Motion units exceed action units. You are planning more than executing."
        )

    high_output = (
        summary.total_units >= HIGH_NOMINAL_UNITS
        or (summary.promises_target > 0 and summary.kept_ratio >= HIGH_NOMINAL_KEPT_RATIO)
    )
    if (
        summary.energy_trend == "down"
        and summary.avg_energy
        and summary.avg_energy < LOW_ENERGY_THRESHOLD
        and high_output
    ):
        alerts.append(
            f"HONESTY_CHECK: Energy is trending down (avg {summary.avg_energy:.1f}) while "
            f"{summary.total_units} units and {summary.kept_ratio:.0%} of promises were logged. "
            "Check this is real progress, not simulation."
        )

    for promise in summary.promises:
        alert = _at_risk(promise, as_of, summary)
        if alert:
            alerts.append(alert)

    for promise in summary.promises:
        weeks = promise.week_ratios
        if len(weeks) >= MIN_WEEKS_FOR_TRAP and all(r <= NEAR_ZERO_RATIO for r in weeks):
            alerts.append(
                f"CRITICAL_TRAP: \"{promise.text}\" has stayed near zero ({promise.kept}/{promise.target}) "
                f"for {len(weeks)} weeks. Renegotiate it or cut it."
            )

    if days_logged > 0:
        missed = [g for g in summary.goals if g.target > 0 and g.ratio < SCOPE_OVERLOAD_RATIO]
        if len(missed) >= SCOPE_OVERLOAD_GOALS:
            alerts.append(
                f"SCOPE_OVERLOAD: {len(missed)} goals are under 50% of target. Recommended: CUT_SCOPE."
            )

    return alerts
