"""
review_service.py — Weekly / monthly / sprint reviews
Fetches through the ledger and daily-log services, then runs the same
summarize → score → alerts pipeline for every surface so a number shown on
the dashboard is the number shown in the review.
"""

import calendar
from dataclasses import asdict
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from errors import NotFoundError
from services import schedule
from services.alert_service import generate_alerts, is_critical_alert
from services.cache_service import topic_cache
from services.daily_log_service import DailyLogService
from services.promise_log_service import PromiseLogService
from services.scoring_service import summarize
from services.sprint_goal_service import SprintGoalService, to_promise_defs
from services.sprint_service import SprintService


class ReviewService:
    def __init__(self, db: Session, cache=None):
        cache = cache if cache is not None else topic_cache
        self.ledger = PromiseLogService(db, cache)
        self.goals = SprintGoalService(db, cache)
        self.daily_logs = DailyLogService(db, cache)
        self.sprints = SprintService(db, cache)

    def _promise_defs(self, sprint, user_id: int):
        goals = self.goals.get_goals(sprint.id, user_id)
        return to_promise_defs(goals, sprint.start_date, sprint.end_date)

    def _review(self, user_id: int, promise_defs, start: date, end: date) -> dict:
        as_of = schedule.today()
        # an in-progress period is scored up to today only
        effective_end = min(end, as_of)
        promise_ids = {p.id for p in promise_defs}

        logs = [
            l for l in self.ledger.get_logs_for_date_range(user_id, start, effective_end)
            if l.promise_id in promise_ids
        ]
        daily = self.daily_logs.get_range(user_id, start, effective_end)

        summary = summarize(logs, promise_defs, start, effective_end, daily_logs=daily)
        alerts = generate_alerts(daily, summary, as_of=as_of)
        return {
            "period_start": start,
            "period_end": end,
            "summary": asdict(summary),
            "integrity": {"score": summary.integrity_score, "band": summary.integrity_band},
            "alerts": alerts,
            "critical_alerts": [a for a in alerts if is_critical_alert(a)],
        }

    def weekly_review(self, user_id: int, week_of: Optional[date] = None, sprint_id: Optional[int] = None) -> dict:
        if sprint_id is not None:
            sprint = self.sprints.get_owned(sprint_id, user_id)
        else:
            sprint = self.sprints.get_active(user_id)
            if sprint is None:
                raise NotFoundError("Active sprint")
        start, end = schedule.week_bounds(week_of or schedule.today())
        result = self._review(user_id, self._promise_defs(sprint, user_id), start, end)
        result["sprint_id"] = sprint.id
        return result

    def monthly_review(self, user_id: int, year: int, month: int) -> dict:
        start = date(year, month, 1)
        end = date(year, month, calendar.monthrange(year, month)[1])
        sprints = self.sprints.list_overlapping(user_id, start, end)
        promise_defs = [p for s in sprints for p in self._promise_defs(s, user_id)]
        result = self._review(user_id, promise_defs, start, end)
        result["sprint_ids"] = [s.id for s in sprints]
        return result

    def sprint_review(self, user_id: int, sprint_id: int) -> dict:
        sprint = self.sprints.get_owned(sprint_id, user_id)
        result = self._review(user_id, self._promise_defs(sprint, user_id), sprint.start_date, sprint.end_date)
        result["sprint_id"] = sprint.id
        return result
