"""
sprint_service.py — Sprint lifecycle
Creating a sprint together with its first goals, finding a user's sprints,
and moving a sprint's dates without orphaning logged history.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import CommitmentError, ConsistencyError, NotFoundError, ValidationError
from models.promise import Promise
from models.promise_log import PromiseLog
from models.sprint import Sprint
from schemas import SprintCreate
from services.cache_service import topic_cache, sprint_goals_topic, sprint_logs_topic
from services.sprint_goal_service import SprintGoalService

logger = logging.getLogger(__name__)


class SprintService:
    def __init__(self, db: Session, cache=None):
        self.db = db
        self.cache = cache if cache is not None else topic_cache

    def create(self, user_id: int, data: SprintCreate) -> Sprint:
        """New active sprint plus its goals, in one transaction."""
        if data.end_date < data.start_date:
            raise ValidationError("Sprint must end on or after its start date", field="end_date")
        try:
            self.db.query(Sprint).filter_by(user_id=user_id, active=True).update({"active": False})
            sprint = Sprint(
                user_id=user_id,
                name=data.name.strip(),
                start_date=data.start_date,
                end_date=data.end_date,
                active=True,
            )
            self.db.add(sprint)
            self.db.flush()
            SprintGoalService(self.db, self.cache).reconcile(sprint.id, user_id, data.goals, commit=False)
            self.db.commit()
        except CommitmentError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Sprint creation failed for user {user_id}: {e}", exc_info=True)
            raise ConsistencyError("Sprint could not be created") from e

        self.db.refresh(sprint)
        logger.info(f"Sprint {sprint.id} created for user {user_id}")
        return sprint

    def get_owned(self, sprint_id: int, user_id: int) -> Sprint:
        sprint = self.db.query(Sprint).filter_by(id=sprint_id, user_id=user_id).first()
        if sprint is None:
            raise NotFoundError("Sprint", sprint_id)
        return sprint

    def get_active(self, user_id: int) -> Optional[Sprint]:
        return (
            self.db.query(Sprint)
            .filter_by(user_id=user_id, active=True)
            .order_by(Sprint.start_date.desc())
            .first()
        )

    def list_overlapping(self, user_id: int, start: date, end: date) -> list[Sprint]:
        return (
            self.db.query(Sprint)
            .filter(
                Sprint.user_id == user_id,
                Sprint.start_date <= end,
                Sprint.end_date >= start,
            )
            .order_by(Sprint.start_date.asc())
            .all()
        )

    def update_dates(self, sprint_id: int, user_id: int, start: date, end: date) -> Sprint:
        """Move the date range; refuses a range that would leave logged days outside it."""
        if end < start:
            raise ValidationError("Sprint must end on or after its start date", field="end_date")
        try:
            sprint = (
                self.db.query(Sprint)
                .filter_by(id=sprint_id, user_id=user_id)
                .with_for_update()
                .first()
            )
            if sprint is None:
                raise NotFoundError("Sprint", sprint_id)

            first_log, last_log = (
                self.db.query(func.min(PromiseLog.date), func.max(PromiseLog.date))
                .join(Promise, Promise.id == PromiseLog.promise_id)
                .filter(Promise.sprint_id == sprint_id)
                .one()
            )
            if first_log is not None and (first_log < start or last_log > end):
                raise ValidationError(
                    f"Promises were logged between {first_log} and {last_log}; "
                    "the new dates must still cover them",
                    field="dates",
                )

            sprint.start_date = start
            sprint.end_date = end
            sprint.updated_at = datetime.now(timezone.utc)
            self.db.commit()
        except CommitmentError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            raise ConsistencyError("Sprint dates could not be updated") from e

        self.cache.invalidate(sprint_goals_topic(sprint_id), sprint_logs_topic(sprint_id))
        self.db.refresh(sprint)
        return sprint
