"""
promise_log_service.py — Completion ledger
One record per (promise, calendar date). Writes are idempotent upserts on that
natural key and are only accepted from the user who owns the promise's sprint.
Reads go through the topic cache and return detached snapshots.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import upsert
from errors import AuthorizationError, CommitmentError, ConsistencyError, NotFoundError
from models.daily_log import DailyLog
from models.promise import Promise
from models.promise_log import PromiseLog
from models.sprint import Sprint
from services import schedule
from services.cache_service import (
    topic_cache,
    promise_logs_topic,
    sprint_logs_topic,
    user_promise_logs_topic,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromiseLogEntry:
    promise_id: int
    date: date
    user_id: int
    completed: bool
    daily_log_id: Optional[int] = None

    @classmethod
    def from_model(cls, log: PromiseLog) -> "PromiseLogEntry":
        return cls(
            promise_id=log.promise_id,
            date=log.date,
            user_id=log.user_id,
            completed=bool(log.completed),
            daily_log_id=log.daily_log_id,
        )


class PromiseLogService:
    def __init__(self, db: Session, cache=None):
        self.db = db
        self.cache = cache if cache is not None else topic_cache

    # ------------------------------------------------------------------
    def _owned_promise(self, promise_id: int, user_id: int) -> tuple[Promise, int]:
        """Return (promise, owner_id) or raise; the join goes promise → sprint."""
        row = (
            self.db.query(Promise, Sprint.user_id)
            .join(Sprint, Sprint.id == Promise.sprint_id)
            .filter(Promise.id == promise_id)
            .first()
        )
        if row is None:
            raise NotFoundError("Promise", promise_id)
        promise, owner_id = row
        if owner_id != user_id:
            raise AuthorizationError("Promise", promise_id)
        return promise, owner_id

    def _invalidate(self, user_id: int, sprint_id: int, promise_id: int):
        self.cache.invalidate(
            user_promise_logs_topic(user_id),
            sprint_logs_topic(sprint_id),
            promise_logs_topic(promise_id),
        )

    # ------------------------------------------------------------------
    def log_completion(
        self,
        promise_id: int,
        day: date,
        completed: bool,
        user_id: int,
        daily_log_id: Optional[int] = None,
    ) -> PromiseLogEntry:
        """Record done / not-done for one promise on one date, overwriting any earlier entry."""
        try:
            promise, _ = self._owned_promise(promise_id, user_id)
            sprint_id = promise.sprint_id

            if daily_log_id is not None:
                exists = (
                    self.db.query(DailyLog.id)
                    .filter_by(id=daily_log_id, user_id=user_id)
                    .first()
                )
                if exists is None:
                    raise NotFoundError("Daily log", daily_log_id)

            upsert(
                self.db,
                PromiseLog,
                {
                    "promise_id": promise_id,
                    "date": day,
                    "user_id": user_id,
                    "completed": completed,
                    "daily_log_id": daily_log_id,
                },
                conflict_columns=["promise_id", "date"],
                update_columns=["completed", "daily_log_id"],
            )
            self.db.commit()
        except CommitmentError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Completion log failed for promise {promise_id} on {day}: {e}")
            raise ConsistencyError("Completion could not be recorded") from e

        self._invalidate(user_id, sprint_id, promise_id)
        logger.info(f"Promise {promise_id} logged completed={completed} for {day}")
        return PromiseLogEntry(promise_id, day, user_id, completed, daily_log_id)

    # ------------------------------------------------------------------
    def get_logs_for_week(self, promise_id: int, week_start: date, user_id: Optional[int] = None) -> list[PromiseLogEntry]:
        """Logs for the Monday–Sunday week containing `week_start`."""
        if user_id is not None:
            self._owned_promise(promise_id, user_id)
        start, end = schedule.week_bounds(week_start)

        def load():
            logs = (
                self.db.query(PromiseLog)
                .filter(
                    PromiseLog.promise_id == promise_id,
                    PromiseLog.date >= start,
                    PromiseLog.date <= end,
                )
                .order_by(PromiseLog.date.asc())
                .all()
            )
            return [PromiseLogEntry.from_model(l) for l in logs]

        return self.cache.get(promise_logs_topic(promise_id), load, key=("week", start))

    # ------------------------------------------------------------------
    def get_logs_for_sprint(self, sprint_id: int, user_id: Optional[int] = None) -> list[PromiseLogEntry]:
        """All logs under a sprint, fetched with one IN query."""
        if user_id is not None:
            owned = self.db.query(Sprint.id).filter_by(id=sprint_id, user_id=user_id).first()
            if owned is None:
                raise NotFoundError("Sprint", sprint_id)

        def load():
            promise_ids = [
                pid for (pid,) in self.db.query(Promise.id).filter_by(sprint_id=sprint_id).all()
            ]
            if not promise_ids:
                return []
            logs = (
                self.db.query(PromiseLog)
                .filter(PromiseLog.promise_id.in_(promise_ids))
                .order_by(PromiseLog.date.asc(), PromiseLog.promise_id.asc())
                .all()
            )
            return [PromiseLogEntry.from_model(l) for l in logs]

        return self.cache.get(sprint_logs_topic(sprint_id), load)

    # ------------------------------------------------------------------
    def get_logs_for_date_range(self, user_id: int, start: date, end: date) -> list[PromiseLogEntry]:
        """User-scoped logs in [start, end]; a review period may span sprints."""
        def load():
            logs = (
                self.db.query(PromiseLog)
                .filter(
                    PromiseLog.user_id == user_id,
                    PromiseLog.date >= start,
                    PromiseLog.date <= end,
                )
                .order_by(PromiseLog.date.asc(), PromiseLog.promise_id.asc())
                .all()
            )
            return [PromiseLogEntry.from_model(l) for l in logs]

        return self.cache.get(user_promise_logs_topic(user_id), load, key=(start, end))

    # ------------------------------------------------------------------
    def delete_today_log(self, promise_id: int, user_id: int) -> int:
        """
        Drop today's entry for a promise whose schedule just changed.
        Runs inside the caller's transaction: flushes, never commits.
        """
        deleted = (
            self.db.query(PromiseLog)
            .filter(
                PromiseLog.promise_id == promise_id,
                PromiseLog.user_id == user_id,
                PromiseLog.date == schedule.today(),
            )
            .delete(synchronize_session=False)
        )
        if deleted:
            logger.info(f"Invalidated today's log for promise {promise_id}")
        return deleted
