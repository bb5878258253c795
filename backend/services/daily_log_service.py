"""
daily_log_service.py — Daily check-ins
One entry per user per date carrying energy (1-5) and the units logged per
goal; the source of energy averages and motion/action units in summaries.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import upsert
from errors import ConsistencyError, ValidationError
from models.daily_log import DailyLog
from models.sprint import Sprint
from schemas import DailyLogUpsert
from services.cache_service import topic_cache, user_daily_logs_topic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyLogEntry:
    id: int
    date: date
    energy: int
    sprint_id: Optional[int] = None
    units: dict = field(default_factory=dict)

    @classmethod
    def from_model(cls, log: DailyLog) -> "DailyLogEntry":
        return cls(
            id=log.id,
            date=log.date,
            energy=log.energy,
            sprint_id=log.sprint_id,
            units=log.unit_map,
        )


class DailyLogService:
    def __init__(self, db: Session, cache=None):
        self.db = db
        self.cache = cache if cache is not None else topic_cache

    def _sprint_for(self, user_id: int, day: date) -> Optional[int]:
        row = (
            self.db.query(Sprint.id)
            .filter(
                Sprint.user_id == user_id,
                Sprint.start_date <= day,
                Sprint.end_date >= day,
            )
            .order_by(Sprint.active.desc(), Sprint.start_date.desc())
            .first()
        )
        return row[0] if row else None

    def upsert(self, user_id: int, data: DailyLogUpsert) -> DailyLogEntry:
        """Create or overwrite the user's check-in for data.date."""
        if any(v < 0 for v in data.units.values()):
            raise ValidationError("Units must not be negative", field="units")
        try:
            upsert(
                self.db,
                DailyLog,
                {
                    "user_id": user_id,
                    "date": data.date,
                    "sprint_id": self._sprint_for(user_id, data.date),
                    "energy": data.energy,
                    "sleep_hours": data.sleep_hours,
                    "units": json.dumps(data.units),
                    "win": data.win,
                    "drain": data.drain,
                    "note": data.note,
                    "updated_at": datetime.now(timezone.utc),
                },
                conflict_columns=["user_id", "date"],
                update_columns=["sprint_id", "energy", "sleep_hours", "units", "win", "drain", "note", "updated_at"],
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Daily log upsert failed for user {user_id} on {data.date}: {e}")
            raise ConsistencyError("Daily log could not be saved") from e

        self.cache.invalidate(user_daily_logs_topic(user_id))
        log = self.db.query(DailyLog).filter_by(user_id=user_id, date=data.date).one()
        return DailyLogEntry.from_model(log)

    def get_range(self, user_id: int, start: date, end: date) -> list[DailyLogEntry]:
        def load():
            logs = (
                self.db.query(DailyLog)
                .filter(
                    DailyLog.user_id == user_id,
                    DailyLog.date >= start,
                    DailyLog.date <= end,
                )
                .order_by(DailyLog.date.asc())
                .all()
            )
            return [DailyLogEntry.from_model(l) for l in logs]

        return self.cache.get(user_daily_logs_topic(user_id), load, key=(start, end))
