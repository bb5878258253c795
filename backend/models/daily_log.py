import json
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Text, Date, DateTime, ForeignKey, UniqueConstraint
from database import Base


class DailyLog(Base):
    __tablename__ = "daily_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    sprint_id = Column(Integer, ForeignKey("sprints.id", ondelete="SET NULL"), nullable=True)
    date = Column(Date, nullable=False)
    energy = Column(Integer, nullable=False)  # 1-5
    sleep_hours = Column(Integer, nullable=True)
    units = Column(Text, nullable=True)  # JSON object, e.g. {"thesis": 2, "admin": 1}
    win = Column(Text, nullable=True)
    drain = Column(Text, nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_log_user_date"),
    )

    @property
    def unit_map(self) -> dict[str, int]:
        return json.loads(self.units) if self.units else {}
