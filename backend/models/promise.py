import json
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base


class Promise(Base):
    __tablename__ = "promises"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = Column(Integer, primary_key=True, autoincrement=True)
    sprint_goal_id = Column(Integer, ForeignKey("sprint_goals.id", ondelete="CASCADE"), nullable=False, index=True)
    sprint_id = Column(Integer, ForeignKey("sprints.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)  # "Research thesis 30 min"
    type = Column(String(20), nullable=False)  # daily/weekly
    schedule_days = Column(Text, nullable=True)  # JSON array for daily, 0=Sun..6=Sat
    weekly_target = Column(Integer, nullable=True)  # for weekly, e.g. 3 for "gym 3x/week"
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    sprint_goal = relationship("SprintGoal", back_populates="promises")
    logs = relationship("PromiseLog", back_populates="promise", passive_deletes=True)

    @property
    def schedule_day_list(self) -> list[int] | None:
        if self.schedule_days is None:
            return None
        return json.loads(self.schedule_days)
