from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base


class SprintGoal(Base):
    __tablename__ = "sprint_goals"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = Column(Integer, primary_key=True, autoincrement=True)
    sprint_id = Column(Integer, ForeignKey("sprints.id", ondelete="CASCADE"), nullable=False, index=True)
    goal_id = Column(String(100), nullable=True)  # reference to the longer-term objective
    goal_text = Column(Text, nullable=False)  # denormalized snapshot for display
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    sprint = relationship("Sprint", back_populates="goals")
    promises = relationship(
        "Promise",
        back_populates="sprint_goal",
        order_by="Promise.sort_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
