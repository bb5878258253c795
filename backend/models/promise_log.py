from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Date, DateTime, Boolean, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from database import Base


class PromiseLog(Base):
    __tablename__ = "promise_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    promise_id = Column(Integer, ForeignKey("promises.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    daily_log_id = Column(Integer, ForeignKey("daily_logs.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    promise = relationship("Promise", back_populates="logs")

    __table_args__ = (
        UniqueConstraint("promise_id", "date", name="uq_promise_log_date"),
        Index("ix_promise_log_user_date", "user_id", "date"),
        {"sqlite_autoincrement": True},
    )
