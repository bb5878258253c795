# Import all models so they register with SQLAlchemy Base.metadata
# This ensures Base.metadata.create_all() creates all tables

from models.user import User
from models.sprint import Sprint
from models.sprint_goal import SprintGoal
from models.promise import Promise
from models.daily_log import DailyLog
from models.promise_log import PromiseLog

__all__ = [
    "User",
    "Sprint",
    "SprintGoal",
    "Promise",
    "DailyLog",
    "PromiseLog",
]
