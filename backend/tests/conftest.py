"""
Pytest configuration and fixtures

Every test gets its own in-memory SQLite database with foreign keys switched
on, created from the models and dropped afterwards.
"""
import os
import sys
from datetime import date

import pytest

# Add the backend directory to the path so modules import as top-level names
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base, enable_sqlite_foreign_keys
from models import User
from schemas import SprintCreate
from services import schedule
from services.cache_service import NullCache, topic_cache
from services.sprint_service import SprintService

SPRINT_START = date(2024, 1, 1)  # a Monday
SPRINT_END = date(2024, 1, 14)


def default_goals():
    return [
        {
            "goal_id": "thesis",
            "goal_text": "Finish thesis draft",
            "promises": [
                {"text": "Write 500 words", "type": "daily", "schedule_days": [1, 2, 3, 4, 5]},
                {"text": "Gym", "type": "weekly", "weekly_target": 3},
            ],
        }
    ]


@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def _clear_topic_cache():
    """The shared cache outlives a test database; ids repeat between tests."""
    topic_cache.clear()
    yield
    topic_cache.clear()


@pytest.fixture
def freeze_today(monkeypatch):
    """Pin services.schedule.today() to a fixed date."""
    def _freeze(day: date):
        monkeypatch.setattr(schedule, "today", lambda: day)
        return day
    return _freeze


@pytest.fixture
def user(db_session):
    u = User(username="alice")
    db_session.add(u)
    db_session.commit()
    db_session.refresh(u)
    return u


@pytest.fixture
def other_user(db_session):
    u = User(username="bob")
    db_session.add(u)
    db_session.commit()
    db_session.refresh(u)
    return u


@pytest.fixture
def make_sprint(db_session):
    def _make(owner, goals=None, start=SPRINT_START, end=SPRINT_END, name="January sprint"):
        data = SprintCreate(
            name=name,
            start_date=start,
            end_date=end,
            goals=goals if goals is not None else default_goals(),
        )
        return SprintService(db_session, NullCache()).create(owner.id, data)
    return _make


@pytest.fixture
def sprint(user, make_sprint):
    return make_sprint(user)
