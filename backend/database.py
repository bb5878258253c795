import os
import logging

from sqlalchemy import create_engine, event, select
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from sqlalchemy.dialects import postgresql, sqlite

from config import DATABASE_URL, LOG_LEVEL

logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)


def enable_sqlite_foreign_keys(bind):
    """SQLite ignores ON DELETE CASCADE unless the pragma is set per connection."""
    @event.listens_for(bind, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Only use connect_args if we are using SQLite
engine_args = {}
if DATABASE_URL.startswith("sqlite"):
    engine_args["connect_args"] = {"check_same_thread": False}
else:
    # Production settings for PostgreSQL
    engine_args.update({
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,
    })

try:
    engine = create_engine(
        DATABASE_URL,
        **engine_args,
        echo=False,
    )
    if DATABASE_URL.startswith("sqlite"):
        enable_sqlite_foreign_keys(engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
except Exception as e:
    logger.error(f"Failed to create engine: {e}")
    raise e

Base = declarative_base()


def get_db():
    """FastAPI dependency — yields a database session and closes it after use."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create the data/ directory if it doesn't exist, then create all tables."""
    if DATABASE_URL.startswith("sqlite"):
        os.makedirs("data", exist_ok=True)

    # Import all models so they register with Base.metadata
    import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database initialized successfully.")


def upsert(db: Session, model, values: dict, conflict_columns: list[str], update_columns: list[str]):
    """
    Insert a row or overwrite `update_columns` when the unique key in
    `conflict_columns` already exists, as one statement.

    Engines without INSERT .. ON CONFLICT get a locked read followed by a
    write; callers must run that inside their own transaction.
    """
    dialect = db.get_bind().dialect.name
    if dialect in ("sqlite", "postgresql"):
        insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
        stmt = insert(model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=conflict_columns,
            set_={col: stmt.excluded[col] for col in update_columns},
        )
        db.execute(stmt)
        return

    key = [getattr(model, col) == values[col] for col in conflict_columns]
    existing = db.execute(select(model).where(*key).with_for_update()).scalar_one_or_none()
    if existing is not None:
        for col in update_columns:
            setattr(existing, col, values[col])
    else:
        db.add(model(**values))
    db.flush()
