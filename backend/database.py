"""
Database engine and session management.

The engine is built from DATABASE_URL. Each request gets its own Session
through the get_db dependency; the session is rolled back if the request
fails before committing.
"""

import logging
import os

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./taskboard.db")
DB_ECHO = os.environ.get("DB_ECHO", "false").lower() in ("1", "true", "yes")

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # FastAPI runs sync endpoints in a thread pool
    connect_args["check_same_thread"] = False

engine = create_engine(DATABASE_URL, echo=DB_ECHO, connect_args=connect_args)


@event.listens_for(engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    if DATABASE_URL.startswith("sqlite"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a database session for a single request."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        logger.debug("Rolling back session after failed request")
        db.rollback()
        raise
    finally:
        db.close()
