"""
Shared pytest fixtures for the taskboard backend.

Fixtures:
- test_db: a fresh in-memory SQLite schema per test
- client / override_db: the app wired to test_db
- headers_for and the *_headers fixtures: bearer tokens for test users
- admin_user, regular_user, another_user, make_user, project, task
"""

import os
import sys
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Generator

# Must be set before main/auth.security are imported
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ["AUTO_INIT_DB"] = "false"
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, get_db
from main import app
import models
from auth.routes import token_for
from auth.security import hash_password
from services import projects as project_service
from services.users import assign_role

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

# SQLite in-memory database for fast testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """
    Fresh in-memory database per test. StaticPool keeps the single connection
    alive so the app threads and the test share one database.
    """
    logger.debug("Creating test database")

    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
        logger.debug("Test database cleaned up")


@pytest.fixture(scope="function")
def override_db(test_db: Session) -> Generator[None, None, None]:
    """Route the app's get_db dependency to the test session."""
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(override_db) -> Generator[TestClient, None, None]:
    """
    TestClient over the app, with get_db pointed at test_db.
    """
    with TestClient(app) as test_client:
        yield test_client


def _create_user(db: Session, username: str, email: str, password: str) -> models.User:
    user = models.User(username=username, email=email, password_hash=hash_password(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created user {username} with ID: {user.id}")
    return user


@pytest.fixture(scope="function")
def admin_user(test_db: Session) -> models.User:
    """
    User holding the Admin role.
    """
    logger.debug("Creating admin user")
    user = _create_user(test_db, "Admin", "admin@test.com", "admin12345")
    assign_role(test_db, user, models.ADMIN_ROLE)
    test_db.commit()
    return user


@pytest.fixture(scope="function")
def regular_user(test_db: Session) -> models.User:
    return _create_user(test_db, "Regular", "user@test.com", "user12345")


@pytest.fixture(scope="function")
def another_user(test_db: Session) -> models.User:
    """
    Second plain user, unrelated to the test project.
    """
    return _create_user(test_db, "Another", "another@test.com", "another12345")


@pytest.fixture(scope="function")
def make_user(test_db: Session) -> Callable[..., models.User]:
    """Factory for additional users: make_user("carol")."""
    def _make(username: str, password: str = "password123") -> models.User:
        return _create_user(test_db, username, f"{username.lower()}@test.com", password)
    return _make


@pytest.fixture(scope="function")
def headers_for() -> Callable[[models.User], Dict[str, str]]:
    """Build authorization headers for any user."""
    def _headers(user: models.User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user)}"}
    return _headers


@pytest.fixture(scope="function")
def admin_headers(admin_user: models.User, headers_for) -> Dict[str, str]:
    return headers_for(admin_user)


@pytest.fixture(scope="function")
def user_headers(regular_user: models.User, headers_for) -> Dict[str, str]:
    """
    Bearer headers for regular_user, the owner of the project fixture.
    """
    return headers_for(regular_user)


@pytest.fixture(scope="function")
def another_user_headers(another_user: models.User, headers_for) -> Dict[str, str]:
    return headers_for(another_user)


@pytest.fixture(scope="function")
def project(test_db: Session, admin_user: models.User, regular_user: models.User) -> models.Project:
    """
    A project owned by regular_user; regular_user and the admin hold grants.
    """
    logger.debug("Creating test project")
    return project_service.create_project(test_db, regular_user.id, "Test Project", "A project for testing")


@pytest.fixture(scope="function")
def task(test_db: Session, project: models.Project, regular_user: models.User) -> models.Task:
    """
    A task in the test project assigned to regular_user, due tomorrow.
    """
    task = models.Task(
        title="Test Task",
        description="A task for testing",
        status=models.TaskStatus.todo,
        due_date=datetime.now(timezone.utc) + timedelta(days=1),
        project_id=project.id,
        assigned_user_id=regular_user.id,
    )
    test_db.add(task)
    test_db.commit()
    test_db.refresh(task)
    logger.info(f"Created test task with ID: {task.id}")
    return task
