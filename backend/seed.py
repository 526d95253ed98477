"""
Startup initialization: table creation, the admin account, and demo data.

Idempotent. The admin role and account are ensured on every start; demo
users, projects, tasks and a comment are only added to a database that has
no projects yet.
"""

import logging
import os
import sys
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from auth.security import hash_password, is_production_like
from database import Base
from models import ADMIN_ROLE, Comment, Project, ProjectVisibility, Task, TaskStatus, User
from services.users import assign_role, ensure_role

logger = logging.getLogger(__name__)

ADMIN_USERNAME = "Admin"
ADMIN_EMAIL = "admin@example.com"
DEFAULT_ADMIN_PASSWORD = "AdminPassword123!"

DEMO_USERS = [
    ("Marty", "marty@example.com", "MartyPassword123!"),
    ("RandomUser", "randomuser@example.com", "RandomPassword123!"),
]

# (owner username, name, description, [(title, description, status, due date)])
DEMO_PROJECTS = [
    ("Marty", "Bachelor project", "Plan for bachelor-project spring 26.", [
        ("Have meeting with client",
         "Before starting the project, define task parameters and expectations with the client.",
         TaskStatus.in_progress, datetime(2025, 11, 7, tzinfo=timezone.utc)),
        ("Planning meeting with student",
         "A meeting between all students working on the project, to define roles and a plan of action.",
         TaskStatus.todo, datetime(2026, 1, 10, tzinfo=timezone.utc)),
    ]),
    ("RandomUser", "Fix up house", "Plan for house remodel", [
        ("Close doorframe", "Finish closing the doorframe in the guest bedroom.",
         TaskStatus.in_progress, datetime(2026, 1, 15, tzinfo=timezone.utc)),
        ("Paint wall", "Paint the walls in the guest bedroom.",
         TaskStatus.todo, datetime(2026, 1, 20, tzinfo=timezone.utc)),
    ]),
    ("RandomUser", "Turn into Batman", "Plan to become the Dark Knight", [
        ("Become handsome", "Become drop dead gorgeous",
         TaskStatus.done, datetime(2025, 12, 31, tzinfo=timezone.utc)),
        ("Become rich", "Somehow, become very rich. Maybe rob a bank?",
         TaskStatus.todo, datetime(2026, 3, 1, tzinfo=timezone.utc)),
    ]),
]


def _admin_password() -> str:
    admin_password = os.getenv("ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD)
    if is_production_like() and (not admin_password.strip() or admin_password == DEFAULT_ADMIN_PASSWORD):
        logger.error(
            "STARTUP FAILED: a non-default ADMIN_PASSWORD is required in production/staging. "
            "Example: ADMIN_PASSWORD=$(openssl rand -base64 32)"
        )
        sys.exit(1)
    if admin_password == DEFAULT_ADMIN_PASSWORD:
        logger.warning(
            f"Admin user uses the DEFAULT password. Login: {ADMIN_USERNAME} / {DEFAULT_ADMIN_PASSWORD}. "
            "Set ADMIN_PASSWORD for anything but local development."
        )
    return admin_password


def ensure_admin_user(db: Session) -> User:
    ensure_role(db, ADMIN_ROLE)
    admin = db.query(User).filter(User.username == ADMIN_USERNAME).first()
    if admin is None:
        admin = User(username=ADMIN_USERNAME, email=ADMIN_EMAIL, password_hash=hash_password(_admin_password()))
        db.add(admin)
        db.flush()
        logger.info(f"Admin user created (username: {ADMIN_USERNAME})")
    assign_role(db, admin, ADMIN_ROLE)
    db.commit()
    return admin


def seed_demo_data(db: Session, admin: User) -> None:
    if db.query(Project.id).first() is not None:
        logger.info("Projects already present, skipping demo data")
        return

    users = {}
    for username, email, password in DEMO_USERS:
        user = db.query(User).filter(User.username == username).first()
        if user is None:
            user = User(username=username, email=email, password_hash=hash_password(password))
            db.add(user)
            db.flush()
        users[username] = user

    first_task = None
    for owner_name, name, description, tasks in DEMO_PROJECTS:
        owner = users[owner_name]
        project = Project(name=name, description=description, owner_id=owner.id)
        db.add(project)
        db.flush()
        db.add_all([
            ProjectVisibility(project_id=project.id, user_id=owner.id),
            ProjectVisibility(project_id=project.id, user_id=admin.id),
        ])
        for title, task_description, status, due_date in tasks:
            task = Task(
                title=title,
                description=task_description,
                status=status,
                due_date=due_date,
                project_id=project.id,
                assigned_user_id=owner.id,
            )
            db.add(task)
            db.flush()
            if status == TaskStatus.done and first_task is None:
                first_task = task

    if first_task is not None:
        db.add(Comment(text="This is stupid", task_id=first_task.id, author_id=admin.id))

    db.commit()
    logger.info(f"Seeded {len(DEMO_USERS)} demo users and {len(DEMO_PROJECTS)} demo projects")


def init_database(db: Session) -> None:
    Base.metadata.create_all(bind=db.get_bind())
    admin = ensure_admin_user(db)
    seed_demo_data(db, admin)
