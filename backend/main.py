from fastapi import FastAPI, HTTPException, Depends, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List
import logging
import os

import uvicorn

from database import get_db
import models
import schemas
from errors import AuthorizationError, InvalidInputError, NotFoundError
from auth.routes import router as auth_router
from auth.dependencies import get_current_user, get_current_admin
from services import comments as comment_service
from services import notifications as notification_service
from services import projects as project_service
from services import tasks as task_service
from services import users as user_service
from services.visibility import can_view

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

AUTO_INIT_DB = os.environ.get("AUTO_INIT_DB", "true").lower() in ("1", "true", "yes")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "http://localhost:5000,http://127.0.0.1:5000").split(",")
    if origin.strip()
]

app = FastAPI(
    title="Taskboard API",
    description="Multi-user project and task management with sharing, comments and notifications",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)


# ============== Error Mapping ==============

@app.exception_handler(NotFoundError)
async def handle_not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.detail})


@app.exception_handler(AuthorizationError)
async def handle_authorization(request: Request, exc: AuthorizationError):
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": exc.detail})


@app.exception_handler(InvalidInputError)
async def handle_invalid_input(request: Request, exc: InvalidInputError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": exc.detail})


# ============== Startup: Tables, Admin User, Demo Data ==============

@app.on_event("startup")
async def initialize_database():
    """Create tables and seed the admin account and demo data (AUTO_INIT_DB, default on)."""
    if not AUTO_INIT_DB:
        logger.info("AUTO_INIT_DB disabled, skipping database initialization")
        return

    from database import SessionLocal
    from seed import init_database

    db = SessionLocal()
    try:
        init_database(db)
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


@app.get("/health")
def health_check():
    return {"status": "healthy"}


# ============== Users ==============

@app.get("/api/users", response_model=List[schemas.UserSummary])
def list_users(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List all users."""
    return user_service.list_users(db)


@app.get("/api/users/{user_id}", response_model=schemas.UserSummary)
def get_user(
    user_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return user_service.get_user(db, user_id)


@app.put("/api/users/{user_id}", response_model=schemas.User)
def update_user(
    user_id: str,
    user_update: schemas.UserUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update your own username, email or password."""
    return user_service.update_user(
        db,
        user_id,
        current_user.id,
        username=user_update.username,
        email=user_update.email,
        password=user_update.password,
    )


@app.delete("/api/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete your own account."""
    user_service.delete_user(db, user_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.delete("/api/users/admin/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user_as_admin(
    user_id: str,
    current_user: models.User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Delete any user (admin only)."""
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete your own account as admin. Ask another admin to remove your account."
        )
    user_service.delete_user_as_admin(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============== Projects ==============

@app.get("/api/projects", response_model=List[schemas.Project])
def list_all_projects(
    current_user: models.User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """List every project regardless of visibility (admin only)."""
    logger.debug(f"Admin {current_user.id} listing all projects")
    return project_service.list_all_projects(db)


@app.get("/api/projects/visible", response_model=List[schemas.ProjectSummary])
def list_visible_projects(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Projects shared with the caller, with the caller's unread notification count per project."""
    return project_service.list_visible_projects(db, current_user.id)


@app.get("/api/projects/owned", response_model=List[schemas.Project])
def list_owned_projects(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return project_service.list_owned_projects(db, current_user.id)


@app.post("/api/projects", response_model=schemas.Project, status_code=status.HTTP_201_CREATED)
def create_project(
    project: schemas.ProjectCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a project owned by the caller; the owner and all admins can see it."""
    created = project_service.create_project(db, current_user.id, project.name, project.description)
    return project_service.project_to_dict(created)


@app.get("/api/projects/{project_id}", response_model=schemas.ProjectSummary)
def get_project(
    project_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return project_service.get_project(db, project_id, current_user.id)


@app.put("/api/projects/{project_id}", response_model=schemas.Project)
def update_project(
    project_id: int,
    project_update: schemas.ProjectUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update project (owner only)."""
    updated = project_service.update_project(
        db, project_id, current_user.id, project_update.name, project_update.description
    )
    return project_service.project_to_dict(updated, task_count=len(updated.tasks))


@app.delete("/api/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete project with its tasks, comments and notifications (owner only)."""
    project_service.delete_project(db, project_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/api/projects/{project_id}/share")
def share_project(
    project_id: int,
    share: schemas.ProjectShare,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Share project with another user (owner only, idempotent)."""
    project_service.share_project(db, project_id, current_user.id, share.shared_user_id)
    return {"message": "Project shared"}


@app.get("/api/projects/{project_id}/viewers", response_model=List[schemas.UserSummary])
def list_project_viewers(
    project_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Users who can see the project, i.e. the candidates for task assignment."""
    return project_service.list_project_viewers(db, project_id, current_user.id)


@app.get("/api/projects/{project_id}/tasks", response_model=List[schemas.Task])
def list_project_tasks(
    project_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return task_service.list_tasks_for_project(db, project_id, current_user.id)


# ============== Tasks ==============

@app.post("/api/tasks", response_model=schemas.Task, status_code=status.HTTP_201_CREATED)
def create_task(
    task: schemas.TaskCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a task in a project visible to the caller."""
    return task_service.create_task(
        db,
        current_user.id,
        title=task.title,
        due_date=task.due_date,
        project_id=task.project_id,
        description=task.description,
        status=task.status,
        assigned_user_id=task.assigned_user_id,
    )


@app.get("/api/tasks/{task_id}", response_model=schemas.Task)
def get_task(
    task_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return task_service.get_task(db, task_id, current_user.id)


@app.put("/api/tasks/{task_id}", response_model=schemas.Task)
def update_task(
    task_id: int,
    task: schemas.TaskUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a task (assigned user only)."""
    return task_service.update_task(
        db,
        task_id,
        current_user.id,
        title=task.title,
        due_date=task.due_date,
        project_id=task.project_id,
        description=task.description,
        status=task.status,
        assigned_user_id=task.assigned_user_id,
    )


@app.delete("/api/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a task (assigned user only)."""
    task_service.delete_task(db, task_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.put("/api/tasks/{task_id}/status/{task_status}", response_model=schemas.Task)
def update_task_status(
    task_id: int,
    task_status: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return task_service.update_status(db, task_id, current_user.id, task_status)


@app.put("/api/tasks/{task_id}/assign/{user_id}", response_model=schemas.Task)
def assign_task(
    task_id: int,
    user_id: str,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return task_service.assign_user(db, task_id, current_user.id, user_id)


# ============== Comments ==============

@app.get("/api/tasks/{task_id}/comments", response_model=List[schemas.Comment])
def list_comments(
    task_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return comment_service.list_comments(db, task_id, current_user.id)


@app.post("/api/tasks/{task_id}/comments", response_model=schemas.Comment, status_code=status.HTTP_201_CREATED)
def create_comment(
    task_id: int,
    comment: schemas.CommentCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Comment on a task; every viewer of the project is notified."""
    return comment_service.create_comment(db, task_id, current_user.id, comment.text)


@app.put("/api/comments/{comment_id}", response_model=schemas.Comment)
def update_comment(
    comment_id: int,
    comment: schemas.CommentUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a comment (author only)."""
    return comment_service.update_comment(db, comment_id, current_user.id, comment.text)


@app.delete("/api/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    comment_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a comment (author only)."""
    comment_service.delete_comment(db, comment_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============== Notifications ==============

@app.get("/api/notifications", response_model=List[schemas.Notification])
def list_notifications(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """The caller's notifications, newest first."""
    return notification_service.list_for_user(db, current_user.id)


@app.post("/api/notifications", status_code=status.HTTP_204_NO_CONTENT)
def create_notification(
    notification: schemas.NotificationCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Notify every viewer of a project (optionally about one of its tasks). Viewers only."""
    project_exists = db.query(models.Project.id).filter(models.Project.id == notification.project_id).first()
    if project_exists and not can_view(db, notification.project_id, current_user.id):
        raise AuthorizationError("You do not have access to this project")

    created = notification_service.notify(db, notification.project_id, notification.task_id, notification.message)
    if not created:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unknown project, or task does not belong to the project"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.put("/api/notifications/{notification_id}/read", response_model=schemas.Notification)
def mark_notification_read(
    notification_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    notification = notification_service.mark_read(db, notification_id, current_user.id)
    return notification_service.notification_to_dict(notification)


@app.put("/api/notifications/{notification_id}/unread", response_model=schemas.Notification)
def mark_notification_unread(
    notification_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    notification = notification_service.mark_unread(db, notification_id, current_user.id)
    return notification_service.notification_to_dict(notification)


@app.put("/api/notifications/project/{project_id}/read", response_model=schemas.MarkedRead)
def mark_project_notifications_read(
    project_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Mark all of the caller's notifications for one project as read."""
    marked = notification_service.mark_project_read(db, project_id, current_user.id)
    return {"project_id": project_id, "marked_count": marked}


API_PORT = int(os.environ.get("API_PORT", "8000"))


def run():
    """Console entry point: serve the API with uvicorn."""
    uvicorn.run("main:app", host="0.0.0.0", port=API_PORT)


if __name__ == "__main__":
    run()
