from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List
from enum import Enum


class TaskStatus(str, Enum):
    todo = "ToDo"
    in_progress = "InProgress"
    done = "Done"


# User schemas
class UserBase(BaseModel):
    username: str
    email: EmailStr


class User(UserBase):
    id: str
    roles: List[str] = Field(default_factory=list, validation_alias="role_names")
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        populate_by_name = True


class UserSummary(BaseModel):
    id: str
    username: str
    email: str

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=100)


# Project schemas
class ProjectBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(ProjectBase):
    pass


class Project(ProjectBase):
    id: int
    owner_id: str
    owner_username: Optional[str] = None
    task_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectSummary(Project):
    unread_notifications_count: int = 0


class ProjectShare(BaseModel):
    shared_user_id: str


# Task schemas
class TaskBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    status: TaskStatus = TaskStatus.todo
    due_date: datetime


class TaskCreate(TaskBase):
    project_id: int
    assigned_user_id: Optional[str] = None


class TaskUpdate(TaskBase):
    project_id: int
    assigned_user_id: Optional[str] = None


class Task(TaskBase):
    id: int
    project_id: int
    project_name: Optional[str] = None
    assigned_user_id: Optional[str] = None
    assigned_username: Optional[str] = None
    is_overdue: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Comment schemas
class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1)


class CommentUpdate(BaseModel):
    text: str = Field(..., min_length=1)


class Comment(BaseModel):
    id: int
    text: str
    task_id: int
    task_title: Optional[str] = None
    author_id: str
    author_username: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Notification schemas
class NotificationCreate(BaseModel):
    project_id: int
    task_id: Optional[int] = None
    message: str = Field(..., min_length=1)


class Notification(BaseModel):
    id: int
    project_id: int
    project_name: Optional[str] = None
    task_id: Optional[int] = None
    task_name: str = ""
    message: str
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MarkedRead(BaseModel):
    project_id: int
    marked_count: int
