"""
API request and response models for Taskboard REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
tasks/models.py, which own the internal domain representation. Route handlers
map between the two.

Request models reject malformed input before any business logic runs; the
field limits come from tasks/models.py so the service and the API agree.
"""

import re
from enum import Enum
from typing import Annotated, Optional

from fastapi import Path
from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import User
from tasks.models import TITLE_MAX_LENGTH, TITLE_MIN_LENGTH, Task

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
USERNAME_PATTERN = r"^[A-Za-z0-9]+$"

# bcrypt only looks at the first 72 bytes; keep passwords well inside that.
_PASSWORD_MAX_LENGTH = 64

# Largest value a 64-bit signed INTEGER primary key can hold.
MAX_ROW_ID = 2**63 - 1

# Path parameter for database ids. Out-of-range ids fail validation (400)
# instead of overflowing the database driver.
RowId = Annotated[int, Path(ge=1, le=MAX_ROW_ID)]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    user = "user"
    admin = "admin"


class TaskStatusEnum(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"


# ---------------------------------------------------------------------------
# User request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/users/register."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=8, max_length=_PASSWORD_MAX_LENGTH)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        """Require a lower-case letter, an upper-case letter, a digit, and a symbol."""
        checks = (
            re.search(r"[a-z]", value),
            re.search(r"[A-Z]", value),
            re.search(r"\d", value),
            re.search(r"[^A-Za-z0-9]", value),
        )
        if not all(checks):
            raise ValueError("Password must contain upper and lower case letters, a number, and a symbol.")
        return value


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/users/login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=8, max_length=_PASSWORD_MAX_LENGTH)


class ProfileUpdate(BaseModel):
    """Request body for PUT /api/v1/users/me."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=3, max_length=50, pattern=USERNAME_PATTERN)


class RoleUpdate(BaseModel):
    """Request body for PATCH /api/v1/users/admin/{user_id}/role."""

    role: RoleEnum


# ---------------------------------------------------------------------------
# User response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    role: str
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=user.role,
            created_at=user.created_at or "",
        )


class LoginResponse(BaseModel):
    """Response for a successful login: the bearer token and who it belongs to."""

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class UserMessageResponse(BaseModel):
    """Response for register and role change."""

    model_config = ConfigDict(frozen=True)

    message: str
    user: UserResponse


# ---------------------------------------------------------------------------
# Task request models
# ---------------------------------------------------------------------------


class TaskCreate(BaseModel):
    """Request body for POST /api/v1/tasks. status defaults to pending."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    description: str = Field(min_length=1)
    status: Optional[TaskStatusEnum] = None


class TaskUpdate(BaseModel):
    """Request body for PUT /api/v1/tasks/{task_id}.

    Every field is optional; only the ones sent are changed. An empty body
    passes validation here and is rejected by the service (no_fields).
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(default=None, min_length=1)
    status: Optional[TaskStatusEnum] = None


# ---------------------------------------------------------------------------
# Task response models
# ---------------------------------------------------------------------------


class TaskResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: str
    status: str
    owner_id: int
    created_at: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        """Factory Method: the domain-to-transport mapping lives next to the model."""
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            owner_id=task.owner_id,
            created_at=task.created_at,
        )


class TaskOwnerInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    role: str


class AdminTaskResponse(TaskResponse):
    """One row of GET /api/v1/tasks/admin/all -- a task plus its owner."""

    owner: Optional[TaskOwnerInfo] = None

    @classmethod
    def from_task(cls, task: Task) -> "AdminTaskResponse":
        owner = None
        if task.owner is not None:
            owner = TaskOwnerInfo(
                id=task.owner.id,
                username=task.owner.username,
                email=task.owner.email,
                role=task.owner.role,
            )
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            owner_id=task.owner_id,
            created_at=task.created_at,
            owner=owner,
        )


class TaskMessageResponse(BaseModel):
    """Response for task deletion: a message and the deleted task."""

    model_config = ConfigDict(frozen=True)

    message: str
    task: TaskResponse


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
