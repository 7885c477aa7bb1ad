"""
API request and response models for the Taskboard REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
projects/models.py, which own the internal domain representation. Route
handlers map between the two with the from_* factory methods below.

Separation of concerns: domain dataclasses = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from auth.models import User
from auth.tokens import MAX_PASSWORD_BYTES
from projects.models import Member, Note, Project, Role, SubTask, Task, TaskStatus

_PASSWORD = Field(min_length=8, max_length=MAX_PASSWORD_BYTES)


def _check_password_bytes(value: str) -> str:
    # max_length counts characters; bcrypt counts UTF-8 bytes.
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return value


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

    status: str = "ok"
    version: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Auth -- requests
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = _PASSWORD

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    email: EmailStr
    # No length rule on login: a wrong-length password is just a wrong password.
    password: str = Field(min_length=1, max_length=1024)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    new_password: str = _PASSWORD

    @field_validator("new_password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(min_length=1, max_length=1024)
    new_password: str = _PASSWORD

    @field_validator("new_password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


# ---------------------------------------------------------------------------
# Auth -- responses
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user. Hashes and tokens never leave the service."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    is_email_verified: bool
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            is_email_verified=user.is_email_verified,
            created_at=user.created_at or "",
        )


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until the access token expires


class AccessTokenResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int


# ---------------------------------------------------------------------------
# Projects and members
# ---------------------------------------------------------------------------


class ProjectCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)


class ProjectUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)


class MemberResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    role: Role
    name: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_member(cls, member: Member, user: Optional[User] = None) -> "MemberResponse":
        return cls(
            user_id=member.user_id,
            role=member.role,
            name=user.name if user else None,
            email=user.email if user else None,
        )


class ProjectResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    created_by: str
    members: list[MemberResponse]
    created_at: str
    updated_at: str

    @classmethod
    def from_project(cls, project: Project) -> "ProjectResponse":
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            created_by=project.created_by,
            members=[MemberResponse.from_member(m) for m in project.members],
            created_at=project.created_at,
            updated_at=project.updated_at,
        )


class MemberAdd(BaseModel):
    email: EmailStr
    role: Role = Role.member


class MemberRoleUpdate(BaseModel):
    role: Role


# ---------------------------------------------------------------------------
# Tasks and sub-tasks
# ---------------------------------------------------------------------------


class TaskCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=10000)
    assignee_id: Optional[str] = None


class TaskPatchRequest(BaseModel):
    """Body for PATCH /tasks/{project_id}/t/{task_id}.

    Omitted fields are left alone. Unknown keys are a 422, not silently dropped.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=10000)
    status: Optional[TaskStatus] = None
    assignee_id: Optional[str] = None


class SubTaskCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)


class SubTaskUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    completed: bool


class AttachmentResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    mime_type: str
    size: int


class SubTaskResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    completed: bool
    created_at: str

    @classmethod
    def from_subtask(cls, subtask: SubTask) -> "SubTaskResponse":
        return cls(
            id=subtask.id,
            title=subtask.title,
            completed=subtask.completed,
            created_at=subtask.created_at,
        )


class TaskResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    project_id: str
    title: str
    description: str
    status: TaskStatus
    assignee_id: Optional[str]
    attachments: list[AttachmentResponse]
    subtasks: list[SubTaskResponse]
    created_by: str
    created_at: str
    updated_at: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            project_id=task.project_id,
            title=task.title,
            description=task.description,
            status=task.status,
            assignee_id=task.assignee_id,
            attachments=[AttachmentResponse(url=a.url, mime_type=a.mime_type, size=a.size) for a in task.attachments],
            subtasks=[SubTaskResponse.from_subtask(s) for s in task.subtasks],
            created_by=task.created_by,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


class NoteCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    content: str = Field(default="", max_length=50000)


class NoteUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, max_length=50000)


class NoteResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    project_id: str
    title: str
    content: str
    created_by: str
    created_at: str
    updated_at: str

    @classmethod
    def from_note(cls, note: Note) -> "NoteResponse":
        return cls(
            id=note.id,
            project_id=note.project_id,
            title=note.title,
            content=note.content,
            created_by=note.created_by,
            created_at=note.created_at,
            updated_at=note.updated_at,
        )
