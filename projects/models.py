"""
projects/models.py -- Domain dataclasses for projects, tasks, and notes.

These are pure data containers with zero logic. Permission decisions live in
projects/policies.py; persistence in projects/store.py; orchestration in
projects/service.py.

A Task or Note belongs to exactly one project. project_id is set at creation
and never rewritten by any service method.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Per-project role. A user may hold different roles in different projects."""

    admin = "admin"  # full control, including membership
    project_admin = "project_admin"  # manage tasks and notes, not membership
    member = "member"  # read, change task status, tick sub-tasks


ELEVATED_ROLES = frozenset({Role.admin, Role.project_admin})


class TaskStatus(str, Enum):
    todo = "todo"
    in_progress = "in_progress"
    done = "done"


@dataclass
class Member:
    user_id: str
    role: Role


@dataclass
class Project:
    """A project and its member list.

    members always holds at least one Role.admin entry and never lists the
    same user_id twice. ProjectService enforces both on every write.

    id is None before the record is written to the database.
    """

    name: str
    created_by: str
    description: str = ""
    members: list[Member] = field(default_factory=list)
    id: Optional[str] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""


@dataclass
class Attachment:
    url: str
    mime_type: str
    size: int


@dataclass
class SubTask:
    id: str
    title: str
    completed: bool = False
    created_at: str = ""


@dataclass
class Task:
    """A unit of work inside a project.

    attachments and subtasks are embedded, ordered, and stored with the task
    as one document. assignee_id is None when nobody is assigned.
    """

    project_id: str
    title: str
    created_by: str
    description: str = ""
    status: TaskStatus = TaskStatus.todo
    assignee_id: Optional[str] = None
    attachments: list[Attachment] = field(default_factory=list)
    subtasks: list[SubTask] = field(default_factory=list)
    id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Note:
    project_id: str
    title: str
    created_by: str
    content: str = ""
    id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class TaskPatch:
    """A partial task update. None means "leave this field alone"."""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    assignee_id: Optional[str] = None
