"""
projects/store.py -- SQLAlchemy-backed persistence for projects, tasks, and notes.

Uses SQLAlchemy Core (not ORM) so the dataclasses in projects/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. ProjectStore is the repository (one clean
interface per entity); the _row_to_* functions are the mappers.

Document semantics:
  Each project, task, and note is read and written as a whole document.
  update_*() replaces every mutable column. A project's member rows are part
  of its document: update_project() rewrites them inside the same transaction
  as the project row, so a reader never sees a half-applied member list.
  Sub-tasks and attachments are embedded in the task row as JSON text.
  There is no version check -- concurrent writers to one document race and
  the last one wins.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = ProjectStore("sqlite:///taskboard.db")
    project_id = store.create_project(project)
    project = store.get_project(project_id)
    store.close()
"""

import json
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import (
    Column,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    select,
)
from sqlalchemy.engine import Engine

from core.db import make_engine
from core.ids import new_id
from projects.models import Attachment, Member, Note, Project, Role, SubTask, Task, TaskStatus

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_projects = Table(
    "projects",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(200), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("created_by", String(32), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_members = Table(
    "project_members",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),  # preserves insertion order
    Column("project_id", String(32), nullable=False),
    Column("user_id", String(32), nullable=False),
    Column("role", String(30), nullable=False),
    UniqueConstraint("project_id", "user_id", name="uq_project_member"),
    Index("ix_project_members_user_id", "user_id"),
)

_tasks = Table(
    "tasks",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("project_id", String(32), nullable=False, index=True),
    Column("title", String(200), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("status", String(30), nullable=False, server_default="todo"),
    Column("assignee_id", String(32), index=True),
    Column("attachments", Text, nullable=False, server_default="[]"),  # JSON array
    Column("subtasks", Text, nullable=False, server_default="[]"),  # JSON array
    Column("created_by", String(32), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_notes = Table(
    "notes",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("project_id", String(32), nullable=False, index=True),
    Column("title", String(200), nullable=False),
    Column("content", Text, nullable=False, server_default=""),
    Column("created_by", String(32), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class ProjectRepository(Protocol):
    """Capability interface the resource services depend on."""

    def create_project(self, project: Project) -> str: ...

    def get_project(self, project_id: str) -> Optional[Project]: ...

    def list_projects_for_user(self, user_id: str) -> list[Project]: ...

    def update_project(self, project: Project) -> bool: ...

    def delete_project(self, project_id: str) -> bool: ...

    def create_task(self, task: Task) -> str: ...

    def get_task(self, task_id: str) -> Optional[Task]: ...

    def list_tasks(self, project_id: str) -> list[Task]: ...

    def update_task(self, task: Task) -> bool: ...

    def delete_task(self, task_id: str) -> bool: ...

    def create_note(self, note: Note) -> str: ...

    def get_note(self, note_id: str) -> Optional[Note]: ...

    def list_notes(self, project_id: str) -> list[Note]: ...

    def update_note(self, note: Note) -> bool: ...

    def delete_note(self, note_id: str) -> bool: ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _stamp_new(entity) -> None:
    entity.id = entity.id or new_id()
    now = _now_iso()
    entity.created_at = entity.created_at or now
    entity.updated_at = now


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ProjectStore:
    """Repository for Project, Task, and Note documents."""

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, project: Project) -> str:
        """Insert a project and its member rows in one transaction. Returns the id."""
        _stamp_new(project)
        with self.engine.begin() as conn:
            conn.execute(
                _projects.insert().values(
                    id=project.id,
                    name=project.name,
                    description=project.description,
                    created_by=project.created_by,
                    created_at=project.created_at,
                    updated_at=project.updated_at,
                )
            )
            _insert_members(conn, project)
        return project.id

    def get_project(self, project_id: str) -> Optional[Project]:
        with self.engine.connect() as conn:
            row = conn.execute(_projects.select().where(_projects.c.id == project_id)).fetchone()
            if row is None:
                return None
            member_rows = conn.execute(
                _members.select().where(_members.c.project_id == project_id).order_by(_members.c.id)
            ).fetchall()
        return _row_to_project(row, member_rows)

    def list_projects_for_user(self, user_id: str) -> list[Project]:
        """Return every project the user is a member of, oldest first."""
        with self.engine.connect() as conn:
            project_ids = select(_members.c.project_id).where(_members.c.user_id == user_id)
            rows = conn.execute(
                _projects.select().where(_projects.c.id.in_(project_ids)).order_by(_projects.c.created_at)
            ).fetchall()
            if not rows:
                return []
            member_rows = conn.execute(
                _members.select().where(_members.c.project_id.in_([r.id for r in rows])).order_by(_members.c.id)
            ).fetchall()
        by_project: dict[str, list] = {}
        for m in member_rows:
            by_project.setdefault(m.project_id, []).append(m)
        return [_row_to_project(r, by_project.get(r.id, [])) for r in rows]

    def update_project(self, project: Project) -> bool:
        """Replace the project row and its whole member list atomically.

        Returns True if the project existed, False otherwise.
        """
        project.updated_at = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _projects.update()
                .where(_projects.c.id == project.id)
                .values(name=project.name, description=project.description, updated_at=project.updated_at)
            )
            if result.rowcount == 0:
                return False
            conn.execute(_members.delete().where(_members.c.project_id == project.id))
            _insert_members(conn, project)
        return True

    def delete_project(self, project_id: str) -> bool:
        """Delete a project with its members, tasks, and notes. Returns True if it existed."""
        with self.engine.begin() as conn:
            conn.execute(_tasks.delete().where(_tasks.c.project_id == project_id))
            conn.execute(_notes.delete().where(_notes.c.project_id == project_id))
            conn.execute(_members.delete().where(_members.c.project_id == project_id))
            result = conn.execute(_projects.delete().where(_projects.c.id == project_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(self, task: Task) -> str:
        _stamp_new(task)
        with self.engine.begin() as conn:
            conn.execute(_tasks.insert().values(**_task_to_row(task)))
        return task.id

    def get_task(self, task_id: str) -> Optional[Task]:
        with self.engine.connect() as conn:
            row = conn.execute(_tasks.select().where(_tasks.c.id == task_id)).fetchone()
        return _row_to_task(row) if row is not None else None

    def list_tasks(self, project_id: str) -> list[Task]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _tasks.select().where(_tasks.c.project_id == project_id).order_by(_tasks.c.created_at)
            ).fetchall()
        return [_row_to_task(r) for r in rows]

    def update_task(self, task: Task) -> bool:
        """Replace the stored task. project_id and created_* are never rewritten."""
        task.updated_at = _now_iso()
        row = _task_to_row(task)
        for immutable in ("id", "project_id", "created_by", "created_at"):
            row.pop(immutable)
        with self.engine.begin() as conn:
            result = conn.execute(_tasks.update().where(_tasks.c.id == task.id).values(**row))
        return result.rowcount > 0

    def delete_task(self, task_id: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(_tasks.delete().where(_tasks.c.id == task_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def create_note(self, note: Note) -> str:
        _stamp_new(note)
        with self.engine.begin() as conn:
            conn.execute(
                _notes.insert().values(
                    id=note.id,
                    project_id=note.project_id,
                    title=note.title,
                    content=note.content,
                    created_by=note.created_by,
                    created_at=note.created_at,
                    updated_at=note.updated_at,
                )
            )
        return note.id

    def get_note(self, note_id: str) -> Optional[Note]:
        with self.engine.connect() as conn:
            row = conn.execute(_notes.select().where(_notes.c.id == note_id)).fetchone()
        return _row_to_note(row) if row is not None else None

    def list_notes(self, project_id: str) -> list[Note]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _notes.select().where(_notes.c.project_id == project_id).order_by(_notes.c.created_at)
            ).fetchall()
        return [_row_to_note(r) for r in rows]

    def update_note(self, note: Note) -> bool:
        note.updated_at = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _notes.update()
                .where(_notes.c.id == note.id)
                .values(title=note.title, content=note.content, updated_at=note.updated_at)
            )
        return result.rowcount > 0

    def delete_note(self, note_id: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(_notes.delete().where(_notes.c.id == note_id))
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _insert_members(conn, project: Project) -> None:
    if not project.members:
        return
    conn.execute(
        _members.insert(),
        [{"project_id": project.id, "user_id": m.user_id, "role": m.role.value} for m in project.members],
    )


def _row_to_project(row, member_rows) -> Project:
    return Project(
        id=row.id,
        name=row.name,
        description=row.description or "",
        created_by=row.created_by,
        members=[Member(user_id=m.user_id, role=Role(m.role)) for m in member_rows],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _task_to_row(task: Task) -> dict:
    return {
        "id": task.id,
        "project_id": task.project_id,
        "title": task.title,
        "description": task.description,
        "status": task.status.value,
        "assignee_id": task.assignee_id,
        "attachments": json.dumps([asdict(a) for a in task.attachments]),
        "subtasks": json.dumps([asdict(s) for s in task.subtasks]),
        "created_by": task.created_by,
        "created_at": task.created_at,
        "updated_at": task.updated_at,
    }


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        project_id=row.project_id,
        title=row.title,
        description=row.description or "",
        status=TaskStatus(row.status),
        assignee_id=row.assignee_id,
        attachments=[Attachment(**a) for a in json.loads(row.attachments or "[]")],
        subtasks=[SubTask(**s) for s in json.loads(row.subtasks or "[]")],
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_note(row) -> Note:
    return Note(
        id=row.id,
        project_id=row.project_id,
        title=row.title,
        content=row.content or "",
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
