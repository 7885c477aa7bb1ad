"""
projects/service.py -- Project, task, and note orchestration.

Every public method follows the same three steps:
  1. parse_id() every identifier argument   -> InvalidInput
  2. load the project (and task/note)        -> NotFound
  3. ask projects/policies.py                -> Forbidden
and only then mutates and writes. A task or note reached through a project id
it does not belong to is reported as NotFound, exactly like a missing one.

Layer rule: may import auth.store (user lookups for membership), core/, and
projects/. Never imports api/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from auth.models import User
from auth.store import UserRepository
from core.errors import Conflict, InvalidInput, NotFound
from core.ids import new_id, parse_id
from projects.models import Member, Note, Project, Role, SubTask, Task, TaskPatch
from projects.policies import (
    authorize_task_patch,
    changed_fields,
    require_elevated,
    require_member,
    require_role,
)
from projects.store import ProjectRepository

logger = logging.getLogger("taskboard.projects")


def _load_project(projects: ProjectRepository, project_id: str) -> Project:
    project = projects.get_project(project_id)
    if project is None:
        raise NotFound("Project not found.")
    return project


def _find_member(project: Project, user_id: str) -> Optional[Member]:
    for member in project.members:
        if member.user_id == user_id:
            return member
    return None


def _admin_count(project: Project) -> int:
    return sum(1 for m in project.members if m.role == Role.admin)


# ---------------------------------------------------------------------------
# Projects and membership
# ---------------------------------------------------------------------------


class ProjectService:
    """Projects and their member lists.

    Usage:
        projects = ProjectService(ProjectStore(url), UserStore(url))
        project = projects.create_project(user_id, "Launch", "Q3 launch plan")
        projects.add_member(project.id, user_id, "bob@example.com", Role.member)
    """

    def __init__(self, projects: ProjectRepository, users: UserRepository) -> None:
        self.projects = projects
        self.users = users

    def create_project(self, user_id: str, name: str, description: str = "") -> Project:
        user_id = parse_id(user_id, "user_id")
        project = Project(
            name=name.strip(),
            description=description,
            created_by=user_id,
            members=[Member(user_id=user_id, role=Role.admin)],
        )
        self.projects.create_project(project)
        logger.info("User %s created project %s", user_id, project.id)
        return project

    def get_project(self, project_id: str, user_id: str) -> Project:
        project_id = parse_id(project_id, "project_id")
        user_id = parse_id(user_id, "user_id")
        project = _load_project(self.projects, project_id)
        require_member(project, user_id)
        return project

    def list_projects(self, user_id: str) -> list[Project]:
        return self.projects.list_projects_for_user(parse_id(user_id, "user_id"))

    def update_project(
        self,
        project_id: str,
        user_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Project:
        """Change name and/or description. None leaves a field as it is."""
        project_id = parse_id(project_id, "project_id")
        user_id = parse_id(user_id, "user_id")
        project = _load_project(self.projects, project_id)
        require_role(project, user_id, Role.admin)
        if name is None and description is None:
            raise InvalidInput("Nothing to update.")

        if name is not None:
            project.name = name.strip()
        if description is not None:
            project.description = description
        self.projects.update_project(project)
        return project

    def delete_project(self, project_id: str, user_id: str) -> None:
        """Delete the project together with all of its tasks and notes."""
        project_id = parse_id(project_id, "project_id")
        user_id = parse_id(user_id, "user_id")
        project = _load_project(self.projects, project_id)
        require_role(project, user_id, Role.admin)
        self.projects.delete_project(project.id)
        logger.info("User %s deleted project %s", user_id, project.id)

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def add_member(self, project_id: str, requester_id: str, email: str, role: Role) -> Member:
        project_id = parse_id(project_id, "project_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_role(project, requester_id, Role.admin)

        user = self.users.get_by_email(email.strip().lower())
        if user is None:
            raise NotFound("No user with that email.")
        if _find_member(project, user.id) is not None:
            raise Conflict("User is already a member of this project.")

        member = Member(user_id=user.id, role=role)
        project.members.append(member)
        self.projects.update_project(project)
        logger.info("Added user %s to project %s as %s", user.id, project.id, role.value)
        return member

    def list_members(self, project_id: str, requester_id: str) -> list[tuple[Member, Optional[User]]]:
        """Return (member, user) pairs in the order members joined.

        user is None if the account behind a membership no longer exists.
        """
        project_id = parse_id(project_id, "project_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_member(project, requester_id)

        users = {u.id: u for u in self.users.get_many([m.user_id for m in project.members])}
        return [(m, users.get(m.user_id)) for m in project.members]

    def update_member_role(self, project_id: str, requester_id: str, target_user_id: str, role: Role) -> Member:
        project_id = parse_id(project_id, "project_id")
        requester_id = parse_id(requester_id, "requester_id")
        target_user_id = parse_id(target_user_id, "user_id")
        project = _load_project(self.projects, project_id)
        require_role(project, requester_id, Role.admin)

        member = _find_member(project, target_user_id)
        if member is None:
            raise NotFound("User is not a member of this project.")
        if member.role == Role.admin and role != Role.admin and _admin_count(project) == 1:
            raise Conflict("A project must keep at least one admin.")

        member.role = role
        self.projects.update_project(project)
        logger.info("Set role of user %s in project %s to %s", target_user_id, project.id, role.value)
        return member

    def remove_member(self, project_id: str, requester_id: str, target_user_id: str) -> None:
        project_id = parse_id(project_id, "project_id")
        requester_id = parse_id(requester_id, "requester_id")
        target_user_id = parse_id(target_user_id, "user_id")
        project = _load_project(self.projects, project_id)
        require_role(project, requester_id, Role.admin)

        member = _find_member(project, target_user_id)
        if member is None:
            raise NotFound("User is not a member of this project.")
        if member.role == Role.admin and _admin_count(project) == 1:
            raise Conflict("A project must keep at least one admin.")

        project.members = [m for m in project.members if m.user_id != target_user_id]
        self.projects.update_project(project)
        logger.info("Removed user %s from project %s", target_user_id, project.id)


# ---------------------------------------------------------------------------
# Tasks and sub-tasks
# ---------------------------------------------------------------------------


class TaskService:
    def __init__(self, projects: ProjectRepository) -> None:
        self.projects = projects

    def _load_task(self, project: Project, task_id: str) -> Task:
        task = self.projects.get_task(task_id)
        if task is None or task.project_id != project.id:
            raise NotFound("Task not found.")
        return task

    def _check_assignee(self, project: Project, assignee_id: Optional[str]) -> Optional[str]:
        if assignee_id is None:
            return None
        assignee_id = parse_id(assignee_id, "assignee_id")
        if _find_member(project, assignee_id) is None:
            raise InvalidInput("Assignee must be a member of the project.")
        return assignee_id

    def create_task(
        self,
        project_id: str,
        requester_id: str,
        title: str,
        description: str = "",
        assignee_id: Optional[str] = None,
    ) -> Task:
        project_id = parse_id(project_id, "project_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_elevated(project, requester_id)

        task = Task(
            project_id=project.id,
            title=title.strip(),
            description=description,
            assignee_id=self._check_assignee(project, assignee_id),
            created_by=requester_id,
        )
        self.projects.create_task(task)
        logger.info("User %s created task %s in project %s", requester_id, task.id, project.id)
        return task

    def get_task(self, project_id: str, task_id: str, requester_id: str) -> Task:
        project_id = parse_id(project_id, "project_id")
        task_id = parse_id(task_id, "task_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_member(project, requester_id)
        return self._load_task(project, task_id)

    def list_tasks(self, project_id: str, requester_id: str) -> list[Task]:
        project_id = parse_id(project_id, "project_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_member(project, requester_id)
        return self.projects.list_tasks(project.id)

    def update_task(self, project_id: str, task_id: str, requester_id: str, patch: TaskPatch) -> Task:
        """Apply patch to the task.

        Elevated members may change any field. Other members may only move the
        status; see projects.policies.authorize_task_patch.
        """
        project_id = parse_id(project_id, "project_id")
        task_id = parse_id(task_id, "task_id")
        requester_id = parse_id(requester_id, "requester_id")
        if patch.assignee_id is not None:
            patch.assignee_id = parse_id(patch.assignee_id, "assignee_id")
        project = _load_project(self.projects, project_id)
        require_member(project, requester_id)
        task = self._load_task(project, task_id)

        if all(getattr(patch, f) is None for f in ("title", "description", "status", "assignee_id")):
            raise InvalidInput("Nothing to update.")
        authorize_task_patch(project, requester_id, task, patch)

        changed = changed_fields(task, patch)
        if "assignee_id" in changed:
            task.assignee_id = self._check_assignee(project, patch.assignee_id)
        if "title" in changed:
            task.title = patch.title.strip()
        if "description" in changed:
            task.description = patch.description
        if "status" in changed:
            task.status = patch.status
        if changed:
            self.projects.update_task(task)
        return task

    def delete_task(self, project_id: str, task_id: str, requester_id: str) -> None:
        project_id = parse_id(project_id, "project_id")
        task_id = parse_id(task_id, "task_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_elevated(project, requester_id)
        task = self._load_task(project, task_id)
        self.projects.delete_task(task.id)
        logger.info("User %s deleted task %s", requester_id, task.id)

    def create_subtask(self, project_id: str, task_id: str, requester_id: str, title: str) -> SubTask:
        project_id = parse_id(project_id, "project_id")
        task_id = parse_id(task_id, "task_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_elevated(project, requester_id)
        task = self._load_task(project, task_id)

        subtask = SubTask(id=new_id(), title=title.strip(), created_at=datetime.now(timezone.utc).isoformat())
        task.subtasks.append(subtask)
        self.projects.update_task(task)
        return subtask

    def update_subtask(
        self, project_id: str, task_id: str, subtask_id: str, requester_id: str, completed: bool
    ) -> SubTask:
        """Tick or untick a sub-task. Any member may do this."""
        project_id = parse_id(project_id, "project_id")
        task_id = parse_id(task_id, "task_id")
        subtask_id = parse_id(subtask_id, "subtask_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_member(project, requester_id)
        task = self._load_task(project, task_id)

        subtask = _find_subtask(task, subtask_id)
        if subtask.completed != completed:
            subtask.completed = completed
            self.projects.update_task(task)
        return subtask

    def delete_subtask(self, project_id: str, task_id: str, subtask_id: str, requester_id: str) -> None:
        project_id = parse_id(project_id, "project_id")
        task_id = parse_id(task_id, "task_id")
        subtask_id = parse_id(subtask_id, "subtask_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_elevated(project, requester_id)
        task = self._load_task(project, task_id)

        _find_subtask(task, subtask_id)
        task.subtasks = [s for s in task.subtasks if s.id != subtask_id]
        self.projects.update_task(task)


def _find_subtask(task: Task, subtask_id: str) -> SubTask:
    for subtask in task.subtasks:
        if subtask.id == subtask_id:
            return subtask
    raise NotFound("Sub-task not found.")


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


class NoteService:
    def __init__(self, projects: ProjectRepository) -> None:
        self.projects = projects

    def _load_note(self, project: Project, note_id: str) -> Note:
        note = self.projects.get_note(note_id)
        if note is None or note.project_id != project.id:
            raise NotFound("Note not found.")
        return note

    def create_note(self, project_id: str, requester_id: str, title: str, content: str = "") -> Note:
        project_id = parse_id(project_id, "project_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_elevated(project, requester_id)

        note = Note(project_id=project.id, title=title.strip(), content=content, created_by=requester_id)
        self.projects.create_note(note)
        return note

    def get_note(self, project_id: str, note_id: str, requester_id: str) -> Note:
        project_id = parse_id(project_id, "project_id")
        note_id = parse_id(note_id, "note_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_member(project, requester_id)
        return self._load_note(project, note_id)

    def list_notes(self, project_id: str, requester_id: str) -> list[Note]:
        project_id = parse_id(project_id, "project_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_member(project, requester_id)
        return self.projects.list_notes(project.id)

    def update_note(
        self,
        project_id: str,
        note_id: str,
        requester_id: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Note:
        project_id = parse_id(project_id, "project_id")
        note_id = parse_id(note_id, "note_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_elevated(project, requester_id)
        note = self._load_note(project, note_id)
        if title is None and content is None:
            raise InvalidInput("Nothing to update.")

        if title is not None:
            note.title = title.strip()
        if content is not None:
            note.content = content
        self.projects.update_note(note)
        return note

    def delete_note(self, project_id: str, note_id: str, requester_id: str) -> None:
        project_id = parse_id(project_id, "project_id")
        note_id = parse_id(note_id, "note_id")
        requester_id = parse_id(requester_id, "requester_id")
        project = _load_project(self.projects, project_id)
        require_elevated(project, requester_id)
        note = self._load_note(project, note_id)
        self.projects.delete_note(note.id)
