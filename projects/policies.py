"""
projects/policies.py -- Project-scoped authorization decisions.

Pure functions over a Project's member list: no I/O, no store access, no
clock. Services load the project, call one of the require_* helpers, and only
then mutate anything.

Capability table:
  read project / task / note / members          require_member
  edit or delete project, manage members        require_role(Role.admin)
  create/delete task, create/delete sub-task    require_elevated
  create/edit/delete note                       require_elevated
  change task fields other than status          require_elevated
  change task status, tick a sub-task           require_member

Every denial is Forbidden. Deciding that a task or note does not belong to
the project in the URL (NotFound) is the service's job, not this module's.
"""

from __future__ import annotations

from core.errors import Forbidden
from projects.models import ELEVATED_ROLES, Project, Role, Task, TaskPatch


def _role_of(project: Project, user_id: str) -> Role | None:
    for member in project.members:
        if member.user_id == user_id:
            return member.role
    return None


def is_member(project: Project, user_id: str) -> bool:
    return _role_of(project, user_id) is not None


def has_role(project: Project, user_id: str, role: Role) -> bool:
    """Exact role match. An admin does not implicitly "have" project_admin."""
    return _role_of(project, user_id) == role


def has_elevated(project: Project, user_id: str) -> bool:
    return _role_of(project, user_id) in ELEVATED_ROLES


def require_member(project: Project, user_id: str) -> None:
    if not is_member(project, user_id):
        raise Forbidden("You are not a member of this project.")


def require_role(project: Project, user_id: str, role: Role) -> None:
    if not has_role(project, user_id, role):
        raise Forbidden(f"This action requires the {role.value} role.")


def require_elevated(project: Project, user_id: str) -> None:
    if not has_elevated(project, user_id):
        raise Forbidden("This action requires the admin or project_admin role.")


def changed_fields(task: Task, patch: TaskPatch) -> set[str]:
    """Names of the patch fields that would actually change task.

    A field present in the patch with the value the task already has is a
    no-op and does not count.
    """
    changed = set()
    if patch.title is not None and patch.title != task.title:
        changed.add("title")
    if patch.description is not None and patch.description != task.description:
        changed.add("description")
    if patch.status is not None and patch.status != task.status:
        changed.add("status")
    if patch.assignee_id is not None and patch.assignee_id != task.assignee_id:
        changed.add("assignee_id")
    return changed


def authorize_task_patch(project: Project, user_id: str, task: Task, patch: TaskPatch) -> None:
    """Allow the patch or raise Forbidden.

    Elevated members may change anything. Any other member may change the
    status alone; a patch that would also change another field is refused
    as a whole, before any field is applied.
    """
    require_member(project, user_id)
    if has_elevated(project, user_id):
        return
    if changed_fields(task, patch) - {"status"}:
        raise Forbidden("Members may only change a task's status.")
