"""
api/routes/v1/tasks.py -- Task and sub-task REST endpoints.

Routes:
  GET    /api/v1/tasks/{project_id}                                     -- list (member)
  POST   /api/v1/tasks/{project_id}                                     -- create (admin, project_admin)
  GET    /api/v1/tasks/{project_id}/t/{task_id}                         -- read (member)
  PATCH  /api/v1/tasks/{project_id}/t/{task_id}                         -- partial update
  DELETE /api/v1/tasks/{project_id}/t/{task_id}                         -- delete (admin, project_admin)
  POST   /api/v1/tasks/{project_id}/t/{task_id}/subtasks                -- add sub-task (admin, project_admin)
  PATCH  /api/v1/tasks/{project_id}/t/{task_id}/subtasks/{subtask_id}   -- tick / untick (member)
  DELETE /api/v1/tasks/{project_id}/t/{task_id}/subtasks/{subtask_id}   -- delete (admin, project_admin)

PATCH semantics: omitted fields are left alone; a plain member may only send
a status change. Every route requires a Bearer access token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import SubTaskCreate, SubTaskResponse, SubTaskUpdate, TaskCreate, TaskPatchRequest, TaskResponse
from auth.dependencies import get_current_user_id
from projects.models import TaskPatch
from projects.service import TaskService

router = APIRouter()


def _tasks(request: Request) -> TaskService:
    return request.app.state.tasks


@router.get("/tasks/{project_id}", response_model=list[TaskResponse])
def list_tasks(request: Request, project_id: str, user_id: str = Depends(get_current_user_id)) -> list[TaskResponse]:
    return [TaskResponse.from_task(t) for t in _tasks(request).list_tasks(project_id, user_id)]


@router.post("/tasks/{project_id}", response_model=TaskResponse, status_code=201)
def create_task(
    request: Request,
    project_id: str,
    body: TaskCreate,
    user_id: str = Depends(get_current_user_id),
) -> TaskResponse:
    task = _tasks(request).create_task(project_id, user_id, body.title, body.description, body.assignee_id)
    return TaskResponse.from_task(task)


@router.get("/tasks/{project_id}/t/{task_id}", response_model=TaskResponse)
def get_task(
    request: Request,
    project_id: str,
    task_id: str,
    user_id: str = Depends(get_current_user_id),
) -> TaskResponse:
    return TaskResponse.from_task(_tasks(request).get_task(project_id, task_id, user_id))


@router.patch("/tasks/{project_id}/t/{task_id}", response_model=TaskResponse)
def update_task(
    request: Request,
    project_id: str,
    task_id: str,
    body: TaskPatchRequest,
    user_id: str = Depends(get_current_user_id),
) -> TaskResponse:
    patch = TaskPatch(**body.model_dump(exclude_none=True))
    return TaskResponse.from_task(_tasks(request).update_task(project_id, task_id, user_id, patch))


@router.delete("/tasks/{project_id}/t/{task_id}", status_code=204)
def delete_task(
    request: Request,
    project_id: str,
    task_id: str,
    user_id: str = Depends(get_current_user_id),
) -> Response:
    _tasks(request).delete_task(project_id, task_id, user_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Sub-tasks
# ---------------------------------------------------------------------------


@router.post("/tasks/{project_id}/t/{task_id}/subtasks", response_model=SubTaskResponse, status_code=201)
def create_subtask(
    request: Request,
    project_id: str,
    task_id: str,
    body: SubTaskCreate,
    user_id: str = Depends(get_current_user_id),
) -> SubTaskResponse:
    subtask = _tasks(request).create_subtask(project_id, task_id, user_id, body.title)
    return SubTaskResponse.from_subtask(subtask)


@router.patch("/tasks/{project_id}/t/{task_id}/subtasks/{subtask_id}", response_model=SubTaskResponse)
def update_subtask(
    request: Request,
    project_id: str,
    task_id: str,
    subtask_id: str,
    body: SubTaskUpdate,
    user_id: str = Depends(get_current_user_id),
) -> SubTaskResponse:
    subtask = _tasks(request).update_subtask(project_id, task_id, subtask_id, user_id, body.completed)
    return SubTaskResponse.from_subtask(subtask)


@router.delete("/tasks/{project_id}/t/{task_id}/subtasks/{subtask_id}", status_code=204)
def delete_subtask(
    request: Request,
    project_id: str,
    task_id: str,
    subtask_id: str,
    user_id: str = Depends(get_current_user_id),
) -> Response:
    _tasks(request).delete_subtask(project_id, task_id, subtask_id, user_id)
    return Response(status_code=204)
