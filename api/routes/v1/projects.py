"""
api/routes/v1/projects.py -- Project and membership REST endpoints.

Routes:
  GET    /api/v1/projects                                -- projects the caller belongs to
  POST   /api/v1/projects                                -- create; caller becomes admin
  GET    /api/v1/projects/{project_id}                   -- read (member)
  PUT    /api/v1/projects/{project_id}                   -- edit name/description (admin)
  DELETE /api/v1/projects/{project_id}                   -- delete with tasks and notes (admin)
  GET    /api/v1/projects/{project_id}/members           -- list members (member)
  POST   /api/v1/projects/{project_id}/members           -- add by email (admin)
  PUT    /api/v1/projects/{project_id}/members/{user_id} -- change role (admin)
  DELETE /api/v1/projects/{project_id}/members/{user_id} -- remove (admin)

Every route requires a Bearer access token. Permission checks happen in
ProjectService, not here; this module only translates HTTP to service calls.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import MemberAdd, MemberResponse, MemberRoleUpdate, ProjectCreate, ProjectResponse, ProjectUpdate
from auth.dependencies import get_current_user_id
from projects.service import ProjectService

router = APIRouter()


def _projects(request: Request) -> ProjectService:
    return request.app.state.projects


@router.get("/projects", response_model=list[ProjectResponse])
def list_projects(request: Request, user_id: str = Depends(get_current_user_id)) -> list[ProjectResponse]:
    return [ProjectResponse.from_project(p) for p in _projects(request).list_projects(user_id)]


@router.post("/projects", response_model=ProjectResponse, status_code=201)
def create_project(
    request: Request,
    body: ProjectCreate,
    user_id: str = Depends(get_current_user_id),
) -> ProjectResponse:
    project = _projects(request).create_project(user_id, body.name, body.description)
    return ProjectResponse.from_project(project)


@router.get("/projects/{project_id}", response_model=ProjectResponse)
def get_project(request: Request, project_id: str, user_id: str = Depends(get_current_user_id)) -> ProjectResponse:
    return ProjectResponse.from_project(_projects(request).get_project(project_id, user_id))


@router.put("/projects/{project_id}", response_model=ProjectResponse)
def update_project(
    request: Request,
    project_id: str,
    body: ProjectUpdate,
    user_id: str = Depends(get_current_user_id),
) -> ProjectResponse:
    project = _projects(request).update_project(project_id, user_id, name=body.name, description=body.description)
    return ProjectResponse.from_project(project)


@router.delete("/projects/{project_id}", status_code=204)
def delete_project(request: Request, project_id: str, user_id: str = Depends(get_current_user_id)) -> Response:
    _projects(request).delete_project(project_id, user_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@router.get("/projects/{project_id}/members", response_model=list[MemberResponse])
def list_members(
    request: Request,
    project_id: str,
    user_id: str = Depends(get_current_user_id),
) -> list[MemberResponse]:
    return [MemberResponse.from_member(m, u) for m, u in _projects(request).list_members(project_id, user_id)]


@router.post("/projects/{project_id}/members", response_model=MemberResponse, status_code=201)
def add_member(
    request: Request,
    project_id: str,
    body: MemberAdd,
    user_id: str = Depends(get_current_user_id),
) -> MemberResponse:
    member = _projects(request).add_member(project_id, user_id, body.email, body.role)
    return MemberResponse.from_member(member)


@router.put("/projects/{project_id}/members/{member_id}", response_model=MemberResponse)
def update_member_role(
    request: Request,
    project_id: str,
    member_id: str,
    body: MemberRoleUpdate,
    user_id: str = Depends(get_current_user_id),
) -> MemberResponse:
    member = _projects(request).update_member_role(project_id, user_id, member_id, body.role)
    return MemberResponse.from_member(member)


@router.delete("/projects/{project_id}/members/{member_id}", status_code=204)
def remove_member(
    request: Request,
    project_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
) -> Response:
    _projects(request).remove_member(project_id, user_id, member_id)
    return Response(status_code=204)
