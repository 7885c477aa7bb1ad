"""
api/routes/v1/notes.py -- Project note REST endpoints.

Routes:
  GET    /api/v1/notes/{project_id}              -- list (member)
  POST   /api/v1/notes/{project_id}              -- create (admin, project_admin)
  GET    /api/v1/notes/{project_id}/n/{note_id}  -- read (member)
  PUT    /api/v1/notes/{project_id}/n/{note_id}  -- edit (admin, project_admin)
  DELETE /api/v1/notes/{project_id}/n/{note_id}  -- delete (admin, project_admin)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import NoteCreate, NoteResponse, NoteUpdate
from auth.dependencies import get_current_user_id
from projects.service import NoteService

router = APIRouter()


def _notes(request: Request) -> NoteService:
    return request.app.state.notes


@router.get("/notes/{project_id}", response_model=list[NoteResponse])
def list_notes(request: Request, project_id: str, user_id: str = Depends(get_current_user_id)) -> list[NoteResponse]:
    return [NoteResponse.from_note(n) for n in _notes(request).list_notes(project_id, user_id)]


@router.post("/notes/{project_id}", response_model=NoteResponse, status_code=201)
def create_note(
    request: Request,
    project_id: str,
    body: NoteCreate,
    user_id: str = Depends(get_current_user_id),
) -> NoteResponse:
    return NoteResponse.from_note(_notes(request).create_note(project_id, user_id, body.title, body.content))


@router.get("/notes/{project_id}/n/{note_id}", response_model=NoteResponse)
def get_note(
    request: Request,
    project_id: str,
    note_id: str,
    user_id: str = Depends(get_current_user_id),
) -> NoteResponse:
    return NoteResponse.from_note(_notes(request).get_note(project_id, note_id, user_id))


@router.put("/notes/{project_id}/n/{note_id}", response_model=NoteResponse)
def update_note(
    request: Request,
    project_id: str,
    note_id: str,
    body: NoteUpdate,
    user_id: str = Depends(get_current_user_id),
) -> NoteResponse:
    note = _notes(request).update_note(project_id, note_id, user_id, title=body.title, content=body.content)
    return NoteResponse.from_note(note)


@router.delete("/notes/{project_id}/n/{note_id}", status_code=204)
def delete_note(
    request: Request,
    project_id: str,
    note_id: str,
    user_id: str = Depends(get_current_user_id),
) -> Response:
    _notes(request).delete_note(project_id, note_id, user_id)
    return Response(status_code=204)
