from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from designflow.api.presenters import page_with_latest
from designflow.core.authz import get_current_user, get_guard
from designflow.core.guard import AuthorizationGuard
from designflow.db import repository as repo
from designflow.db.models import User
from designflow.db.session import get_db
from designflow.schemas import PageCreate, PageOut, PageUpdate

router = APIRouter()


@router.get("")
def list_pages(
    project_id: str = Query(..., alias="projectId"),
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    guard.project(user.id, project_id)
    return {"pages": [page_with_latest(p) for p in repo.list_pages(db, project_id)]}


@router.post("", status_code=201)
def create_page(
    payload: PageCreate,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    guard.project(user.id, payload.project_id)
    page = repo.create_page(
        db,
        payload.project_id,
        payload.name,
        canvas_data=payload.canvas_data.to_json() if payload.canvas_data else None,
        order=payload.order,
    )
    return {"page": PageOut.model_validate(page)}


@router.get("/{page_id}")
def get_page(page_id: str, user: User = Depends(get_current_user), guard: AuthorizationGuard = Depends(get_guard)):
    return {"page": page_with_latest(guard.page(user.id, page_id))}


@router.put("/{page_id}")
def update_page(
    page_id: str,
    payload: PageUpdate,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    page = guard.page(user.id, page_id)
    changes = {"name": payload.name, "order": payload.order}
    if payload.canvas_data is not None:
        changes["canvas_data"] = payload.canvas_data.to_json()
    page = repo.update_page(db, page, changes)
    return {"page": PageOut.model_validate(page)}


@router.delete("/{page_id}")
def delete_page(
    page_id: str,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    repo.delete_row(db, guard.page(user.id, page_id))
    return {"message": "Page deleted successfully"}
