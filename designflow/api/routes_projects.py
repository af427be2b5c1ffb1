from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from designflow.api.presenters import project_detail, project_list_item
from designflow.core.authz import get_current_user, get_guard
from designflow.core.guard import AuthorizationGuard
from designflow.db import repository as repo
from designflow.db.models import User
from designflow.db.session import get_db
from designflow.schemas import ProjectCreate, ProjectOut, ProjectUpdate

router = APIRouter()


@router.get("")
def list_projects(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"projects": [project_list_item(p) for p in repo.list_projects(db, user.id)]}


@router.post("", status_code=201)
def create_project(payload: ProjectCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = repo.create_project(db, user.id, payload.name, payload.description)
    return {"project": ProjectOut.model_validate(project)}


@router.get("/{project_id}")
def get_project(project_id: str, user: User = Depends(get_current_user), guard: AuthorizationGuard = Depends(get_guard)):
    return {"project": project_detail(guard.project(user.id, project_id))}


@router.put("/{project_id}")
def update_project(
    project_id: str,
    payload: ProjectUpdate,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    project = guard.project(user.id, project_id)
    project = repo.update_project(db, project, payload.model_dump(exclude_unset=True))
    return {"project": ProjectOut.model_validate(project)}


@router.delete("/{project_id}")
def delete_project(
    project_id: str,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    repo.delete_row(db, guard.project(user.id, project_id))
    return {"message": "Project deleted successfully"}
