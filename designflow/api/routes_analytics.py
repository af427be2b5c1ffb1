from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from designflow.core.authz import get_current_user, get_guard
from designflow.core.guard import AuthorizationGuard
from designflow.db import repository as repo
from designflow.db.models import User
from designflow.db.session import get_db
from designflow.services.analytics import summarize_project

router = APIRouter()


@router.get("/project/{project_id}")
def project_analytics(
    project_id: str,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    guard.project(user.id, project_id)
    return summarize_project(repo.optimizations_for_project(db, project_id))
