from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from designflow.core.authz import get_current_user, get_guard
from designflow.core.errors import NotFound
from designflow.core.guard import AuthorizationGuard, ResourceKind
from designflow.db import repository as repo
from designflow.db.models import Comment, User
from designflow.db.session import get_db
from designflow.schemas import CommentCreate, CommentOut, CommentThread, CommentUpdate

router = APIRouter()


@router.get("")
def list_comments(
    project_id: str = Query(..., alias="projectId"),
    page_id: Optional[str] = Query(None, alias="pageId"),
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    # owners see every thread, everyone else only the threads they started
    resolution = guard.resolve(ResourceKind.PROJECT, project_id)
    author = None if user.id in resolution.owners else user.id
    threads = repo.list_comments(db, project_id, author_id=author, page_id=page_id)
    return {"comments": [CommentThread.model_validate(c) for c in threads]}


@router.post("", status_code=201)
def create_comment(
    payload: CommentCreate,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    if payload.parent_id is not None:
        # replying needs the same access as editing the thread it joins
        parent = db.get(Comment, payload.parent_id)
        if parent is None:
            raise NotFound("Comment not found")
        guard.comment(user.id, parent.parent_id or parent.id)
    comment = repo.create_comment(
        db,
        payload.project_id,
        user.id,
        payload.content,
        page_id=payload.page_id,
        parent_id=payload.parent_id,
        position_x=payload.position_x,
        position_y=payload.position_y,
    )
    return {"comment": CommentOut.model_validate(comment)}


@router.patch("/{comment_id}")
def update_comment(
    comment_id: str,
    payload: CommentUpdate,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    comment = repo.update_comment(db, guard.comment(user.id, comment_id), payload.model_dump(exclude_unset=True))
    return {"comment": CommentOut.model_validate(comment)}


@router.delete("/{comment_id}")
def delete_comment(
    comment_id: str,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    repo.delete_row(db, guard.comment(user.id, comment_id))
    return {"message": "Comment deleted successfully"}
