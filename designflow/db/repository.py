from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from designflow.core.errors import AlreadyExists, NotFound
from designflow.db.models import (
    Comment,
    Optimization,
    OptimizationStatus,
    Page,
    Project,
    ProjectStatus,
    Refinement,
    SkillLevel,
    User,
)

logger = logging.getLogger(__name__)


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or nothing."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def _require(session: Session, model, ident: Optional[str], label: str):
    row = session.get(model, ident) if ident else None
    if row is None:
        raise NotFound(f"{label} not found")
    return row


# ------- Users -------

def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.scalars(select(User).where(User.email == email.strip().lower())).first()


def create_user(
    session: Session,
    email: str,
    password_hash: str,
    name: Optional[str] = None,
    skill_level: SkillLevel = SkillLevel.BEGINNER,
) -> User:
    email = email.strip().lower()
    if get_user_by_email(session, email):
        raise AlreadyExists()
    user = User(email=email, password_hash=password_hash, name=name, skill_level=skill_level)
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # lost a race with a concurrent signup for the same address
        session.rollback()
        raise AlreadyExists()
    session.refresh(user)
    return user


# ------- Projects -------

def create_project(session: Session, user_id: str, name: str, description: Optional[str] = None) -> Project:
    _require(session, User, user_id, "User")
    project = Project(user_id=user_id, name=name, description=description, status=ProjectStatus.DRAFT)
    session.add(project)
    session.commit()
    session.refresh(project)
    return project


def list_projects(session: Session, user_id: str) -> List[Project]:
    stmt = (
        select(Project)
        .where(Project.user_id == user_id)
        .options(selectinload(Project.pages))
        .order_by(Project.updated_at.desc())
    )
    return list(session.scalars(stmt).all())


def update_project(session: Session, project: Project, changes: Dict[str, Any]) -> Project:
    # user_id is immutable
    for field in ("name", "description", "status"):
        if field in changes and changes[field] is not None:
            setattr(project, field, changes[field])
    session.commit()
    session.refresh(project)
    return project


def set_project_status(session: Session, project_id: str, status: ProjectStatus) -> None:
    project = _require(session, Project, project_id, "Project")
    project.status = status


def delete_row(session: Session, row) -> None:
    session.delete(row)
    session.commit()


# ------- Pages -------

def create_page(
    session: Session,
    project_id: str,
    name: str,
    canvas_data: Optional[Dict[str, Any]] = None,
    order: Optional[int] = None,
    source_image_url: Optional[str] = None,
) -> Page:
    _require(session, Project, project_id, "Project")
    if order is None:
        max_order = session.scalar(select(func.max(Page.order)).where(Page.project_id == project_id))
        order = (max_order if max_order is not None else -1) + 1
    page = Page(
        project_id=project_id,
        name=name,
        order=order,
        canvas_data=canvas_data,
        source_image_url=source_image_url,
    )
    session.add(page)
    session.commit()
    session.refresh(page)
    return page


def list_pages(session: Session, project_id: str) -> List[Page]:
    stmt = select(Page).where(Page.project_id == project_id).order_by(Page.order.asc(), Page.created_at.asc())
    return list(session.scalars(stmt).all())


def update_page(session: Session, page: Page, changes: Dict[str, Any]) -> Page:
    for field in ("name", "order", "canvas_data"):
        if field in changes and changes[field] is not None:
            setattr(page, field, changes[field])
    session.commit()
    session.refresh(page)
    return page


# ------- Optimizations -------

def create_optimization(session: Session, page_id: str, original_design: Dict[str, Any]) -> Optimization:
    _require(session, Page, page_id, "Page")
    optimization = Optimization(
        page_id=page_id,
        original_design=original_design,
        status=OptimizationStatus.PENDING,
    )
    session.add(optimization)
    session.flush()
    return optimization


def latest_optimization(session: Session, page_id: str) -> Optional[Optimization]:
    stmt = (
        select(Optimization)
        .where(Optimization.page_id == page_id)
        .order_by(Optimization.created_at.desc())
        .limit(1)
    )
    return session.scalars(stmt).first()


def optimizations_for_page(session: Session, page_id: str) -> List[Optimization]:
    """Newest first, each with its refinements (newest first)."""
    stmt = (
        select(Optimization)
        .where(Optimization.page_id == page_id)
        .options(selectinload(Optimization.refinements))
        .order_by(Optimization.created_at.desc())
    )
    return list(session.scalars(stmt).all())


def optimizations_for_project(session: Session, project_id: str) -> List[Optimization]:
    stmt = (
        select(Optimization)
        .join(Page, Optimization.page_id == Page.id)
        .where(Page.project_id == project_id)
        .options(selectinload(Optimization.refinements))
        .order_by(Optimization.created_at.asc())
    )
    return list(session.scalars(stmt).all())


def add_refinement(
    session: Session,
    optimization_id: str,
    category: str,
    feedback: Optional[str] = None,
    refined_design: Optional[Dict[str, Any]] = None,
    changes: Optional[List[Any]] = None,
    explanation: Optional[str] = None,
) -> Refinement:
    _require(session, Optimization, optimization_id, "Optimization")
    refinement = Refinement(
        optimization_id=optimization_id,
        category=category,
        feedback=feedback,
        refined_design=refined_design,
        changes=changes,
        explanation=explanation,
    )
    session.add(refinement)
    session.flush()
    return refinement


# ------- Comments -------

def create_comment(
    session: Session,
    project_id: str,
    user_id: str,
    content: str,
    page_id: Optional[str] = None,
    parent_id: Optional[str] = None,
    position_x: Optional[float] = None,
    position_y: Optional[float] = None,
) -> Comment:
    _require(session, Project, project_id, "Project")
    _require(session, User, user_id, "User")
    if page_id is not None:
        page = session.get(Page, page_id)
        if page is None or page.project_id != project_id:
            raise NotFound("Page not found")
    if parent_id is not None:
        parent = session.get(Comment, parent_id)
        if parent is None or parent.project_id != project_id:
            raise NotFound("Comment not found")
        # threads are one level deep; a reply to a reply joins the root
        parent_id = parent.parent_id or parent.id
    comment = Comment(
        project_id=project_id,
        user_id=user_id,
        content=content,
        page_id=page_id,
        parent_id=parent_id,
        position_x=position_x,
        position_y=position_y,
    )
    session.add(comment)
    session.commit()
    session.refresh(comment)
    return comment


def list_comments(
    session: Session,
    project_id: str,
    author_id: Optional[str] = None,
    page_id: Optional[str] = None,
) -> List[Comment]:
    """Top-level comments, newest first, each with its replies (oldest first)."""
    stmt = (
        select(Comment)
        .where(Comment.project_id == project_id, Comment.parent_id.is_(None))
        .options(selectinload(Comment.user), selectinload(Comment.replies).selectinload(Comment.user))
    )
    if author_id is not None:
        stmt = stmt.where(Comment.user_id == author_id)
    if page_id is not None:
        stmt = stmt.where(Comment.page_id == page_id)
    return list(session.scalars(stmt.order_by(Comment.created_at.desc())).all())


def update_comment(session: Session, comment: Comment, changes: Dict[str, Any]) -> Comment:
    for field in ("content", "is_resolved"):
        if field in changes and changes[field] is not None:
            setattr(comment, field, changes[field])
    session.commit()
    session.refresh(comment)
    return comment
