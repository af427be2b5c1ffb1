"""Ownership-chain authorization.

Each resource kind maps to a list of foreign-key hops that lead to the owning
Project; the Project's ``user_id`` is the owner. Comments additionally accept
their author. The chain is walked from the database on every call.

A missing link anywhere in the chain (the resource itself or any ancestor) is
reported as ``NotFound``; ``Forbidden`` is only raised once the chain fully
resolves to an owner other than the actor.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set, Tuple, Type

from sqlalchemy.orm import Session

from designflow.core.errors import Forbidden, NotFound
from designflow.db.models import Comment, Optimization, Page, Project

logger = logging.getLogger(__name__)


class ResourceKind(str, enum.Enum):
    PROJECT = "project"
    PAGE = "page"
    OPTIMIZATION = "optimization"
    COMMENT = "comment"


@dataclass(frozen=True)
class Hop:
    """Follow ``foreign_key`` on the current row to a row of ``parent``."""

    foreign_key: str
    parent: Type[Any]


@dataclass(frozen=True)
class Chain:
    model: Type[Any]
    hops: Tuple[Hop, ...]
    label: str
    author_field: Optional[str] = None


OWNERSHIP_CHAINS: Dict[ResourceKind, Chain] = {
    ResourceKind.PROJECT: Chain(Project, (), "Project"),
    ResourceKind.PAGE: Chain(Page, (Hop("project_id", Project),), "Page"),
    ResourceKind.OPTIMIZATION: Chain(
        Optimization, (Hop("page_id", Page), Hop("project_id", Project)), "Optimization"
    ),
    ResourceKind.COMMENT: Chain(Comment, (Hop("project_id", Project),), "Comment", author_field="user_id"),
}


@dataclass
class Resolution:
    resource: Any
    project: Project
    owners: Set[str]


class AuthorizationGuard:
    def __init__(self, db: Session, chains: Dict[ResourceKind, Chain] = OWNERSHIP_CHAINS):
        self.db = db
        self.chains = chains

    def resolve(self, kind: ResourceKind, resource_id: str) -> Resolution:
        """Walk the ownership chain; raise NotFound if any link is missing."""
        chain = self.chains[ResourceKind(kind)]
        resource = self.db.get(chain.model, resource_id) if resource_id else None
        if resource is None:
            raise NotFound(f"{chain.label} not found")

        row = resource
        for hop in chain.hops:
            parent_id = getattr(row, hop.foreign_key)
            row = self.db.get(hop.parent, parent_id) if parent_id else None
            if row is None:
                # dangling reference: same answer as a missing resource
                logger.warning("Broken ownership chain for %s %s at %s", chain.label, resource_id, hop.foreign_key)
                raise NotFound(f"{chain.label} not found")

        project = row
        if project.user_id is None:
            raise NotFound(f"{chain.label} not found")
        owners = {project.user_id}
        if chain.author_field:
            author = getattr(resource, chain.author_field)
            if author:
                owners.add(author)
        return Resolution(resource=resource, project=project, owners=owners)

    def authorize(self, actor_id: str, kind: ResourceKind, resource_id: str):
        """Return the resource if ``actor_id`` owns it, else raise NotFound/Forbidden."""
        resolution = self.resolve(kind, resource_id)
        if actor_id not in resolution.owners:
            raise Forbidden()
        return resolution.resource

    def check(self, actor_id: str, kind: ResourceKind, resource_id: str) -> Optional[str]:
        """Non-raising variant: None when allowed, else the error code."""
        try:
            self.authorize(actor_id, kind, resource_id)
        except (NotFound, Forbidden) as e:
            return e.code
        return None

    def project(self, actor_id: str, project_id: str) -> Project:
        return self.authorize(actor_id, ResourceKind.PROJECT, project_id)

    def page(self, actor_id: str, page_id: str) -> Page:
        return self.authorize(actor_id, ResourceKind.PAGE, page_id)

    def optimization(self, actor_id: str, optimization_id: str) -> Optimization:
        return self.authorize(actor_id, ResourceKind.OPTIMIZATION, optimization_id)

    def comment(self, actor_id: str, comment_id: str) -> Comment:
        return self.authorize(actor_id, ResourceKind.COMMENT, comment_id)
