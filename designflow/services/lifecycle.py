"""Optimization lifecycle.

    PENDING --optimize--> REVISED --apply / generate_code--> APPROVED
                          REVISED, APPROVED --refine--> REVISED
    PENDING, REVISED, APPROVED --reject--> REJECTED (terminal)

REFINED is the same state as REVISED. Every transition is one request; only
``apply`` writes two rows, and it does so inside a single transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional, Tuple

from sqlalchemy.orm import Session

from designflow.core.errors import InvalidTransition, MissingData, NoData, NoDesign
from designflow.db import repository as repo
from designflow.db.models import Optimization, OptimizationStatus, Page, ProjectStatus, Refinement
from designflow.schemas import CodeOptions, canvas_to_json
from designflow.services.ai import AIAssistant, AnalysisResult, CodeBundle, RefinementResult

logger = logging.getLogger(__name__)

S = OptimizationStatus

ALLOWED: Dict[OptimizationStatus, FrozenSet[OptimizationStatus]] = {
    S.PENDING: frozenset({S.REVISED, S.REJECTED}),
    S.REVISED: frozenset({S.REVISED, S.APPROVED, S.REJECTED}),
    S.APPROVED: frozenset({S.REVISED, S.APPROVED, S.REJECTED}),
    S.REJECTED: frozenset(),
}
REFINABLE = frozenset({S.REVISED, S.APPROVED})


def can_transition(current: OptimizationStatus, target: OptimizationStatus) -> bool:
    return OptimizationStatus(target) in ALLOWED.get(OptimizationStatus(current), frozenset())


class OptimizationLifecycle:
    def __init__(self, db: Session, ai: Optional[AIAssistant] = None):
        self.db = db
        self.ai = ai

    def _transition(self, opt: Optimization, target: OptimizationStatus) -> None:
        current = OptimizationStatus(opt.status)
        if not can_transition(current, target):
            raise InvalidTransition(f"Cannot move optimization from {current.value} to {OptimizationStatus(target).value}")
        opt.status = target

    def _require_ai(self) -> AIAssistant:
        if self.ai is None:
            raise RuntimeError("OptimizationLifecycle needs an AIAssistant for this step")
        return self.ai

    def create(self, page: Page) -> Optimization:
        """Snapshot the page canvas into a new PENDING optimization (flushed, not committed)."""
        if not page.canvas_data:
            raise NoData()
        return repo.create_optimization(self.db, page.id, canvas_to_json(page.canvas_data))

    def optimize(self, opt: Optimization, analysis: AnalysisResult) -> Optimization:
        self._transition(opt, S.REVISED)
        opt.optimized_design = analysis.optimized_design.to_json()
        opt.suggestions = analysis.suggestions
        opt.ai_analysis = analysis.analysis
        opt.quality_score = analysis.quality_score
        return opt

    def analyze(self, page: Page) -> Tuple[Optimization, AnalysisResult]:
        """Create an optimization for ``page`` and run the first AI pass over it."""
        ai = self._require_ai()
        if not page.canvas_data:
            raise NoData()
        analysis = ai.analyze(page.canvas_data)
        with repo.atomic(self.db):
            opt = self.create(page)
            self.optimize(opt, analysis)
            repo.set_project_status(self.db, page.project_id, ProjectStatus.ANALYZED)
        self.db.refresh(opt)
        logger.info("Optimization %s created for page %s (score=%s)", opt.id, page.id, opt.quality_score)
        return opt, analysis

    def ensure_refinable(self, opt: Optimization) -> None:
        if not opt.original_design or not opt.optimized_design:
            raise MissingData()
        if OptimizationStatus(opt.status) not in REFINABLE:
            raise InvalidTransition(f"Cannot refine an optimization in status {OptimizationStatus(opt.status).value}")

    def refine(self, opt: Optimization, feedback: str, category: str) -> Tuple[Refinement, RefinementResult]:
        self.ensure_refinable(opt)
        result = self._require_ai().refine(opt.original_design, opt.optimized_design, feedback, category)
        with repo.atomic(self.db):
            opt.optimized_design = result.refined_design.to_json()
            opt.user_feedback = {
                "feedback": feedback,
                "category": category,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            self._transition(opt, S.REVISED)
            refinement = repo.add_refinement(
                self.db,
                opt.id,
                category=category,
                feedback=feedback,
                refined_design=opt.optimized_design,
                changes=result.changes,
                explanation=result.explanation,
            )
        self.db.refresh(opt)
        logger.info("Optimization %s refined (%s)", opt.id, category)
        return refinement, result

    def apply(self, opt: Optimization) -> Page:
        """Copy the optimized design onto the page and approve, atomically."""
        if not opt.optimized_design:
            raise NoDesign()
        page = self.db.get(Page, opt.page_id)
        with repo.atomic(self.db):
            page.canvas_data = canvas_to_json(opt.optimized_design)
            self.db.flush()
            self._transition(opt, S.APPROVED)
        logger.info("Optimization %s applied to page %s", opt.id, page.id)
        return page

    def ensure_code_ready(self, opt: Optimization) -> None:
        if not opt.optimized_design:
            raise NoDesign("This optimization record has no optimized design to generate code from")
        if not can_transition(opt.status, S.APPROVED):
            raise InvalidTransition(f"Cannot generate code for an optimization in status {OptimizationStatus(opt.status).value}")

    def generate_code(self, opt: Optimization, options: Optional[CodeOptions] = None) -> CodeBundle:
        self.ensure_code_ready(opt)
        page = self.db.get(Page, opt.page_id)
        project = page.project
        bundle = self._require_ai().generate_code(opt.optimized_design, project.name, page.name, options or CodeOptions())
        with repo.atomic(self.db):
            opt.generated_code = bundle.model_dump(mode="json", by_alias=True)
            self._transition(opt, S.APPROVED)
            repo.set_project_status(self.db, project.id, ProjectStatus.COMPLETED)
        self.db.refresh(opt)
        logger.info("Generated %d files for optimization %s", len(bundle.files), opt.id)
        return bundle

    def reject(self, opt: Optimization) -> Optimization:
        with repo.atomic(self.db):
            self._transition(opt, S.REJECTED)
        self.db.refresh(opt)
        return opt
