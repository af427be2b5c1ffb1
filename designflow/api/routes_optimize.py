"""
Optimization endpoints. Every handler runs: session -> ownership guard ->
AI quota (AI-invoking endpoints only) -> lifecycle step.
"""
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from designflow.api.deps import get_lifecycle, spend_ai_quota
from designflow.core.authz import get_current_user, get_guard
from designflow.core.errors import NoData, NoOptimization
from designflow.core.guard import AuthorizationGuard
from designflow.core.ratelimit import QuotaLimiter, get_quota_limiter
from designflow.db import repository as repo
from designflow.db.models import Page, User
from designflow.db.session import get_db
from designflow.schemas import (
    AnalyzeRequest,
    FeedbackRequest,
    GenerateCodeRequest,
    OptimizationOut,
    OptimizationWithRefinements,
    PageActionRequest,
    RefineRequest,
    RefinementOut,
)
from designflow.services.ai import AIAssistant, get_ai_assistant
from designflow.services.lifecycle import OptimizationLifecycle

router = APIRouter()


def _current_design(db: Session, page: Page):
    latest = repo.latest_optimization(db, page.id)
    design = (latest.optimized_design if latest else None) or page.canvas_data
    if not design:
        raise NoData()
    return design


@router.get("")
def list_optimizations(
    page_id: str = Query(..., alias="pageId"),
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    guard.page(user.id, page_id)
    rows = repo.optimizations_for_page(db, page_id)
    return {"optimizations": [OptimizationWithRefinements.model_validate(o) for o in rows]}


@router.post("/analyze", status_code=201)
def analyze(
    payload: AnalyzeRequest,
    response: Response,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    limiter: QuotaLimiter = Depends(get_quota_limiter),
    lifecycle: OptimizationLifecycle = Depends(get_lifecycle),
):
    page = guard.page(user.id, payload.page_id)
    if not page.canvas_data:
        raise NoData()
    spend_ai_quota(limiter, user.id, response)
    opt, analysis = lifecycle.analyze(page)
    return {
        "optimization": OptimizationOut.model_validate(opt),
        "summary": {
            "qualityScore": analysis.quality_score,
            "categories": analysis.categories,
            "suggestionCount": len(analysis.suggestions),
        },
    }


@router.post("/feedback")
def feedback(
    payload: FeedbackRequest,
    response: Response,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    limiter: QuotaLimiter = Depends(get_quota_limiter),
    lifecycle: OptimizationLifecycle = Depends(get_lifecycle),
):
    opt = guard.optimization(user.id, payload.optimization_id)
    lifecycle.ensure_refinable(opt)
    spend_ai_quota(limiter, user.id, response)
    _, result = lifecycle.refine(opt, payload.feedback, payload.category)
    return {
        "optimization": OptimizationOut.model_validate(opt),
        "changes": result.changes,
        "explanation": result.explanation,
    }


@router.post("/refine")
def refine(
    payload: RefineRequest,
    response: Response,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    limiter: QuotaLimiter = Depends(get_quota_limiter),
    lifecycle: OptimizationLifecycle = Depends(get_lifecycle),
    db: Session = Depends(get_db),
):
    guard.page(user.id, payload.page_id)
    opt = repo.latest_optimization(db, payload.page_id)
    if opt is None:
        raise NoOptimization()
    lifecycle.ensure_refinable(opt)
    spend_ai_quota(limiter, user.id, response)
    refinement, result = lifecycle.refine(opt, payload.feedback, payload.category)
    return {
        "refinement": RefinementOut.model_validate(refinement),
        "optimizationId": opt.id,
        "changes": result.changes,
        "explanation": result.explanation,
    }


@router.post("/generate-code")
def generate_code(
    payload: GenerateCodeRequest,
    response: Response,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    limiter: QuotaLimiter = Depends(get_quota_limiter),
    lifecycle: OptimizationLifecycle = Depends(get_lifecycle),
):
    opt = guard.optimization(user.id, payload.optimization_id)
    lifecycle.ensure_code_ready(opt)
    spend_ai_quota(limiter, user.id, response)
    bundle = lifecycle.generate_code(opt, payload.options)
    return {"optimization": OptimizationOut.model_validate(opt), "code": bundle}


@router.post("/test")
def run_design_tests(
    payload: PageActionRequest,
    response: Response,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    limiter: QuotaLimiter = Depends(get_quota_limiter),
    ai: AIAssistant = Depends(get_ai_assistant),
    db: Session = Depends(get_db),
):
    page = guard.page(user.id, payload.page_id)
    design = _current_design(db, page)
    spend_ai_quota(limiter, user.id, response)
    return ai.run_design_tests(design)


@router.post("/docs")
def generate_docs(
    payload: PageActionRequest,
    response: Response,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    limiter: QuotaLimiter = Depends(get_quota_limiter),
    ai: AIAssistant = Depends(get_ai_assistant),
    db: Session = Depends(get_db),
):
    page = guard.page(user.id, payload.page_id)
    design = _current_design(db, page)
    spend_ai_quota(limiter, user.id, response)
    return ai.generate_docs(design, page.name, page.project.name)


@router.post("/{optimization_id}/apply")
def apply(
    optimization_id: str,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    lifecycle: OptimizationLifecycle = Depends(get_lifecycle),
):
    opt = guard.optimization(user.id, optimization_id)
    page = lifecycle.apply(opt)
    return {"pageId": page.id, "status": opt.status.value, "message": "Optimization applied successfully"}


@router.post("/{optimization_id}/reject")
def reject(
    optimization_id: str,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    lifecycle: OptimizationLifecycle = Depends(get_lifecycle),
):
    opt = lifecycle.reject(guard.optimization(user.id, optimization_id))
    return {"optimizationId": opt.id, "status": opt.status.value}
