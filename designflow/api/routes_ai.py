from fastapi import APIRouter, Depends, Response

from designflow.api.deps import spend_ai_quota
from designflow.core.authz import get_current_user, get_guard
from designflow.core.errors import BadRequest
from designflow.core.guard import AuthorizationGuard
from designflow.core.ratelimit import QuotaLimiter, get_quota_limiter
from designflow.db.models import User
from designflow.schemas import ChatRequest
from designflow.services.ai import AIAssistant, get_ai_assistant

router = APIRouter()


@router.post("/chat")
def chat(
    payload: ChatRequest,
    response: Response,
    user: User = Depends(get_current_user),
    guard: AuthorizationGuard = Depends(get_guard),
    limiter: QuotaLimiter = Depends(get_quota_limiter),
    ai: AIAssistant = Depends(get_ai_assistant),
):
    context = {"project_name": None, "page_name": None, "element_count": None}
    project = None
    if payload.project_id:
        project = guard.project(user.id, payload.project_id)
    if payload.page_id:
        page = guard.page(user.id, payload.page_id)
        if project is not None and page.project_id != project.id:
            raise BadRequest("Page does not belong to this project")
        project = project or page.project
        context["page_name"] = page.name
        if page.canvas_data:
            context["element_count"] = len(page.canvas_data.get("objects") or [])
    if project is not None:
        context["project_name"] = project.name

    spend_ai_quota(limiter, user.id, response)
    return {"response": ai.chat(payload.message, context)}
