from fastapi import Depends, Response
from sqlalchemy.orm import Session

from designflow.core.ratelimit import QuotaLimiter, default_ai_config
from designflow.db.session import get_db
from designflow.services.ai import AIAssistant, get_ai_assistant
from designflow.services.lifecycle import OptimizationLifecycle


def get_lifecycle(db: Session = Depends(get_db), ai: AIAssistant = Depends(get_ai_assistant)) -> OptimizationLifecycle:
    return OptimizationLifecycle(db, ai)


def spend_ai_quota(limiter: QuotaLimiter, user_id: str, response: Response | None = None) -> int:
    """Consume one AI call from the user's quota; Throttled (429) when exhausted."""
    remaining = limiter.check_and_consume(user_id, default_ai_config())
    if response is not None:
        response.headers["X-RateLimit-Remaining"] = str(remaining)
    return remaining
