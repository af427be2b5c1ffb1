from fastapi import APIRouter, Depends

from designflow.core.authz import get_current_user
from designflow.core.ratelimit import QuotaLimiter, default_ai_config, get_quota_limiter
from designflow.db.models import User

router = APIRouter()


@router.get("/rate-limit")
def rate_limit(user: User = Depends(get_current_user), limiter: QuotaLimiter = Depends(get_quota_limiter)):
    status = limiter.status(user.id, default_ai_config())
    # reset is reported in epoch milliseconds
    return {"limit": status.limit, "remaining": status.remaining, "reset": int(status.reset * 1000)}
