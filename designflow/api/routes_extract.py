"""
Screenshot -> canvas extraction. Open to anonymous callers; with a session the
call counts against the AI quota and, when ``projectId`` belongs to the caller,
the screenshot is stored and a Page is created. Anything after the AI call is
best-effort: failures there are logged and the extraction is still returned.
"""
import base64
import binascii
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from designflow.api.deps import spend_ai_quota
from designflow.core.authz import get_guard, get_optional_user
from designflow.core.errors import BadRequest
from designflow.core.guard import AuthorizationGuard, ResourceKind
from designflow.core.ratelimit import QuotaLimiter, get_quota_limiter
from designflow.db import repository as repo
from designflow.db.models import User
from designflow.db.session import get_db
from designflow.schemas import ExtractRequest
from designflow.services.ai import AIAssistant, get_ai_assistant
from designflow.services.storage import LocalObjectStorage, get_storage, screenshot_key

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/extract", status_code=201)
def extract(
    payload: ExtractRequest,
    response: Response,
    user: Optional[User] = Depends(get_optional_user),
    guard: AuthorizationGuard = Depends(get_guard),
    limiter: QuotaLimiter = Depends(get_quota_limiter),
    ai: AIAssistant = Depends(get_ai_assistant),
    storage: LocalObjectStorage = Depends(get_storage),
    db: Session = Depends(get_db),
):
    try:
        raw = base64.b64decode(payload.image, validate=True)
    except (binascii.Error, ValueError):
        raise BadRequest("Image must be base64 encoded")

    if user is not None:
        spend_ai_quota(limiter, user.id, response)
    extraction = ai.extract(payload.image, payload.media_type)

    page_id = None
    if user is not None and payload.project_id:
        denied = guard.check(user.id, ResourceKind.PROJECT, payload.project_id)
        if denied:
            logger.info("Extraction not saved: project %s -> %s for user %s", payload.project_id, denied, user.id)
        else:
            image_url = None
            try:
                image_url = storage.put(raw, screenshot_key(user.id, payload.media_type), payload.media_type)
            except (OSError, ValueError) as e:
                logger.warning("Screenshot upload failed, continuing without it: %s", e)
            try:
                page = repo.create_page(
                    db,
                    payload.project_id,
                    payload.page_name,
                    canvas_data=extraction.canvas_data.to_json(),
                    source_image_url=image_url,
                )
                page_id = page.id
            except SQLAlchemyError as e:
                db.rollback()
                logger.warning("Page creation after extraction failed: %s", e)

    return {"extraction": extraction, "pageId": page_id}
