import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from designflow import __version__
from designflow.api import (
    routes_ai,
    routes_analytics,
    routes_auth,
    routes_comments,
    routes_extract,
    routes_optimize,
    routes_pages,
    routes_projects,
    routes_user,
)
from designflow.core.config import settings
from designflow.core.errors import install_error_handlers
from designflow.core.log import setup_logging
from designflow.db.session import db_ok, init_db

setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
logger = logging.getLogger("designflow.main")

app = FastAPI(title=settings.APP_NAME, version=__version__)
install_error_handlers(app)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"], allow_credentials=True)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.GLOBAL_RATE_LIMIT],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.GLOBAL_RATE_LIMIT_ENABLED,
)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content={"error": "Rate limit exceeded", "code": "RATE_LIMITED"})


if settings.USE_CREATE_ALL:
    init_db()

os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount(settings.UPLOAD_BASE_URL, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

app.include_router(routes_auth.router, prefix="/auth", tags=["auth"])
app.include_router(routes_projects.router, prefix="/projects", tags=["projects"])
app.include_router(routes_pages.router, prefix="/pages", tags=["pages"])
app.include_router(routes_extract.router, tags=["extract"])
app.include_router(routes_optimize.router, prefix="/optimize", tags=["optimize"])
app.include_router(routes_analytics.router, prefix="/analytics", tags=["analytics"])
app.include_router(routes_comments.router, prefix="/comments", tags=["comments"])
app.include_router(routes_user.router, prefix="/user", tags=["user"])
app.include_router(routes_ai.router, prefix="/ai", tags=["ai"])

logger.info("%s %s started (env=%s)", settings.APP_NAME, __version__, settings.ENV)


@app.get("/")
def root():
    return {"message": f"Hello from {settings.APP_NAME}", "version": __version__}


@app.get("/healthz")
def health():
    ok = db_ok()
    return JSONResponse(status_code=200 if ok else 503, content={"status": "ok" if ok else "degraded", "database": ok})
