import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["GLOBAL_RATE_LIMIT_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="designflow-uploads-")
os.environ["SECRET_KEY"] = "test-secret"
os.environ["ANTHROPIC_API_KEY"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from designflow.core.ratelimit import QuotaLimiter, get_quota_limiter  # noqa: E402
from designflow.core.security import create_access_token, hash_password  # noqa: E402
from designflow.db import repository as repo  # noqa: E402
from designflow.db.models import Base  # noqa: E402
from designflow.db.session import SessionLocal, engine, get_db  # noqa: E402
from designflow.main import app  # noqa: E402
from designflow.services.ai import get_ai_assistant  # noqa: E402
from designflow.services.lifecycle import OptimizationLifecycle  # noqa: E402
from designflow.services.storage import LocalObjectStorage, get_storage  # noqa: E402
from tests.helpers import SAMPLE_CANVAS, FakeAssistant  # noqa: E402


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_ai():
    return FakeAssistant()


@pytest.fixture
def limiter():
    return QuotaLimiter("memory://")


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(tmp_path / "uploads", "/uploads")


@pytest.fixture
def lifecycle(db, fake_ai):
    return OptimizationLifecycle(db, fake_ai)


@pytest.fixture
def client(db, fake_ai, limiter, storage):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_ai_assistant] = lambda: fake_ai
    app.dependency_overrides[get_quota_limiter] = lambda: limiter
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Factory: make_user("a@b.com") -> (user, auth headers)."""

    def _make(email, password="secret1", name=None):
        user = repo.create_user(db, email=email, password_hash=hash_password(password), name=name)
        return user, {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _make


@pytest.fixture
def owner(make_user):
    return make_user("owner@example.com", name="Owner")


@pytest.fixture
def stranger(make_user):
    return make_user("stranger@example.com", name="Stranger")


@pytest.fixture
def project(db, owner):
    user, _ = owner
    return repo.create_project(db, user.id, "Landing page", "Marketing site")


@pytest.fixture
def page(db, project):
    return repo.create_page(db, project.id, "Home", canvas_data=SAMPLE_CANVAS)
