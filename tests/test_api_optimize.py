import pytest

from designflow.core.errors import UpstreamFormatError, UpstreamTimeout
from designflow.core.ratelimit import default_ai_config
from designflow.db import repository as repo
from designflow.db.models import Page, Project, ProjectStatus
from tests.helpers import OPTIMIZED_CANVAS, REFINED_CANVAS, SAMPLE_CANVAS


@pytest.fixture
def analyzed(client, owner, page):
    _, headers = owner
    r = client.post("/optimize/analyze", json={"pageId": page.id}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["optimization"]


def test_analyze_creates_a_revised_optimization(client, owner, page, db, project):
    _, headers = owner
    r = client.post("/optimize/analyze", json={"pageId": page.id}, headers=headers)
    assert r.status_code == 201
    body = r.json()
    assert body["optimization"]["status"] == "REVISED"
    assert body["optimization"]["originalDesign"] == SAMPLE_CANVAS
    assert body["optimization"]["optimizedDesign"] == OPTIMIZED_CANVAS
    assert body["summary"] == {"qualityScore": 82, "categories": {"layout": 80, "color": 70}, "suggestionCount": 1}
    assert r.headers["X-RateLimit-Remaining"] == "9"
    db.expire_all()
    assert db.get(Project, project.id).status == ProjectStatus.ANALYZED


def test_analyze_needs_canvas(client, owner, project, db, fake_ai):
    blank = repo.create_page(db, project.id, "Blank")
    r = client.post("/optimize/analyze", json={"pageId": blank.id}, headers=owner[1])
    assert r.status_code == 400
    assert r.json()["code"] == "NO_DATA"
    assert fake_ai.calls == []


def test_list_by_owner_includes_refinements(client, owner, page, analyzed):
    _, headers = owner
    client.post(
        "/optimize/feedback",
        json={"optimizationId": analyzed["id"], "feedback": "The header should be green", "category": "color"},
        headers=headers,
    )
    r = client.get("/optimize", params={"pageId": page.id}, headers=headers)
    assert r.status_code == 200
    [opt] = r.json()["optimizations"]
    assert opt["id"] == analyzed["id"]
    assert [ref["category"] for ref in opt["refinements"]] == ["color"]


def test_list_by_non_owner_is_forbidden_and_leaks_nothing(client, stranger, page, analyzed):
    r = client.get("/optimize", params={"pageId": page.id}, headers=stranger[1])
    assert r.status_code == 403
    assert r.json() == {"error": "Forbidden", "code": "FORBIDDEN"}
    assert analyzed["id"] not in r.text


def test_list_errors(client, owner):
    _, headers = owner
    assert client.get("/optimize", headers=headers).status_code == 400
    r = client.get("/optimize", params={"pageId": "missing"}, headers=headers)
    assert r.status_code == 404
    assert r.json()["error"] == "Page not found"


def test_feedback_refines_the_design(client, owner, analyzed):
    r = client.post(
        "/optimize/feedback",
        json={"optimizationId": analyzed["id"], "feedback": "The header should be green", "category": "color"},
        headers=owner[1],
    )
    assert r.status_code == 200
    body = r.json()
    assert body["optimization"]["optimizedDesign"] == REFINED_CANVAS
    assert body["optimization"]["userFeedback"]["category"] == "color"
    assert body["changes"] == ["Header fill set to green"]
    assert body["explanation"] == "Addressed color feedback"


def test_feedback_validation_and_guard(client, owner, stranger, analyzed):
    short = {"optimizationId": analyzed["id"], "feedback": "too short", "category": "color"}
    assert client.post("/optimize/feedback", json=short, headers=owner[1]).status_code == 400
    ok = {"optimizationId": analyzed["id"], "feedback": "Long enough feedback text", "category": "color"}
    assert client.post("/optimize/feedback", json=ok, headers=stranger[1]).status_code == 403
    missing = dict(ok, optimizationId="nope")
    assert client.post("/optimize/feedback", json=missing, headers=owner[1]).status_code == 404


def test_feedback_on_pending_optimization_is_missing_data(client, owner, page, db, fake_ai, limiter):
    opt = repo.create_optimization(db, page.id, SAMPLE_CANVAS)
    db.commit()
    r = client.post(
        "/optimize/feedback",
        json={"optimizationId": opt.id, "feedback": "Make the header green", "category": "color"},
        headers=owner[1],
    )
    assert r.status_code == 400
    assert r.json()["code"] == "MISSING_DATA"
    assert fake_ai.calls == []
    assert limiter.get_remaining(owner[0].id, default_ai_config()) == 10


def test_refine_targets_latest_optimization(client, owner, page, analyzed):
    r = client.post(
        "/optimize/refine",
        json={"pageId": page.id, "feedback": "More whitespace"},
        headers=owner[1],
    )
    assert r.status_code == 200
    body = r.json()
    assert body["optimizationId"] == analyzed["id"]
    assert body["refinement"]["category"] == "general"
    assert body["refinement"]["optimizationId"] == analyzed["id"]


def test_refine_without_any_optimization(client, owner, page):
    r = client.post("/optimize/refine", json={"pageId": page.id, "feedback": "More whitespace"}, headers=owner[1])
    assert r.status_code == 400
    assert r.json()["code"] == "NO_OPTIMIZATION"


def test_apply_copies_design_onto_page(client, owner, page, analyzed, db):
    r = client.post(f"/optimize/{analyzed['id']}/apply", headers=owner[1])
    assert r.status_code == 200
    assert r.json()["pageId"] == page.id
    assert r.json()["status"] == "APPROVED"
    db.expire_all()
    assert db.get(Page, page.id).canvas_data == OPTIMIZED_CANVAS


def test_apply_errors(client, owner, stranger, page, analyzed, db):
    assert client.post(f"/optimize/{analyzed['id']}/apply", headers=stranger[1]).status_code == 403
    assert client.post("/optimize/nope/apply", headers=owner[1]).status_code == 404
    pending = repo.create_optimization(db, page.id, SAMPLE_CANVAS)
    db.commit()
    r = client.post(f"/optimize/{pending.id}/apply", headers=owner[1])
    assert r.status_code == 400
    assert r.json()["code"] == "NO_DESIGN"


def test_generate_code(client, owner, project, analyzed, db):
    r = client.post(
        "/optimize/generate-code",
        json={"optimizationId": analyzed["id"], "options": {"framework": "vue", "includeTests": True}},
        headers=owner[1],
    )
    assert r.status_code == 200
    body = r.json()
    assert body["optimization"]["status"] == "APPROVED"
    assert body["code"]["files"][0]["path"] == "app/page.tsx"
    assert body["code"]["instructions"].startswith("vue")
    assert body["optimization"]["generatedCode"] == body["code"]
    db.expire_all()
    assert db.get(Project, project.id).status == ProjectStatus.COMPLETED


def test_generate_code_needs_design(client, owner, page, db):
    pending = repo.create_optimization(db, page.id, SAMPLE_CANVAS)
    db.commit()
    r = client.post("/optimize/generate-code", json={"optimizationId": pending.id}, headers=owner[1])
    assert r.status_code == 400
    assert r.json()["code"] == "NO_DESIGN"


def test_reject_then_apply_is_invalid(client, owner, analyzed):
    r = client.post(f"/optimize/{analyzed['id']}/reject", headers=owner[1])
    assert r.json() == {"optimizationId": analyzed["id"], "status": "REJECTED"}
    r = client.post(f"/optimize/{analyzed['id']}/apply", headers=owner[1])
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_TRANSITION"


def test_design_tests_and_docs(client, owner, page, fake_ai, analyzed):
    r = client.post("/optimize/test", json={"pageId": page.id}, headers=owner[1])
    assert r.status_code == 200
    assert r.json()["tests"][0]["status"] == "passed"
    r = client.post("/optimize/docs", json={"pageId": page.id}, headers=owner[1])
    assert r.status_code == 200
    assert r.json()["sections"][0]["content"] == "# Home"
    # both ran against the latest optimized design, not the raw canvas
    assert fake_ai.calls[-1][1][0] == OPTIMIZED_CANVAS
    assert fake_ai.calls[-2][1][0] == OPTIMIZED_CANVAS


def test_design_tests_need_data(client, owner, project, db):
    blank = repo.create_page(db, project.id, "Blank")
    r = client.post("/optimize/test", json={"pageId": blank.id}, headers=owner[1])
    assert r.status_code == 400
    assert r.json()["code"] == "NO_DATA"


def test_exhausted_quota_returns_429(client, owner, page, limiter, fake_ai):
    user, headers = owner
    for _ in range(10):
        limiter.check_and_consume(user.id, default_ai_config())
    r = client.post("/optimize/analyze", json={"pageId": page.id}, headers=headers)
    assert r.status_code == 429
    assert r.headers["X-RateLimit-Remaining"] == "0"
    assert r.json()["code"] == "RATE_LIMITED"
    assert fake_ai.calls == []


def test_quota_is_checked_after_authorization(client, stranger, page, limiter):
    r = client.post("/optimize/analyze", json={"pageId": page.id}, headers=stranger[1])
    assert r.status_code == 403
    assert limiter.get_remaining(stranger[0].id, default_ai_config()) == 10


@pytest.mark.parametrize(
    "error,status,code",
    [
        (UpstreamTimeout(), 504, "UPSTREAM_TIMEOUT"),
        (UpstreamFormatError(), 502, "AI_PARSE_ERROR"),
    ],
)
def test_ai_failures_surface_as_upstream_errors(client, owner, page, fake_ai, db, error, status, code):
    fake_ai.fail_with = error
    r = client.post("/optimize/analyze", json={"pageId": page.id}, headers=owner[1])
    assert r.status_code == status
    assert r.json()["code"] == code
    assert client.get("/optimize", params={"pageId": page.id}, headers=owner[1]).json()["optimizations"] == []


def test_rate_limit_endpoint(client, owner, analyzed):
    import time

    r = client.get("/user/rate-limit", headers=owner[1])
    assert r.status_code == 200
    body = r.json()
    assert body["limit"] == 10
    assert body["remaining"] == 9
    assert body["reset"] > time.time() * 1000
    # reading the quota does not spend it
    assert client.get("/user/rate-limit", headers=owner[1]).json()["remaining"] == 9


def test_project_analytics(client, owner, stranger, project, page, analyzed):
    client.post(
        "/optimize/feedback",
        json={"optimizationId": analyzed["id"], "feedback": "The header should be green", "category": "color"},
        headers=owner[1],
    )
    r = client.get(f"/analytics/project/{project.id}", headers=owner[1])
    assert r.status_code == 200
    body = r.json()
    assert body["totalOptimizations"] == 1
    assert body["totalRefinements"] == 1
    assert body["avgQualityScore"] == 82
    assert body["topFeedbackCategories"] == [{"name": "color", "count": 1}]
    assert [p["score"] for p in body["qualityTrend"]] == [82]
    assert client.get(f"/analytics/project/{project.id}", headers=stranger[1]).status_code == 403
    assert client.get("/analytics/project/missing", headers=owner[1]).status_code == 404
