from designflow.db import repository as repo


def test_signup_then_duplicate_email_is_rejected(client):
    r = client.post("/auth/signup", json={"email": "a@b.com", "password": "secret1"})
    assert r.status_code == 201
    assert r.json()["userId"]

    r = client.post("/auth/signup", json={"email": "a@b.com", "password": "secret1"})
    assert r.status_code == 400
    assert r.json()["error"] == "User already exists"


def test_signup_email_is_case_insensitive(client):
    assert client.post("/auth/signup", json={"email": "Mixed@Example.com", "password": "secret1"}).status_code == 201
    r = client.post("/auth/signup", json={"email": "mixed@example.COM", "password": "secret1"})
    assert r.status_code == 400


def test_signup_validates_password_and_email(client):
    assert client.post("/auth/signup", json={"email": "a@b.com", "password": "123"}).status_code == 400
    r = client.post("/auth/signup", json={"email": "not-an-email", "password": "secret1"})
    assert r.status_code == 400
    assert "email" in r.json()["error"]


def test_signup_stores_skill_level(client, db):
    r = client.post(
        "/auth/signup",
        json={"email": "pro@b.com", "password": "secret1", "name": "Pro", "skillLevel": "ADVANCED"},
    )
    assert r.status_code == 201
    login = client.post("/auth/login", json={"email": "pro@b.com", "password": "secret1"}).json()
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {login['accessToken']}"}).json()["user"]
    assert me["skillLevel"] == "ADVANCED"
    assert me["name"] == "Pro"


def test_check_email(client, owner):
    r = client.post("/auth/check-email", json={"email": "OWNER@example.com"})
    assert r.json() == {"exists": True, "email": "owner@example.com"}
    assert client.post("/auth/check-email", json={"email": "nobody@example.com"}).json()["exists"] is False
    assert client.post("/auth/check-email", json={}).status_code == 400


def test_login_issues_a_usable_token(client, owner):
    user, _ = owner
    r = client.post("/auth/login", json={"email": "owner@example.com", "password": "secret1"})
    assert r.status_code == 200
    body = r.json()
    assert body["tokenType"] == "bearer"
    assert body["userId"] == user.id

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['accessToken']}"})
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "owner@example.com"


def test_login_rejects_bad_credentials(client, owner):
    r = client.post("/auth/login", json={"email": "owner@example.com", "password": "wrong-password"})
    assert r.status_code == 401
    assert client.post("/auth/login", json={"email": "ghost@example.com", "password": "secret1"}).status_code == 401


def test_protected_routes_require_a_valid_session(client):
    assert client.get("/projects").status_code == 401
    r = client.get("/projects", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["code"] == "UNAUTHORIZED"
    assert client.get("/user/rate-limit").status_code == 401


def test_expired_token_is_rejected(client, owner):
    from designflow.core.security import create_access_token

    user, _ = owner
    token = create_access_token(user.id, expires_minutes=-1)
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_concurrent_duplicate_signup_is_rejected(client, monkeypatch):
    assert client.post("/auth/signup", json={"email": "race@example.com", "password": "secret1"}).status_code == 201
    # the other request passed the lookup before this one committed
    monkeypatch.setattr(repo, "get_user_by_email", lambda *args, **kwargs: None)
    r = client.post("/auth/signup", json={"email": "race@example.com", "password": "secret1"})
    assert r.status_code == 400
    assert r.json()["error"] == "User already exists"
