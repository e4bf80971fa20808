from gymdesk.core.security import create_access_token, get_password_hash, verify_password

from factories import STAFF_PASSWORD, make_user


def test_password_hashing():
    hashed = get_password_hash("correct horse battery staple" * 4)

    assert verify_password("correct horse battery staple" * 4, hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("anything", "not-a-bcrypt-hash")


def test_first_time_setup_flow(client):
    assert client.get("/api/v1/auth/check-first-time").json() == {"is_first_time": True}

    resp = client.post(
        "/api/v1/auth/setup",
        json={"email": "Owner@Gym.Example.com", "full_name": "Owner", "password": "s3cure-pass"},
    )
    assert resp.status_code == 201
    token = resp.json()["access_token"]

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "owner@gym.example.com"

    assert client.get("/api/v1/auth/check-first-time").json() == {"is_first_time": False}

    resp = client.post(
        "/api/v1/auth/setup",
        json={"email": "second@gym.example.com", "full_name": "Second", "password": "s3cure-pass"},
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "setup_completed"


def test_setup_rejects_short_password(client):
    resp = client.post(
        "/api/v1/auth/setup",
        json={"email": "owner@gym.example.com", "full_name": "Owner", "password": "short"},
    )

    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"
    assert resp.json()["details"]


def test_login(client, db):
    user = make_user(db, email="desk@gym.example.com")

    resp = client.post("/api/v1/auth/login", data={"username": "DESK@gym.example.com", "password": STAFF_PASSWORD})
    assert resp.status_code == 200
    assert resp.json()["token_type"] == "bearer"
    db.refresh(user)
    assert user.last_login is not None

    resp = client.post("/api/v1/auth/login", data={"username": "desk@gym.example.com", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid email or password", "code": "invalid_credentials"}


def test_inactive_user_cannot_log_in_or_use_token(client, db):
    user = make_user(db, email="gone@gym.example.com", is_active=False)

    resp = client.post("/api/v1/auth/login", data={"username": "gone@gym.example.com", "password": STAFF_PASSWORD})
    assert resp.status_code == 401

    token = create_access_token({"sub": user.email})
    resp = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_garbage_token_is_401(client):
    resp = client.get("/api/v1/members", headers={"Authorization": "Bearer not-a-jwt"})

    assert resp.status_code == 401
    assert resp.json()["code"] == "invalid_token"


def test_health_needs_no_auth(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_unknown_route_uses_error_envelope(client, auth_headers):
    resp = client.get("/api/v1/nowhere", headers=auth_headers)

    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"
