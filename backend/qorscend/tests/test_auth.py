from .conftest import client, register_user, TestingSessionLocal
from qorscend import models


def test_register_and_login(client):
    resp = client.post(
        "/api/auth/register",
        json={"name": "Ada Lovelace", "email": "Ada@Example.com ", "password": "secret1"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["stats"] == {"codeConversions": 0, "benchmarksRun": 0, "dataFilesProcessed": 0}

    resp2 = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "secret1"})
    assert resp2.status_code == 200
    assert resp2.json()["token"]
    assert resp2.json()["user"]["lastLogin"]


def test_duplicate_registration_is_rejected(client):
    payload = {"name": "Dup User", "email": "dup@example.com", "password": "secret1"}
    assert client.post("/api/auth/register", json=payload).status_code == 201
    again = client.post("/api/auth/register", json={**payload, "email": "DUP@example.com"})
    assert again.status_code == 400
    assert again.json() == {
        "success": False,
        "error": "An account with this email address already exists. Please sign in instead.",
    }
    session = TestingSessionLocal()
    try:
        assert session.query(models.User).filter_by(email="dup@example.com").count() == 1
    finally:
        session.close()


def test_register_validation_messages(client):
    short_name = client.post("/api/auth/register", json={"name": "A", "email": "a@example.com", "password": "secret1"})
    assert short_name.status_code == 400
    assert short_name.json()["error"] == "Name must be between 2 and 50 characters"

    bad_email = client.post("/api/auth/register", json={"name": "Alan", "email": "not-an-email", "password": "secret1"})
    assert bad_email.json()["error"] == "Please provide a valid email"

    short_pw = client.post("/api/auth/register", json={"name": "Alan", "email": "alan@example.com", "password": "123"})
    assert short_pw.json()["error"] == "Password must be at least 6 characters long"


def test_login_failures(client):
    _, email, _ = register_user(client, password="right-pass")
    wrong = client.post("/api/auth/login", json={"email": email, "password": "wrong-pass"})
    assert wrong.status_code == 401
    assert wrong.json()["error"] == "Incorrect password"

    unknown = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "whatever"})
    assert unknown.status_code == 404

    missing = client.post("/api/auth/login", json={"email": email})
    assert missing.status_code == 400
    assert missing.json()["error"] == "Password is required"


def test_deactivated_account_cannot_log_in(client):
    _, email, _ = register_user(client)
    session = TestingSessionLocal()
    try:
        user = session.query(models.User).filter_by(email=email).one()
        user.is_active = False
        session.commit()
    finally:
        session.close()
    resp = client.post("/api/auth/login", json={"email": email, "password": "secret1"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Account is deactivated"


def test_me_requires_token(client):
    resp = client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "No token provided"}

    bad = client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
    assert bad.status_code == 401
    assert bad.json()["error"] == "Not authorized to access this route"


def test_me_profile_and_password(client):
    token, email, _ = register_user(client, name="Grace Hopper")
    headers = {"Authorization": f"Bearer {token}"}

    me = client.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["data"]["name"] == "Grace Hopper"

    profile = client.put(
        "/api/auth/profile",
        json={"name": "Rear Admiral Hopper", "preferences": {"theme": "light"}},
        headers=headers,
    )
    assert profile.status_code == 200
    assert profile.json()["data"]["name"] == "Rear Admiral Hopper"
    assert profile.json()["data"]["preferences"]["theme"] == "light"

    bad_theme = client.put("/api/auth/profile", json={"preferences": {"theme": "neon"}}, headers=headers)
    assert bad_theme.status_code == 400
    assert bad_theme.json()["error"] == "Theme must be light, dark, or system"

    wrong = client.put(
        "/api/auth/password",
        json={"currentPassword": "not-it", "newPassword": "another1"},
        headers=headers,
    )
    assert wrong.status_code == 400
    assert wrong.json()["error"] == "Current password is incorrect"

    ok = client.put(
        "/api/auth/password",
        json={"currentPassword": "secret1", "newPassword": "another1"},
        headers=headers,
    )
    assert ok.status_code == 200
    relogin = client.post("/api/auth/login", json={"email": email, "password": "another1"})
    assert relogin.status_code == 200


def test_mock_oauth_redirects_with_token(client):
    resp = client.get(
        "/api/auth/github",
        params={"email": "octo@example.com", "name": "Octo Cat"},
        follow_redirects=False,
    )
    assert resp.status_code == 302
    location = resp.headers["location"]
    assert "/#token=" in location
    token = location.split("#token=", 1)[1]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["data"]["email"] == "octo@example.com"

    again = client.get("/api/auth/github", params={"email": "octo@example.com"}, follow_redirects=False)
    assert again.status_code == 302
    session = TestingSessionLocal()
    try:
        assert session.query(models.User).filter_by(email="octo@example.com").count() == 1
    finally:
        session.close()


def test_user_stats(client):
    token, _, _ = register_user(client)
    resp = client.get("/api/users/stats", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["stats"]["codeConversions"] == 0
    assert data["memberSince"]
