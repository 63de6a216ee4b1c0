from datetime import datetime, timedelta, timezone

from jose import jwt

from conftest import PASSWORD


async def test_signup_returns_sanitized_user(client):
    response = await client.post(
        "/api/auth/signup",
        json={"username": "newrunner", "email": "new@example.com", "password": "s3cret-pass", "firstName": "Ana"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "success"
    assert body["data"]["username"] == "newrunner"
    assert body["data"]["email"] == "new@example.com"
    assert body["data"]["firstName"] == "Ana"
    assert "id" in body["data"]
    assert not any("password" in key.lower() for key in body["data"])


async def test_signup_with_duplicate_email_conflicts(client, user):
    response = await client.post(
        "/api/auth/signup",
        json={"username": "someoneelse", "email": user.email, "password": "pw"},
    )

    assert response.status_code == 409
    assert response.json()["status"] == "error"


async def test_signup_with_duplicate_username_conflicts(client, user):
    response = await client.post(
        "/api/auth/signup",
        json={"username": user.username, "email": "other@example.com", "password": "pw"},
    )

    assert response.status_code == 409


async def test_signup_missing_fields_is_bad_request(client):
    response = await client.post("/api/auth/signup", json={"email": "x@example.com"})

    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "error"
    assert "username" in body["message"]
    assert "password" in body["message"]


async def test_signup_rejects_password_over_bcrypt_limit(client):
    response = await client.post(
        "/api/auth/signup",
        json={"username": "long", "email": "long@example.com", "password": "x" * 73},
    )

    assert response.status_code == 400


async def test_login_returns_token_pair_and_user(client, user, token_issuer):
    response = await client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"] == {"id": user.id, "username": user.username, "email": user.email}
    assert token_issuer.verify_access_token(data["accessToken"]).id == user.id
    assert token_issuer.verify_refresh_token(data["refreshToken"]).id == user.id


async def test_login_with_wrong_password_is_unauthorized(client, user):
    response = await client.post("/api/auth/login", json={"email": user.email, "password": "wrongpass"})

    assert response.status_code == 401
    assert response.json() == {"status": "error", "message": "Invalid credentials"}


async def test_login_with_unknown_email_is_unauthorized(client):
    response = await client.post("/api/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})

    assert response.status_code == 401


async def test_refresh_token_issues_new_pair(client, user, token_issuer):
    login = await client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
    refresh_token = login.json()["data"]["refreshToken"]

    response = await client.post("/api/auth/refresh-token", json={"refreshToken": refresh_token})

    assert response.status_code == 200
    data = response.json()["data"]
    assert token_issuer.verify_access_token(data["accessToken"]).email == user.email
    assert "refreshToken" in data


async def test_refresh_with_invalid_token_is_unauthorized(client):
    response = await client.post("/api/auth/refresh-token", json={"refreshToken": "invalid-token"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid refresh token. Please login again."


async def test_refresh_with_expired_token_is_unauthorized(client, user):
    expired = jwt.encode(
        {"id": user.id, "username": user.username, "email": user.email,
         "exp": datetime.now(timezone.utc) - timedelta(seconds=30)},
        "test-refresh-secret",
        algorithm="HS256",
    )

    response = await client.post("/api/auth/refresh-token", json={"refreshToken": expired})

    assert response.status_code == 401
    assert response.json()["message"] == "Refresh token expired. Please login again."


async def test_refresh_for_deleted_user_is_unauthorized(client, token_issuer):
    from shared.security.jwt_handler import TokenIdentity

    pair = token_issuer.issue_token_pair(TokenIdentity(id="gone", username="gone", email="gone@example.com"))

    response = await client.post("/api/auth/refresh-token", json={"refreshToken": pair.refresh_token})

    assert response.status_code == 401


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
