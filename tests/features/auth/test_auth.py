"""Endpoint tests for the auth feature: cookie handling, rotation and silent refresh."""

from urllib.parse import parse_qs, urlparse

from fastapi import status

from src.config.settings import settings
from src.features.auth.cookies import ACCESS_TOKEN_HEADER
from src.features.auth.jwt_utils import TokenKind, verify_token

COOKIE = settings.refresh_cookie_name


async def _register(client, name="Alice", email="alice@example.com", password="pw1"):
    return await client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password},
    )


class TestRegisterEndpoint:
    async def test_register_sets_refresh_cookie(self, client):
        response = await _register(client)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 15 * 60
        assert data["user"]["email"] == "alice@example.com"
        assert data["user"]["role"] == "USER"
        assert "hashed_password" not in data["user"]
        assert verify_token(TokenKind.ACCESS, data["access_token"]).user_id == data["user"]["id"]

        set_cookie = response.headers["set-cookie"].lower()
        assert f"{COOKIE.lower()}=" in set_cookie
        assert "httponly" in set_cookie
        assert "samesite=strict" in set_cookie
        assert f"path={settings.cookie_path}" in set_cookie
        assert response.cookies.get(COOKIE)

    async def test_duplicate_email_conflicts(self, client):
        await _register(client)
        response = await _register(client, name="Alice Again")
        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_invalid_email_is_rejected(self, client):
        response = await _register(client, email="not-an-email")
        assert response.status_code == 422


class TestLoginEndpoint:
    async def test_login_returns_fresh_tokens(self, client):
        registered = (await _register(client)).json()

        response = await client.post("/api/auth/login", json={"email": "alice@example.com", "password": "pw1"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["access_token"] != registered["access_token"]
        assert response.cookies.get(COOKIE)

    async def test_wrong_password(self, client):
        await _register(client)
        response = await client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrong"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Invalid credentials"

    async def test_unknown_user(self, client):
        response = await client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "pw1"})
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestRefreshEndpoint:
    async def test_refresh_with_cookie_rotates(self, client):
        await _register(client)
        old_token = client.cookies.get(COOKIE)

        response = await client.post("/api/auth/refresh")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["access_token"]
        new_token = response.cookies.get(COOKIE)
        assert new_token and new_token != old_token

    async def test_replayed_token_is_rejected(self, client):
        await _register(client)
        old_token = client.cookies.get(COOKIE)
        await client.post("/api/auth/refresh")

        client.cookies.clear()
        response = await client.post("/api/auth/refresh", json={"refresh_token": old_token})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Invalid refresh token"

    async def test_refresh_with_body_token(self, client):
        await _register(client)
        token = client.cookies.get(COOKIE)
        client.cookies.clear()

        response = await client.post("/api/auth/refresh", json={"refresh_token": token})

        assert response.status_code == status.HTTP_200_OK

    async def test_missing_token(self, client):
        response = await client.post("/api/auth/refresh")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Missing refresh token"


class TestLogoutEndpoint:
    async def test_logout_revokes_and_clears_cookie(self, client):
        await _register(client)
        token = client.cookies.get(COOKIE)

        response = await client.post("/api/auth/logout")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Successfully logged out"
        assert client.cookies.get(COOKIE) is None

        replay = await client.post("/api/auth/refresh", json={"refresh_token": token})
        assert replay.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_logout_twice_is_harmless(self, client):
        await _register(client)
        token = client.cookies.get(COOKIE)
        await client.post("/api/auth/logout")

        response = await client.post("/api/auth/logout", json={"refresh_token": token})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Already logged out"

    async def test_logout_without_token(self, client):
        response = await client.post("/api/auth/logout")
        assert response.status_code == status.HTTP_200_OK


class TestSilentRefresh:
    async def test_cookie_only_request_is_authenticated(self, client):
        registered = (await _register(client)).json()
        old_token = client.cookies.get(COOKIE)

        response = await client.get("/api/users/me")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == registered["user"]["id"]
        new_access = response.headers[ACCESS_TOKEN_HEADER]
        assert verify_token(TokenKind.ACCESS, new_access).user_id == registered["user"]["id"]
        assert client.cookies.get(COOKIE) != old_token

    async def test_bearer_token_skips_refresh(self, client):
        registered = (await _register(client)).json()
        old_token = client.cookies.get(COOKIE)

        response = await client.get(
            "/api/users/me", headers={"Authorization": f"Bearer {registered['access_token']}"}
        )

        assert response.status_code == status.HTTP_200_OK
        assert ACCESS_TOKEN_HEADER not in response.headers
        assert client.cookies.get(COOKIE) == old_token

    async def test_invalid_bearer_falls_back_to_cookie(self, client):
        await _register(client)
        response = await client.get("/api/users/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == status.HTTP_200_OK
        assert ACCESS_TOKEN_HEADER in response.headers

    async def test_anonymous_request_is_rejected(self, client):
        response = await client.get("/api/users/me")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Not authenticated"

    async def test_rotation_survives_error_response(self, client):
        registered = (await _register(client)).json()
        old_token = client.cookies.get(COOKIE)

        response = await client.get("/api/workspaces/9999")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        new_access = response.headers[ACCESS_TOKEN_HEADER]
        assert verify_token(TokenKind.ACCESS, new_access).user_id == registered["user"]["id"]
        new_token = response.cookies.get(COOKIE)
        assert new_token and new_token != old_token

        refreshed = await client.post("/api/auth/refresh")
        assert refreshed.status_code == status.HTTP_200_OK

    async def test_rotation_survives_validation_error(self, client):
        await _register(client)

        response = await client.post("/api/workspaces", json={})

        assert response.status_code == 422
        assert ACCESS_TOKEN_HEADER in response.headers
        me = await client.get("/api/users/me")
        assert me.status_code == status.HTTP_200_OK

    async def test_retired_cookie_leaves_caller_anonymous(self, client):
        await _register(client)
        old_token = client.cookies.get(COOKIE)
        await client.post("/api/auth/refresh")

        client.cookies.clear()
        response = await client.get("/api/users/me", headers={"Cookie": f"{COOKIE}={old_token}"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestDevicesEndpoint:
    async def test_lists_active_sessions(self, client):
        registered = (await _register(client)).json()
        await client.post("/api/auth/login", json={"email": "alice@example.com", "password": "pw1"})

        response = await client.get(
            "/api/auth/devices", headers={"Authorization": f"Bearer {registered['access_token']}"}
        )

        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()) == 2


class TestPasswordResetEndpoints:
    async def test_reset_flow(self, client, mailer):
        await _register(client)

        response = await client.post("/api/auth/password-reset/request", json={"email": "alice@example.com"})
        assert response.json() == {"success": True}

        link = mailer.sent[0]["html"].split('href="')[1].split('"')[0]
        assert link.startswith(f"{settings.frontend_url}/reset-password?token=")
        token = parse_qs(urlparse(link).query)["token"][0]

        response = await client.post(
            "/api/auth/password-reset/confirm", json={"token": token, "new_password": "new-pw"}
        )
        assert response.json() == {"success": True}

        login = await client.post("/api/auth/login", json={"email": "alice@example.com", "password": "new-pw"})
        assert login.status_code == status.HTTP_200_OK

        reused = await client.post(
            "/api/auth/password-reset/confirm", json={"token": token, "new_password": "again"}
        )
        assert reused.json() == {"success": False}

    async def test_unknown_email_reports_failure(self, client, mailer):
        response = await client.post("/api/auth/password-reset/request", json={"email": "ghost@example.com"})
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"success": False}
        assert mailer.sent == []
