"""Tests for signup, login, refresh and identity resolution."""
from materix.config import settings
from materix.security import create_access_token, decode_token
from tests.conftest import API, auth_headers, create_test_user


class TestSignup:

    def test_signup_issues_tokens(self, client):
        resp = client.post(f"{API}/auth/signup", json={
            "name": "Alice",
            "email": "alice@example.com",
            "password": "correct-horse",
        })
        assert resp.status_code == 201, resp.text
        tokens = resp.json()["tokens"]
        assert tokens["token_type"] == "bearer"
        claims = decode_token(tokens["access_token"])
        assert claims["email"] == "alice@example.com"
        assert claims["username"] == "Alice"
        assert claims["provider"] == "email"

    def test_signup_validation_errors(self, client):
        resp = client.post(f"{API}/auth/signup", json={
            "name": "",
            "email": "not-an-email",
            "password": "short",
        })
        assert resp.status_code == 422
        body = resp.json()
        assert body["code"] == "validation_failed"
        assert body["error"] == {
            "name": "must be provided",
            "email": "must be a valid email address",
            "password": "must be at least 8 bytes long",
        }

    def test_signup_password_too_long(self, client):
        resp = client.post(f"{API}/auth/signup", json={
            "name": "Alice",
            "email": "alice@example.com",
            "password": "x" * 73,
        })
        assert resp.status_code == 422
        assert resp.json()["error"] == {"password": "must not be more than 72 bytes long"}

    def test_signup_duplicate_email(self, client):
        create_test_user(client, email="dup@example.com")
        resp = client.post(f"{API}/auth/signup", json={
            "name": "Other",
            "email": "DUP@example.com",
            "password": "correct-horse",
        })
        assert resp.status_code == 409
        assert resp.json() == {
            "error": {"email": "a user with this email address already exists"},
            "code": "duplicate_email",
        }

    def test_signup_missing_field(self, client):
        resp = client.post(f"{API}/auth/signup", json={"name": "Alice", "email": "a@example.com"})
        assert resp.status_code == 422
        assert "password" in resp.json()["error"]

    def test_malformed_json_is_bad_request(self, client):
        resp = client.post(
            f"{API}/auth/signup",
            content=b'{"name": "Alice",',
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "bad_request"


class TestLogin:

    def test_login_success(self, client):
        user = create_test_user(client, email="bob@example.com")
        resp = client.post(f"{API}/auth/login", json={"email": "bob@example.com", "password": user["password"]})
        assert resp.status_code == 200
        claims = decode_token(resp.json()["tokens"]["access_token"])
        assert claims["sub"] == str(user["id"])

    def test_wrong_password_and_unknown_email_look_the_same(self, client):
        create_test_user(client, email="bob@example.com")
        wrong = client.post(f"{API}/auth/login", json={"email": "bob@example.com", "password": "wrong-password"})
        missing = client.post(f"{API}/auth/login", json={"email": "nobody@example.com", "password": "wrong-password"})
        assert wrong.status_code == missing.status_code == 401
        assert wrong.json() == missing.json()
        assert wrong.json()["code"] == "invalid_credentials"


class TestRefresh:

    def test_refresh_returns_new_pair(self, client):
        user = create_test_user(client)
        resp = client.post(f"{API}/auth/refresh", json={"refresh_token": user["tokens"]["refresh_token"]})
        assert resp.status_code == 200
        tokens = resp.json()["tokens"]
        assert decode_token(tokens["access_token"])["sub"] == str(user["id"])

    def test_access_token_is_not_a_refresh_token(self, client):
        user = create_test_user(client)
        resp = client.post(f"{API}/auth/refresh", json={"refresh_token": user["tokens"]["access_token"]})
        assert resp.status_code == 401
        assert resp.json()["code"] == "invalid_token"

    def test_refresh_for_deleted_user(self, client):
        user = create_test_user(client)
        client.delete(f"{API}/users/me", headers=user["headers"])
        resp = client.post(f"{API}/auth/refresh", json={"refresh_token": user["tokens"]["refresh_token"]})
        assert resp.status_code == 401


class TestIdentity:

    def test_garbage_token(self, client):
        resp = client.get(f"{API}/users/me", headers=auth_headers("not.a.jwt"))
        assert resp.status_code == 401
        assert resp.json()["code"] == "invalid_token"
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    def test_malformed_authorization_header(self, client):
        resp = client.get(f"{API}/users/me", headers={"Authorization": "Token abc"})
        assert resp.status_code == 401
        assert resp.json()["code"] == "invalid_token"

    def test_refresh_token_cannot_authenticate_requests(self, client):
        user = create_test_user(client)
        resp = client.get(f"{API}/users/me", headers=auth_headers(user["tokens"]["refresh_token"]))
        assert resp.status_code == 401

    def test_token_for_unknown_user(self, client):
        class Ghost:
            id = 424242
            uuid = "00000000-0000-0000-0000-000000000000"
            name = "Ghost"
            email = "ghost@example.com"
            avatar_url = ""
            provider = "email"

        resp = client.get(f"{API}/users/me", headers=auth_headers(create_access_token(Ghost())))
        assert resp.status_code == 401
        assert resp.json()["code"] == "invalid_token"


class TestHealthcheck:

    def test_healthcheck(self, client):
        resp = client.get(f"{API}/healthcheck")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "available"
        assert data["environment"] == settings.ENV
        assert data["version"] == "0.1.0"
