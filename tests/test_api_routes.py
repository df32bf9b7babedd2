"""
tests/test_api_routes.py -- Integration tests for the users and profiles routes.

These tests exercise the full stack: FastAPI routing -> auth dependency
injection -> AuthFlow / ProfileResolver -> SQLite -> response model
serialization. Unit tests of the core live in test_auth_flow.py and
test_profiles.py; this module checks the HTTP contract on top.

Coverage:
  - register / login / current user / update happy paths
  - uniform 401 for bad credentials, 409 for duplicates, 422 for bad input
  - both "Token" and "Bearer" Authorization schemes
  - responses never carry a password or hash
  - profile following flag for anonymous, follower and third-party viewers
  - follow / unfollow status codes, including self-follow and repeat follow

Fixtures used (from conftest.py):
  - api_client: TestClient over the real app with a fresh shared-memory DB
"""

from __future__ import annotations

from fastapi.testclient import TestClient


def _register(client: TestClient, username: str, password: str = "secret", **extra) -> dict:
    body = {"user": {"email": f"{username}@x.com", "username": username, "password": password, **extra}}
    resp = client.post("/api/users", json=body)
    assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
    return resp.json()["user"]


def _auth(token: str, scheme: str = "Token") -> dict:
    return {"Authorization": f"{scheme} {token}"}


class TestRegisterAndLogin:
    def test_register_returns_user_and_token(self, api_client: TestClient) -> None:
        user = _register(api_client, "alice", bio="hi")
        assert user["username"] == "alice"
        assert user["email"] == "alice@x.com"
        assert user["bio"] == "hi"
        assert user["token"]
        assert "password" not in user
        assert "password_hash" not in user

    def test_register_sets_no_store(self, api_client: TestClient) -> None:
        body = {"user": {"email": "a@x.com", "username": "a", "password": "secret"}}
        resp = api_client.post("/api/users", json=body)
        assert resp.headers["cache-control"] == "no-store"

    def test_register_duplicate_email_conflict(self, api_client: TestClient) -> None:
        _register(api_client, "alice")
        resp = api_client.post(
            "/api/users",
            json={"user": {"email": "alice@x.com", "username": "other", "password": "secret"}},
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "duplicate_user"

    def test_register_missing_field(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/users", json={"user": {"email": "a@x.com", "username": "a"}})
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "validation_error"
        assert "password" in error["message"]

    def test_register_without_envelope(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/users", json={"email": "a@x.com"})
        assert resp.status_code == 422

    def test_login_success(self, api_client: TestClient) -> None:
        _register(api_client, "alice")
        resp = api_client.post("/api/users/login", json={"user": {"email": "alice@x.com", "password": "secret"}})
        assert resp.status_code == 200, resp.text
        user = resp.json()["user"]
        assert user["username"] == "alice"
        assert user["token"]
        assert resp.headers["cache-control"] == "no-store"

    def test_login_failures_are_uniform(self, api_client: TestClient) -> None:
        _register(api_client, "alice")
        wrong_password = api_client.post(
            "/api/users/login", json={"user": {"email": "alice@x.com", "password": "wrong"}}
        )
        unknown_email = api_client.post(
            "/api/users/login", json={"user": {"email": "nobody@x.com", "password": "secret"}}
        )
        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json()["error"]["code"] == "bad_credentials"


class TestCurrentUser:
    def test_current_user_token_scheme(self, api_client: TestClient) -> None:
        token = _register(api_client, "alice")["token"]
        resp = api_client.get("/api/user", headers=_auth(token))
        assert resp.status_code == 200
        user = resp.json()["user"]
        assert user["username"] == "alice"
        assert user["token"] == token
        assert "password" not in user

    def test_current_user_bearer_scheme(self, api_client: TestClient) -> None:
        token = _register(api_client, "alice")["token"]
        resp = api_client.get("/api/user", headers=_auth(token, "Bearer"))
        assert resp.status_code == 200

    def test_current_user_requires_auth(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/user")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_current_user_bad_token(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/user", headers=_auth("not.a.token"))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "token_invalid"


class TestUpdateUser:
    def test_update_bio_and_password(self, api_client: TestClient) -> None:
        token = _register(api_client, "alice")["token"]
        resp = api_client.put(
            "/api/user",
            json={"user": {"bio": "new bio", "password": "new-secret"}},
            headers=_auth(token),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["user"]["bio"] == "new bio"

        old = api_client.post("/api/users/login", json={"user": {"email": "alice@x.com", "password": "secret"}})
        new = api_client.post("/api/users/login", json={"user": {"email": "alice@x.com", "password": "new-secret"}})
        assert old.status_code == 401
        assert new.status_code == 200

    def test_update_requires_auth(self, api_client: TestClient) -> None:
        resp = api_client.put("/api/user", json={"user": {"bio": "x"}})
        assert resp.status_code == 401

    def test_update_username_collision(self, api_client: TestClient) -> None:
        _register(api_client, "alice")
        token = _register(api_client, "bob")["token"]
        resp = api_client.put("/api/user", json={"user": {"username": "alice"}}, headers=_auth(token))
        assert resp.status_code == 409


class TestProfiles:
    def test_anonymous_profile(self, api_client: TestClient) -> None:
        _register(api_client, "bob", bio="bob bio")
        resp = api_client.get("/api/profiles/bob")
        assert resp.status_code == 200
        assert resp.json() == {"profile": {"username": "bob", "bio": "bob bio", "image": None, "following": False}}

    def test_profile_not_found(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/profiles/nobody")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_bad_token_on_profile_is_anonymous(self, api_client: TestClient) -> None:
        _register(api_client, "bob")
        resp = api_client.get("/api/profiles/bob", headers=_auth("garbage"))
        assert resp.status_code == 200
        assert resp.json()["profile"]["following"] is False

    def test_follow_flow(self, api_client: TestClient) -> None:
        alice = _register(api_client, "alice")
        _register(api_client, "bob")
        carol = _register(api_client, "carol")

        resp = api_client.post("/api/profiles/bob/follow", headers=_auth(alice["token"]))
        assert resp.status_code == 200
        assert resp.json()["profile"]["following"] is True

        assert api_client.get("/api/profiles/bob", headers=_auth(alice["token"])).json()["profile"]["following"]
        assert not api_client.get("/api/profiles/bob", headers=_auth(carol["token"])).json()["profile"]["following"]
        assert not api_client.get("/api/profiles/bob").json()["profile"]["following"]

        resp = api_client.delete("/api/profiles/bob/follow", headers=_auth(alice["token"]))
        assert resp.status_code == 200
        assert resp.json()["profile"]["following"] is False
        assert not api_client.get("/api/profiles/bob", headers=_auth(alice["token"])).json()["profile"]["following"]

    def test_follow_twice_conflict(self, api_client: TestClient) -> None:
        alice = _register(api_client, "alice")
        _register(api_client, "bob")
        api_client.post("/api/profiles/bob/follow", headers=_auth(alice["token"]))
        resp = api_client.post("/api/profiles/bob/follow", headers=_auth(alice["token"]))
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "already_following"

    def test_follow_self_rejected(self, api_client: TestClient) -> None:
        alice = _register(api_client, "alice")
        resp = api_client.post("/api/profiles/alice/follow", headers=_auth(alice["token"]))
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "self_follow"

    def test_unfollow_without_follow_is_ok(self, api_client: TestClient) -> None:
        alice = _register(api_client, "alice")
        _register(api_client, "bob")
        resp = api_client.delete("/api/profiles/bob/follow", headers=_auth(alice["token"]))
        assert resp.status_code == 200
        assert resp.json()["profile"]["following"] is False

    def test_follow_requires_auth(self, api_client: TestClient) -> None:
        _register(api_client, "bob")
        assert api_client.post("/api/profiles/bob/follow").status_code == 401
        assert api_client.delete("/api/profiles/bob/follow").status_code == 401
