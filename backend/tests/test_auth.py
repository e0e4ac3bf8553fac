"""Tests for authentication: password hashing, session tokens, auth endpoints, CSRF."""

from datetime import datetime, timedelta, timezone

from tipqr.core.rbac import UserRole
from tipqr.core.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from tipqr.models.auth import AuthSession, Verification
from tipqr.models.user import User

API = "/api/v1"


def _sign_up(client, email="new@example.com", password="password123", name="New Person"):
    return client.post(f"{API}/auth/sign-up", json={"name": name, "email": email, "password": password})


# ============== Password hashing ==============

class TestPasswordHashing:
    def test_hash_and_verify(self):
        h = get_password_hash("secret123")
        assert verify_password("secret123", h)

    def test_wrong_password_rejected(self):
        h = get_password_hash("secret123")
        assert not verify_password("wrong", h)

    def test_hash_is_unique(self):
        assert get_password_hash("same") != get_password_hash("same")

    def test_invalid_hash_returns_false(self):
        assert not verify_password("test", "not-a-hash")


# ============== JWT tokens ==============

class TestJWTTokens:
    def test_create_and_decode(self):
        token = create_access_token(data={"sub": "u1"}, jti="session-1")
        payload = decode_access_token(token)
        assert payload["sub"] == "u1"
        assert payload["jti"] == "session-1"
        assert "exp" in payload

    def test_expired_token(self):
        token = create_access_token(data={"sub": "u1"}, expires_delta=timedelta(seconds=-1))
        assert decode_access_token(token) is None

    def test_tampered_token(self):
        token = create_access_token(data={"sub": "u1"})
        assert decode_access_token(token[:-2] + "xx") is None

    def test_token_without_subject_rejected(self):
        assert decode_access_token(create_access_token(data={})) is None


# ============== Endpoints ==============

class TestSignUp:
    def test_sign_up_creates_owner(self, client, db_session):
        resp = _sign_up(client, email="New@Example.com")
        assert resp.status_code == 201
        body = resp.json()
        assert body["token"]
        assert body["user"]["role"] == "owner"
        assert body["user"]["email"] == "new@example.com"
        assert body["user"]["emailVerified"] is False
        assert "session_token" in resp.cookies
        assert db_session.query(Verification).count() == 1

    def test_duplicate_email(self, client):
        _sign_up(client)
        client.cookies.clear()
        resp = _sign_up(client, email="NEW@example.com")
        assert resp.status_code == 409
        assert resp.json()["code"] == "EMAIL_EXISTS"

    def test_short_password(self, client):
        resp = _sign_up(client, password="short")
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"

    def test_role_cannot_be_chosen(self, client):
        resp = client.post(f"{API}/auth/sign-up", json={
            "name": "Sneaky", "email": "sneaky@example.com", "password": "password123", "role": "admin",
        })
        assert resp.status_code == 400


class TestSignIn:
    def test_sign_in(self, client, owner):
        resp = client.post(f"{API}/auth/sign-in", json={"email": owner.user.email, "password": "password123"})
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == owner.id

    def test_wrong_password(self, client, owner):
        resp = client.post(f"{API}/auth/sign-in", json={"email": owner.user.email, "password": "nope-nope"})
        assert resp.status_code == 401
        assert resp.json()["code"] == "INVALID_CREDENTIALS"

    def test_unknown_email_looks_the_same(self, client):
        resp = client.post(f"{API}/auth/sign-in", json={"email": "ghost@example.com", "password": "password123"})
        assert resp.status_code == 401
        assert resp.json()["code"] == "INVALID_CREDENTIALS"


class TestSession:
    def test_anonymous_session_is_null(self, client):
        resp = client.get(f"{API}/auth/session")
        assert resp.status_code == 200
        assert resp.json() == {"user": None}

    def test_bearer_session(self, client, worker):
        resp = client.get(f"{API}/auth/session", headers=worker.headers)
        assert resp.json()["user"]["role"] == "worker"

    def test_cookie_session(self, client):
        _sign_up(client)
        resp = client.get(f"{API}/auth/session")
        assert resp.json()["user"]["email"] == "new@example.com"

    def test_garbage_token_is_anonymous(self, client):
        resp = client.get(f"{API}/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401
        assert resp.json()["code"] == "UNAUTHENTICATED"

    def test_expired_session_row(self, client, db_session, owner):
        row = db_session.query(AuthSession).filter(AuthSession.user_id == owner.id).one()
        row.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        db_session.commit()
        assert client.get(f"{API}/me", headers=owner.headers).status_code == 401

    def test_role_change_takes_effect_next_request(self, client, db_session, owner):
        user = db_session.get(User, owner.id)
        user.role = UserRole.WORKER
        db_session.commit()
        resp = client.get(f"{API}/restaurants", headers=owner.headers)
        assert resp.status_code == 403


class TestSignOut:
    def test_sign_out_revokes_token(self, client, owner):
        resp = client.post(f"{API}/auth/sign-out", headers=owner.headers)
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "signedOut": True}
        assert client.get(f"{API}/me", headers=owner.headers).status_code == 401

    def test_sign_out_without_session(self, client):
        resp = client.post(f"{API}/auth/sign-out")
        assert resp.status_code == 200
        assert resp.json()["signedOut"] is False


class TestVerifyEmail:
    def test_verify(self, client, db_session):
        _sign_up(client)
        client.cookies.clear()
        token = db_session.query(Verification).one().value
        resp = client.post(f"{API}/auth/verify-email", json={"token": token})
        assert resp.status_code == 200
        assert resp.json()["emailVerified"] is True

    def test_unknown_token(self, client):
        resp = client.post(f"{API}/auth/verify-email", json={"token": "nope"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_TOKEN"


class TestCSRF:
    def test_cookie_write_without_header_rejected(self, client):
        _sign_up(client)
        resp = client.patch(f"{API}/me/role", json={"role": "worker"})
        assert resp.status_code == 403
        assert resp.json()["code"] == "CSRF_FAILED"

    def test_cookie_write_with_matching_header(self, client):
        _sign_up(client)
        csrf = client.cookies.get("csrf_token")
        resp = client.patch(f"{API}/me/role", json={"role": "worker"}, headers={"X-CSRF-Token": csrf})
        assert resp.status_code == 200
        assert resp.json()["role"] == "worker"

    def test_bearer_write_skips_csrf(self, client, owner):
        resp = client.patch(f"{API}/me/role", json={"role": "worker"}, headers=owner.headers)
        assert resp.status_code == 200
