"""
Pulseboard - Authentication Test Suite

Tests for:
- Password hashing and token issue/verify
- Login success/failure scenarios
- Session-backed revocation (logout)
- Registration and hash upgrades

Run with: pytest tests/test_auth.py -v
"""

from datetime import timedelta
from uuid import UUID, uuid4

import bcrypt
import pytest
from sqlmodel import select

from pulseboard.audit.models import AuditAction, AuditLog
from pulseboard.auth.models import Role, Session, User
from pulseboard.auth.password import hash_password, needs_rehash, verify_password
from pulseboard.auth.tokens import TokenService, hash_token
from tests.conftest import TEST_PASSWORD, TEST_SECRET, auth_headers, login_user, token_for


# =============================================================================
# PASSWORD HASHING TESTS
# =============================================================================

class TestPasswordHashing:
    """Unit tests for bcrypt password utilities."""

    def test_hash_password_creates_bcrypt_hash(self):
        """Password hashing creates valid bcrypt hash."""
        hashed = hash_password("SecurePassword123", rounds=4)

        assert hashed.startswith("$2b$04$")
        assert len(hashed) == 60

    def test_verify_password_correct(self):
        hashed = hash_password("SecurePassword123", rounds=4)

        assert verify_password("SecurePassword123", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = hash_password("SecurePassword123", rounds=4)

        assert verify_password("WrongPassword", hashed) is False
        assert verify_password("", hashed) is False

    def test_verify_password_malformed_hash(self):
        """Malformed stored hashes fail closed instead of raising."""
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    def test_different_passwords_different_hashes(self):
        """Same password generates different hashes (salted)."""
        hash1 = hash_password("SecurePassword123", rounds=4)
        hash2 = hash_password("SecurePassword123", rounds=4)

        assert hash1 != hash2
        assert verify_password("SecurePassword123", hash1)
        assert verify_password("SecurePassword123", hash2)

    def test_needs_rehash(self):
        old_hash = bcrypt.hashpw(b"password", bcrypt.gensalt(rounds=4)).decode()

        assert needs_rehash(old_hash, target_rounds=5) is True
        assert needs_rehash(old_hash, target_rounds=4) is False


# =============================================================================
# TOKEN SERVICE TESTS
# =============================================================================

class TestTokenService:
    """Unit tests for token issue and verification."""

    def test_issue_then_verify_returns_user(self):
        tokens = TokenService(TEST_SECRET)
        user_id = uuid4()

        token, expires_at = tokens.issue(user_id, "ops@test.com")
        claims = tokens.verify(token)

        assert claims is not None
        assert claims.user_id == user_id
        assert claims.email == "ops@test.com"
        assert len(claims.jti) == 32

    def test_tokens_are_unique_per_issue(self):
        tokens = TokenService(TEST_SECRET)
        user_id = uuid4()

        assert tokens.issue(user_id)[0] != tokens.issue(user_id)[0]

    def test_tampered_token_invalid(self):
        tokens = TokenService(TEST_SECRET)
        token, _ = tokens.issue(uuid4())

        parts = token.split(".")
        parts[1] = parts[1] + "tampered"

        assert tokens.verify(".".join(parts)) is None

    def test_wrong_secret_invalid(self):
        token, _ = TokenService(TEST_SECRET).issue(uuid4())

        assert TokenService("another-secret").verify(token) is None

    def test_expired_token_invalid(self):
        tokens = TokenService(TEST_SECRET, lifetime=timedelta(seconds=-5))
        token, _ = tokens.issue(uuid4())

        assert tokens.verify(token) is None

    @pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c", None, 42])
    def test_malformed_input_never_raises(self, garbage):
        assert TokenService(TEST_SECRET).verify(garbage) is None

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenService("")

    def test_hash_token_is_stable_sha256(self):
        assert hash_token("abc") == hash_token("abc")
        assert len(hash_token("abc")) == 64


# =============================================================================
# LOGIN ENDPOINT TESTS
# =============================================================================

class TestLoginEndpoint:
    """Integration tests for POST /api/auth/login."""

    def test_login_success(self, client, regular_user):
        """Successful login returns token and user."""
        response = client.post(
            "/api/auth/login",
            json={"email": "viewer@test.com", "password": TEST_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token"]
        assert data["token_type"] == "bearer"
        assert data["expires_at"]
        assert data["user"]["id"] == str(regular_user.id)
        assert data["user"]["role"] == "user"

    def test_login_email_is_case_insensitive(self, client, regular_user):
        assert login_user(client, "Viewer@Test.com") is not None

    def test_login_invalid_password(self, client, regular_user):
        response = client.post(
            "/api/auth/login",
            json={"email": "viewer@test.com", "password": "WrongPassword123"},
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_login_user_not_found(self, client):
        response = client.post(
            "/api/auth/login",
            json={"email": "nobody@test.com", "password": "SomePassword123"},
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_login_inactive_user_gets_same_denial(self, client, inactive_user):
        """Inactive accounts are indistinguishable from bad credentials."""
        response = client.post(
            "/api/auth/login",
            json={"email": "inactive@test.com", "password": TEST_PASSWORD},
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_login_invalid_email_is_validation_error(self, client):
        response = client.post(
            "/api/auth/login",
            json={"email": "not-an-email", "password": TEST_PASSWORD},
        )

        assert response.status_code == 400
        assert "email" in response.json()["detail"].lower()

    def test_login_creates_hashed_session_and_audit(self, client, db_session, regular_user):
        token = token_for(client, regular_user)

        db_session.expire_all()
        session = db_session.exec(select(Session).where(Session.user_id == regular_user.id)).one()
        assert session.token_hash == hash_token(token)
        assert session.token_hash != token

        actions = db_session.exec(select(AuditLog.action).where(AuditLog.user_id == regular_user.id)).all()
        assert AuditAction.LOGIN_SUCCESS in actions

        user = db_session.get(User, regular_user.id)
        assert user.last_login is not None

    def test_failed_login_is_audited(self, client, db_session, regular_user):
        client.post("/api/auth/login", json={"email": "viewer@test.com", "password": "nope-nope"})

        entries = db_session.exec(
            select(AuditLog).where(AuditLog.action == AuditAction.LOGIN_FAILURE)
        ).all()
        assert len(entries) == 1
        assert entries[0].details["reason"] == "invalid_password"

    def test_login_upgrades_hash_work_factor(self, client, db_session, regular_user):
        client.app.state.settings.BCRYPT_ROUNDS = 5

        assert login_user(client, regular_user.email) is not None

        db_session.expire_all()
        user = db_session.get(User, regular_user.id)
        assert user.password_hash.startswith("$2b$05$")
        assert verify_password(TEST_PASSWORD, user.password_hash)


# =============================================================================
# AUTHENTICATION GATE TESTS
# =============================================================================

class TestAuthenticationGate:
    """Tests for bearer token resolution on protected routes."""

    def test_missing_token_rejected(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["detail"] == "Token required"

    def test_garbage_token_rejected(self, client):
        response = client.get("/api/auth/me", headers=auth_headers("garbage"))

        assert response.status_code == 401

    def test_me_returns_token_owner(self, client, regular_user):
        """Gate resolution yields the user the token was issued for."""
        token = token_for(client, regular_user)

        response = client.get("/api/auth/me", headers=auth_headers(token))

        assert response.status_code == 200
        assert UUID(response.json()["id"]) == regular_user.id
        assert response.json()["email"] == "viewer@test.com"

    def test_validly_signed_token_without_session_rejected(self, client, regular_user):
        """Signature alone is not authority; the session row must exist."""
        token, _ = TokenService(TEST_SECRET).issue(regular_user.id, regular_user.email)

        response = client.get("/api/auth/me", headers=auth_headers(token))

        assert response.status_code == 401

    def test_deactivated_user_token_rejected(self, client, db_session, regular_user):
        token = token_for(client, regular_user)

        user = db_session.get(User, regular_user.id)
        user.is_active = False
        db_session.add(user)
        db_session.commit()

        response = client.get("/api/auth/me", headers=auth_headers(token))
        assert response.status_code == 401


# =============================================================================
# LOGOUT TESTS
# =============================================================================

class TestLogoutEndpoint:
    """Integration tests for POST /api/auth/logout."""

    def test_login_me_logout_me(self, client, regular_user):
        """Login, resolve, logout, then the same token is refused."""
        body = login_user(client, regular_user.email)
        headers = auth_headers(body["token"])

        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json()["id"] == body["user"]["id"]

        logout = client.post("/api/auth/logout", headers=headers)
        assert logout.status_code == 200
        assert logout.json()["sessions_invalidated"] == 1

        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 401

    def test_logout_only_revokes_current_session(self, client, regular_user):
        token1 = token_for(client, regular_user)
        token2 = token_for(client, regular_user)

        client.post("/api/auth/logout", headers=auth_headers(token1))

        assert client.get("/api/auth/me", headers=auth_headers(token1)).status_code == 401
        assert client.get("/api/auth/me", headers=auth_headers(token2)).status_code == 200

    def test_logout_all_sessions(self, client, regular_user):
        token1 = token_for(client, regular_user)
        token2 = token_for(client, regular_user)

        response = client.post(
            "/api/auth/logout",
            headers=auth_headers(token1),
            json={"all_sessions": True},
        )

        assert response.status_code == 200
        assert response.json()["sessions_invalidated"] == 2
        assert client.get("/api/auth/me", headers=auth_headers(token1)).status_code == 401
        assert client.get("/api/auth/me", headers=auth_headers(token2)).status_code == 401


# =============================================================================
# REGISTRATION TESTS
# =============================================================================

class TestRegistration:
    """Tests for POST /api/auth/register."""

    def test_register_creates_user_role_account(self, client):
        response = client.post(
            "/api/auth/register",
            json={"email": "New.Person@Test.com", "password": "LongEnough1"},
        )

        assert response.status_code == 201
        assert response.json()["email"] == "new.person@test.com"
        assert response.json()["role"] == Role.USER.value
        assert login_user(client, "new.person@test.com", "LongEnough1") is not None

    def test_register_duplicate_email(self, client, regular_user):
        response = client.post(
            "/api/auth/register",
            json={"email": "viewer@test.com", "password": "LongEnough1"},
        )

        assert response.status_code == 409

    def test_register_short_password(self, client):
        response = client.post(
            "/api/auth/register",
            json={"email": "short@test.com", "password": "short"},
        )

        assert response.status_code == 400

    def test_register_disabled(self, client):
        client.app.state.settings.ALLOW_REGISTRATION = False

        response = client.post(
            "/api/auth/register",
            json={"email": "late@test.com", "password": "LongEnough1"},
        )

        assert response.status_code == 403
