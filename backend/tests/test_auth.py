"""
Authentication, session and account management tests.

Verifies:
- Password strength rules and bcrypt hashing
- Login issues a token; logout and password reset revoke it
- Unauthenticated requests return 401, partners are denied admin routes (403)
- Deleting a partner deletes the records they own
"""

from datetime import timedelta

import pytest

from bizledger.extensions import db
from bizledger.models import Debt, Investment, SessionToken, TimeSession, User
from bizledger.services import auth_service, session_service
from bizledger.services.auth_service import AuthorizationError, PasswordValidationError, UserError
from bizledger.time_utils import utcnow

from conftest import PASSWORD, auth_headers, get_auth_token


# =============================================================================
# PASSWORDS AND ACCOUNTS
# =============================================================================


class TestPasswords:

    @pytest.mark.parametrize(
        "password",
        ["Sh0rt!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigitsHere!", "NoSpecial123"],
    )
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    def test_hash_and_verify(self, app):
        hashed = auth_service.hash_password(PASSWORD)
        assert hashed != PASSWORD
        assert auth_service.verify_password(PASSWORD, hashed) is True
        assert auth_service.verify_password("Wrong123!", hashed) is False
        assert auth_service.verify_password(PASSWORD, "not-a-hash") is False


class TestAccounts:

    def test_duplicate_username_rejected(self, partner):
        with pytest.raises(UserError):
            auth_service.create_user(username="ana", password=PASSWORD)

    def test_authenticate(self, partner):
        assert auth_service.authenticate("ana", PASSWORD).id == partner.id
        assert auth_service.authenticate("ana", "Wrong123!") is None
        assert auth_service.authenticate("ghost", PASSWORD) is None

    def test_inactive_user_cannot_log_in(self, partner, admin_user):
        auth_service.update_user(admin_user, partner.id, {"is_active": False})
        assert auth_service.authenticate("ana", PASSWORD) is None

    def test_ensure_admin_user_is_idempotent(self, db_session):
        user, created = auth_service.ensure_admin_user()
        again, created_again = auth_service.ensure_admin_user()

        assert created is True
        assert created_again is False
        assert again.id == user.id
        assert user.is_admin is True

    def test_partner_cannot_manage_users(self, partner, other_partner):
        with pytest.raises(AuthorizationError):
            auth_service.list_users(partner)
        with pytest.raises(AuthorizationError):
            auth_service.delete_user(partner, other_partner.id)

    def test_admin_cannot_demote_or_delete_self(self, admin_user):
        with pytest.raises(UserError):
            auth_service.update_user(admin_user, admin_user.id, {"is_admin": False})
        with pytest.raises(UserError):
            auth_service.delete_user(admin_user, admin_user.id)

    def test_promote_partner(self, admin_user, partner):
        user = auth_service.update_user(admin_user, partner.id, {"is_admin": True})
        assert user.is_admin is True
        assert user.role == "admin"

    def test_delete_user_removes_owned_records(self, admin_user, partner, other_partner):
        db.session.add_all([
            Investment(description="Capital", amount=100, user_id=partner.id, user_name="ana", date=utcnow()),
            Investment(description="Capital", amount=50, user_id=other_partner.id, user_name="bruno", date=utcnow()),
            TimeSession(user_id=partner.id, start_time=utcnow(), hourly_rate=10),
            Debt(description="Luz", amount=90, due_date=utcnow().date(), user_id=partner.id, user_name="ana"),
        ])
        db.session.commit()
        partner_id = partner.id

        assert auth_service.delete_user(admin_user, partner_id) is True

        assert db.session.get(User, partner_id) is None
        assert db.session.query(Investment).filter_by(user_id=partner_id).count() == 0
        assert db.session.query(TimeSession).filter_by(user_id=partner_id).count() == 0
        assert db.session.query(Debt).filter_by(user_id=partner_id).count() == 0
        assert db.session.query(Investment).count() == 1
        assert auth_service.delete_user(admin_user, partner_id) is False


# =============================================================================
# SESSIONS
# =============================================================================


class TestSessions:

    def test_token_is_stored_hashed(self, partner):
        session, token = session_service.create_session(partner.id)
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token

    def test_validate_and_revoke(self, partner):
        _, token = session_service.create_session(partner.id)

        context = session_service.validate_session(token)
        assert context.user.id == partner.id
        assert context.is_admin is False

        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_idle_session_expires(self, partner):
        session, token = session_service.create_session(partner.id)
        session.last_used_at = utcnow() - timedelta(hours=3)
        db.session.commit()

        assert session_service.validate_session(token) is None
        assert db.session.get(SessionToken, session.id).revoked_reason == "Idle timeout"

    def test_password_reset_revokes_all_sessions(self, partner):
        _, first = session_service.create_session(partner.id)
        _, second = session_service.create_session(partner.id)

        auth_service.reset_password(partner, "ana", "NewPassword1!")

        assert session_service.validate_session(first) is None
        assert session_service.validate_session(second) is None
        assert auth_service.authenticate("ana", "NewPassword1!") is not None

    def test_partner_cannot_reset_someone_else(self, partner, other_partner):
        with pytest.raises(AuthorizationError):
            auth_service.reset_password(partner, "bruno", "NewPassword1!")

    def test_cleanup_removes_old_revoked_sessions(self, partner):
        session, token = session_service.create_session(partner.id)
        session_service.revoke_session(token)
        session.created_at = utcnow() - timedelta(days=45)
        db.session.commit()

        assert session_service.cleanup_expired_sessions(older_than_days=30) == 1


# =============================================================================
# HTTP: AUTHENTICATION AND AUTHORIZATION
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/admin/users"),
            ("GET", "/api/products"),
            ("POST", "/api/sales"),
            ("GET", "/api/time-sessions"),
            ("GET", "/api/investments"),
            ("GET", "/api/debts"),
            ("GET", "/api/cash-movements"),
            ("GET", "/api/entries"),
            ("GET", "/api/unplanned-expenses"),
            ("GET", "/api/reports/dashboard"),
            ("GET", "/api/collections/products"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_rejected(self, client, db_session):
        resp = client.get("/api/products", headers=auth_headers("nope"))
        assert resp.status_code == 401


class TestAuthRoutes:

    def test_register_logs_partner_in(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "first_name": "Carla",
            "last_name": "Dias",
            "username": "carla",
            "email": "carla@example.com",
            "password": PASSWORD,
        })
        assert resp.status_code == 201
        assert resp.json["user"]["is_admin"] is False

        token = resp.json["token"]
        assert client.post("/api/auth/validate", headers=auth_headers(token)).status_code == 200

    def test_register_duplicate_is_conflict(self, client, partner):
        resp = client.post("/api/auth/register", json={
            "first_name": "Ana",
            "last_name": "Souza",
            "username": "ana",
            "email": "ana2@example.com",
            "password": PASSWORD,
        })
        assert resp.status_code == 409

    def test_register_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/register", json={"username": "x"})
        assert resp.status_code == 400

    def test_register_disabled(self, app, client, db_session, monkeypatch):
        monkeypatch.setitem(app.config, "ALLOW_SELF_REGISTRATION", False)
        resp = client.post("/api/auth/register", json={})
        assert resp.status_code == 403

    def test_login_and_logout(self, client, partner):
        token = get_auth_token(client, "ana", PASSWORD)
        assert token

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.post("/api/auth/validate", headers=auth_headers(token)).status_code == 401

    def test_bad_credentials(self, client, partner):
        resp = client.post("/api/auth/login", json={"username": "ana", "password": "Wrong123!"})
        assert resp.status_code == 401


class TestAdminRoutes:

    def test_partner_denied(self, client, partner_headers):
        assert client.get("/api/admin/users", headers=partner_headers).status_code == 403
        resp = client.post(
            "/api/admin/users",
            json={"username": "x", "password": PASSWORD},
            headers=partner_headers,
        )
        assert resp.status_code == 403

    def test_admin_creates_lists_and_deletes(self, client, admin_headers):
        resp = client.post(
            "/api/admin/users",
            json={"username": "diego", "password": PASSWORD, "first_name": "Diego"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        user_id = resp.json["user"]["id"]

        listing = client.get("/api/admin/users", headers=admin_headers)
        assert {"admin", "diego"} <= {u["username"] for u in listing.json["items"]}

        assert client.delete(f"/api/admin/users/{user_id}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/admin/users/{user_id}", headers=admin_headers).status_code == 404

    def test_admin_weak_password(self, client, admin_headers):
        resp = client.post(
            "/api/admin/users",
            json={"username": "diego", "password": "weak"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
