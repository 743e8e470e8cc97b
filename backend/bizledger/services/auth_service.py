# Overview: Service-layer operations for auth; password hashing, user accounts, and admin checks.

"""
Authentication and Partner Account Service

WHY: Every record is attributed to a partner. Passwords are hashed with
bcrypt and checked for strength before they are stored.

AUTHORIZATION: The only distinction between accounts is the is_admin flag.
Admin-only operations call require_admin() themselves so the rule holds no
matter which route (or CLI command) reaches them.
"""

import logging
import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, Investment, TimeSession, Debt
from ..models.auth import ROLE_ADMIN, ROLE_PARTNER, ROLES
from bizledger.time_utils import utcnow

logger = logging.getLogger("bizledger.auth")

ADMIN_USERNAME = "admin"


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthorizationError(Exception):
    """Raised when the acting user may not perform an operation (403)."""
    pass


class UserError(ValueError):
    """Raised for invalid account operations (duplicate username, unknown user)."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt (BCRYPT_ROUNDS, default 12)."""
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def require_admin(actor: User | None) -> None:
    if actor is None or not actor.is_admin:
        raise AuthorizationError("Admin privileges required")


def ensure_owner_or_admin(actor: User | None, owner_id: int | None, what: str = "record") -> None:
    """Partners act on their own records; admins act on anyone's."""
    if actor is None:
        raise AuthorizationError("Authentication required")
    if actor.is_admin:
        return
    if owner_id is None or owner_id != actor.id:
        raise AuthorizationError(f"You can only modify your own {what}")


def create_user(
    username: str,
    password: str,
    email: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    is_admin: bool = False,
    commit: bool = True,
) -> User:
    """
    Create a partner account.

    Username must be unique. Password must meet strength requirements or
    PasswordValidationError is raised. Callers decide who may create admins.
    """
    username = (username or "").strip()
    if not username:
        raise UserError("username is required")

    existing = db.session.query(User).filter(User.username == username).first()
    if existing:
        raise UserError("Username already in use")

    user = User(
        username=username,
        email=(email or "").strip() or None,
        first_name=(first_name or "").strip() or None,
        last_name=(last_name or "").strip() or None,
        password_hash=hash_password(password),
        is_admin=bool(is_admin),
        role=ROLE_ADMIN if is_admin else ROLE_PARTNER,
        is_active=True,
    )

    db.session.add(user)
    if commit:
        db.session.commit()
    logger.info("User created: %s (admin=%s)", username, user.is_admin)
    return user


def ensure_admin_user(password: str | None = None) -> tuple[User, bool]:
    """
    Make sure the bootstrap admin account exists.

    Returns (user, created). Idempotent: an existing "admin" is left alone.
    """
    existing = db.session.query(User).filter_by(username=ADMIN_USERNAME).first()
    if existing:
        return existing, False

    user = create_user(
        username=ADMIN_USERNAME,
        password=password or current_app.config["DEFAULT_ADMIN_PASSWORD"],
        email="admin@example.com",
        first_name="Administrador",
        is_admin=True,
    )
    return user, True


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns User if credentials valid and account active, None otherwise.
    Updates last_login_at on success.
    """
    if not username or not password:
        return None

    user = db.session.query(User).filter(
        User.username == username.strip(),
        User.is_active.is_(True),
    ).first()

    if not user or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def reset_password(actor: User, username: str, new_password: str) -> User:
    """
    Set a new password.

    Partners may reset their own password; admins may reset anyone's.
    All of the account's sessions are revoked afterwards.
    """
    from . import session_service

    target = db.session.query(User).filter_by(username=(username or "").strip()).first()
    if not target:
        raise UserError("User not found")

    ensure_owner_or_admin(actor, target.id, "account")

    target.password_hash = hash_password(new_password)
    db.session.commit()

    revoked = session_service.revoke_all_user_sessions(target.id, reason="Password reset")
    logger.info("Password reset for %s by %s (%s sessions revoked)", target.username, actor.username, revoked)
    return target


def list_users(actor: User) -> list[User]:
    require_admin(actor)
    return db.session.query(User).order_by(User.id.asc()).all()


def get_user(actor: User, user_id: int) -> User | None:
    require_admin(actor)
    return db.session.get(User, user_id)


def update_user(actor: User, user_id: int, fields: dict) -> User:
    """
    Admin edit of a partner account.

    Writable: email, first_name, last_name, is_admin, role, is_active, password.
    An admin cannot remove their own admin flag.
    """
    require_admin(actor)

    user = db.session.get(User, user_id)
    if not user:
        raise UserError("User not found")

    for key in ("email", "first_name", "last_name"):
        if key in fields:
            value = fields[key]
            setattr(user, key, (str(value).strip() or None) if value is not None else None)

    if "is_admin" in fields:
        is_admin = bool(fields["is_admin"])
        if user.id == actor.id and not is_admin:
            raise UserError("Admins cannot remove their own admin flag")
        user.is_admin = is_admin
        user.role = ROLE_ADMIN if is_admin else ROLE_PARTNER

    if "role" in fields and "is_admin" not in fields:
        role = fields["role"]
        if role not in ROLES:
            raise UserError(f"role must be one of {', '.join(ROLES)}")
        user.role = role

    if "is_active" in fields:
        if user.id == actor.id and not fields["is_active"]:
            raise UserError("Admins cannot deactivate themselves")
        user.is_active = bool(fields["is_active"])

    if fields.get("password"):
        user.password_hash = hash_password(fields["password"])

    db.session.commit()
    return user


def delete_user(actor: User, user_id: int) -> bool:
    """
    Delete a partner and the records they own (investments, time sessions,
    debts) in one transaction.

    Returns False when the user does not exist.
    """
    from .concurrency import run_in_transaction

    require_admin(actor)
    if actor.id == user_id:
        raise UserError("Admins cannot delete their own account")

    def _op() -> bool:
        user = db.session.get(User, user_id)
        if not user:
            return False

        counts = {
            "investments": db.session.query(Investment).filter_by(user_id=user_id).delete(synchronize_session=False),
            "timeSessions": db.session.query(TimeSession).filter_by(user_id=user_id).delete(synchronize_session=False),
            "debts": db.session.query(Debt).filter_by(user_id=user_id).delete(synchronize_session=False),
        }
        from .subscription_service import mark_changed
        mark_changed(db.session, *[name for name, count in counts.items() if count])

        db.session.delete(user)
        logger.info("User %s deleted by %s (%s)", user.username, actor.username, counts)
        return True

    return run_in_transaction(_op)
