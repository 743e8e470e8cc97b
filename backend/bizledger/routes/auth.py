# backend/bizledger/routes/auth.py
"""
Authentication API routes

- Self-registration of partner accounts (ALLOW_SELF_REGISTRATION)
- Username/password login returning a bearer token
- Logout revokes the token
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services.auth_service import AuthorizationError, PasswordValidationError, UserError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _issue_session(user):
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return session, token


@auth_bp.post("/register")
def register_route():
    """
    Partner self-registration.

    Requires first_name, last_name, username, email and password. New
    accounts are never admins. Returns a session token so the partner is
    logged in right away.
    """
    if not current_app.config.get("ALLOW_SELF_REGISTRATION", True):
        return jsonify({
            "error": "Self-registration is disabled. Contact an administrator to create an account."
        }), 403

    try:
        data = request.get_json(silent=True) or {}
        required = ["first_name", "last_name", "username", "email", "password"]
        missing = [field for field in required if not data.get(field)]
        if missing:
            return jsonify({"error": f"Missing required fields: {', '.join(missing)}"}), 400

        user = auth_service.create_user(
            username=data["username"],
            password=data["password"],
            email=data["email"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            is_admin=False,
        )
        session, token = _issue_session(user)

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Registration successful",
        }), 201

    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UserError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            current_app.logger.info("Failed login for %s", username)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = _issue_session(user)

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the session token used for this request."""
    try:
        session_service.revoke_session(g.token, reason="User logout")
        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/validate")
@require_auth
def validate_route():
    """Confirm the token is still valid and return the current user."""
    return jsonify({
        "user": g.current_user.to_dict(),
        "session": g.session_context.session.to_dict(),
        "message": "Session valid",
    }), 200


@auth_bp.post("/reset-password")
@require_auth
def reset_password_route():
    """
    Set a new password. Partners may reset their own; admins anyone's.
    Every session of the target account is revoked.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or g.current_user.username
        new_password = data.get("new_password")
        if not new_password:
            return jsonify({"error": "new_password required"}), 400

        user = auth_service.reset_password(g.current_user, username, new_password)
        return jsonify({"user": user.to_dict(), "message": "Password updated"}), 200

    except AuthorizationError as e:
        return jsonify({"error": str(e)}), 403
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UserError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to reset password")
        return jsonify({"error": "Internal server error"}), 500
