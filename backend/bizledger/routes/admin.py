# backend/bizledger/routes/admin.py
"""
Admin API routes: partner account management.

Deleting a partner also deletes their investments, time sessions and
debts (one transaction).
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services.auth_service import AuthorizationError, PasswordValidationError, UserError
from ..decorators import require_auth, require_admin


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/users")
@require_auth
@require_admin
def list_users_route():
    users = auth_service.list_users(g.current_user)
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200


@admin_bp.post("/users")
@require_auth
@require_admin
def create_user_route():
    try:
        data = request.get_json(silent=True) or {}
        if not data.get("username") or not data.get("password"):
            return jsonify({"error": "username and password required"}), 400

        user = auth_service.create_user(
            username=data["username"],
            password=data["password"],
            email=data.get("email"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            is_admin=bool(data.get("is_admin", False)),
        )
        return jsonify({"user": user.to_dict()}), 201

    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UserError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/users/<int:user_id>")
@require_auth
@require_admin
def get_user_route(user_id: int):
    user = auth_service.get_user(g.current_user, user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"user": user.to_dict()}), 200


@admin_bp.patch("/users/<int:user_id>")
@require_auth
@require_admin
def update_user_route(user_id: int):
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.update_user(g.current_user, user_id, data)
        return jsonify({"user": user.to_dict()}), 200

    except AuthorizationError as e:
        return jsonify({"error": str(e)}), 403
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UserError as e:
        status = 404 if str(e) == "User not found" else 400
        return jsonify({"error": str(e)}), status
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/users/<int:user_id>")
@require_auth
@require_admin
def delete_user_route(user_id: int):
    try:
        deleted = auth_service.delete_user(g.current_user, user_id)
        if not deleted:
            return jsonify({"error": "User not found"}), 404
        return jsonify({"message": "User deleted"}), 200

    except AuthorizationError as e:
        return jsonify({"error": str(e)}), 403
    except UserError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500
