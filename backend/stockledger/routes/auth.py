# Overview: Flask API routes for auth and user management; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..models import User, ROLE_ADMIN, ROLE_STAFF
from ..services import auth_service, cascade_service, session_service
from ..services.auth_service import PasswordValidationError
from ..services.errors import InvalidOperationError, NotFoundError, PersistenceConflictError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_user,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_role

USER_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "role", "is_active"},
)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _login_payload(user: User, token: str) -> dict:
    return {
        "user": user.to_dict(),
        "token": token,
    }


@auth_bp.post("/register")
def register_route():
    """
    Register a new user (role defaults to staff) and log them in.

    Body: {name, email, password, role?}
    """
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""
    role = data.get("role") or ROLE_STAFF

    if not name or not email:
        return jsonify({"error": "name and email are required"}), 400

    patch = {"email": email, "role": role}
    try:
        enforce_rules_user(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        user = auth_service.create_user(name=name, email=patch["email"], password=password, role=patch["role"])
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 400

    _, token = session_service.create_session(user.id)
    return jsonify(_login_payload(user, token)), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and receive a bearer token.

    Body: {email, password}
    """
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.authenticate(data.get("email"), data.get("password"))
        if user is None:
            return jsonify({"error": "Invalid credentials"}), 401

        _, token = session_service.create_session(user.id)
        return jsonify({**_login_payload(user, token), "message": "Login successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the bearer token in the Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return jsonify({"error": "Authorization header required"}), 401

    token = auth_header.split(" ", 1)[1]
    if not session_service.revoke_session(token, reason="User logout"):
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify(g.current_user.to_dict())


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@auth_bp.get("/users")
@require_auth
@require_role(ROLE_ADMIN)
def list_users_route():
    return jsonify([u.to_dict() for u in auth_service.list_users()])


@auth_bp.put("/users/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_user_route(user_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=User, payload=payload, policy=USER_UPDATE_POLICY, partial=True)
        enforce_rules_user(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        user = auth_service.update_user(user_id=user_id, patch=patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify(user.to_dict()), 200


@auth_bp.delete("/users/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_user_route(user_id: int):
    """
    Delete a user. Their movements are kept with performed_by cleared.
    Deleting your own account is refused.
    """
    try:
        result = cascade_service.delete_user(user_id, acting_user_id=g.current_user.id)
    except InvalidOperationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PersistenceConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({"message": "User deleted successfully", **result}), 200
