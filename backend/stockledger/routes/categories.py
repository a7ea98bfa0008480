# Overview: Flask API routes for category operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..models import Category, ROLE_ADMIN, ROLE_STAFF
from ..services import cascade_service, categories_service
from ..services.errors import NotFoundError, PersistenceConflictError
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, ConflictError
from ..decorators import require_auth, require_role

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "is_active"},
    required_on_create={"name"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_STAFF)
def list_categories_route():
    return jsonify([c.to_dict() for c in categories_service.list_categories()])


@categories_bp.get("/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_STAFF)
def get_category_route(category_id: int):
    try:
        category = categories_service.get_category(category_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(category.to_dict())


@categories_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_category_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        category = categories_service.create_category(patch=patch)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify(category.to_dict()), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        category = categories_service.update_category(category_id=category_id, patch=patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify(category.to_dict()), 200


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_category_route(category_id: int):
    """Delete a category with its products and their movements."""
    try:
        result = cascade_service.delete_category(category_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PersistenceConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({
        "message": "Category and associated products deleted successfully",
        **result,
    }), 200
