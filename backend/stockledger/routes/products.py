# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockledger/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations are open to admin and staff
- Create/update/delete and bulk operations require admin
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..models import Product, ROLE_ADMIN, ROLE_STAFF
from ..services import cascade_service, ledger_service, products_service, stock_service
from ..services.errors import NotFoundError, PersistenceConflictError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_role

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku", "name", "description", "category_id", "quantity", "low_stock_threshold",
        "unit_price", "location", "barcode", "is_active",
    },
    required_on_create={"sku", "name", "category_id", "unit_price"},
)

# quantity is deliberately absent: stock moves only through /api/stock/adjust
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_CREATE_POLICY.writable_fields - {"quantity"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_STAFF)
def list_products_route():
    """
    List active products.

    Query params:
    - search: str (optional) - matches name, sku or description
    - category_id: int (optional)
    - low_stock: "true" to only list products at or below threshold
    - page: int (1-indexed, default 1)
    - limit: int (default DEFAULT_PAGE_SIZE, max MAX_PAGE_SIZE)
    """
    return jsonify(
        products_service.list_products(
            search=request.args.get("search"),
            category_id=request.args.get("category_id", type=int),
            low_stock=request.args.get("low_stock", "false").lower() == "true",
            page=request.args.get("page", type=int),
            limit=request.args.get("limit", type=int),
        )
    )


@products_bp.get("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_STAFF)
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(product.to_dict())


@products_bp.get("/<int:product_id>/ledger")
@require_auth
@require_role(ROLE_ADMIN, ROLE_STAFF)
def product_ledger_route(product_id: int):
    """Full movement history of one product, oldest first."""
    try:
        movements = ledger_service.get_product_ledger(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"product_id": product_id, "movements": [m.to_dict() for m in movements]})


@products_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        created = products_service.create_product(patch=patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify(created.to_dict()), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify(updated.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_product_route(product_id: int):
    """Delete a product and its whole movement ledger."""
    try:
        result = cascade_service.delete_product(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PersistenceConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({
        "message": "Product and associated stock movements deleted successfully",
        **result,
    }), 200


@products_bp.post("/bulk-adjust")
@require_auth
@require_role(ROLE_ADMIN)
def bulk_adjust_route():
    """
    Body: {"adjustments": [{product_id, quantity, type, reason, notes?}, ...]}

    Each line item is applied independently; over-draws are rejected
    per item with "Insufficient stock". Always 200 with per-item results.
    """
    payload = request.get_json(silent=True) or {}
    adjustments = payload.get("adjustments")

    if not isinstance(adjustments, list) or not adjustments:
        return jsonify({"error": "Adjustments array is required"}), 400

    try:
        results = stock_service.bulk_adjust_stock(adjustments, performed_by_id=g.current_user.id)
    except Exception:
        # Per-item failures are reported in results; this only fires when the
        # database itself is unavailable. Items before the failure stay committed.
        current_app.logger.exception(
            "Bulk adjustment aborted by an infrastructure failure; earlier items may already be committed"
        )
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Bulk adjustment completed", "results": results}), 200


@products_bp.post("/bulk-delete")
@require_auth
@require_role(ROLE_ADMIN)
def bulk_delete_route():
    payload = request.get_json(silent=True) or {}
    product_ids = payload.get("product_ids")

    if (
        not isinstance(product_ids, list)
        or not product_ids
        or not all(isinstance(pid, int) and not isinstance(pid, bool) for pid in product_ids)
    ):
        return jsonify({"error": "Product IDs array is required"}), 400

    try:
        result = cascade_service.bulk_delete_products(product_ids)
    except PersistenceConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({"message": "Bulk delete completed", **result}), 200
