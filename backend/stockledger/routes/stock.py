# Overview: Flask API routes for stock operations; parses input and returns JSON responses.

# backend/stockledger/routes/stock.py
"""
Stock adjustment and movement ledger routes.

SECURITY: All routes require authentication.
- admin and staff may adjust stock and read the movement ledger
- The acting user is passed to the ledger engine as performed_by_id
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..models import ROLE_ADMIN, ROLE_STAFF
from ..services import ledger_service, stock_service
from ..services.errors import InvalidArgumentError, NotFoundError, PersistenceConflictError
from ..decorators import require_auth, require_role

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.post("/adjust")
@require_auth
@require_role(ROLE_ADMIN, ROLE_STAFF)
def adjust_stock_route():
    """
    Adjust one product's stock.

    Body: {product_id, type, quantity, reason, notes?}
    - stock_in / stock_out: quantity is the count moved
    - adjustment: quantity is the new absolute level
    Over-drawing stock_out floors the product at 0.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        return jsonify({"error": "notes must be a string"}), 400

    try:
        result = stock_service.adjust_stock(
            product_id=payload.get("product_id"),
            movement_type=payload.get("type"),
            quantity=payload.get("quantity"),
            reason=payload.get("reason"),
            notes=notes,
            performed_by_id=g.current_user.id,
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except InvalidArgumentError as e:
        return jsonify({"error": str(e)}), 400
    except PersistenceConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(result.to_dict()), 201


@stock_bp.get("/movements")
@require_auth
@require_role(ROLE_ADMIN, ROLE_STAFF)
def list_movements_route():
    """
    List movements, newest first.

    Query params:
    - page: int (1-indexed, default 1)
    - limit: int (default DEFAULT_PAGE_SIZE)
    - product_id: int (optional)
    """
    return jsonify(
        ledger_service.list_movements(
            page=request.args.get("page", type=int),
            limit=request.args.get("limit", type=int),
            product_id=request.args.get("product_id", type=int),
        )
    )
