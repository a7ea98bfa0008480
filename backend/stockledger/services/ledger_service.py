# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import false

from ..extensions import db
from ..models import Product, StockMovement
from ..validation import is_storable_id
from .errors import InvalidOperationError, NotFoundError
from .pagination import paginate
"""
Stock Ledger Invariants (authoritative)

- Append-only: one StockMovement per accepted quantity change, never updated.
- A movement is only appended for a product whose quantity has already been
  set to new_quantity in the same session, and is flushed (not committed)
  here: the caller commits product + movement together.
- previous_quantity/new_quantity equal the product quantity immediately
  before/after the change.
- Ledger order is created_at, then id (ids are monotonic: sqlite_autoincrement).
"""


def append_movement(
    *,
    product: Product,
    movement_type: str,
    quantity: int,
    previous_quantity: int,
    new_quantity: int,
    reason: str,
    notes: str | None = None,
    performed_by_id: int | None = None,
) -> StockMovement:
    """
    Append one movement for a product mutation already applied in this session.

    - No domain logic here (quantities are computed by stock_service).
    - No deletes/updates of existing movements.
    """
    if product.quantity != new_quantity:
        raise InvalidOperationError(
            f"movement new_quantity {new_quantity} does not match product quantity {product.quantity}"
        )

    movement = StockMovement(
        product_id=product.id,
        type=movement_type,
        quantity=abs(quantity),
        previous_quantity=previous_quantity,
        new_quantity=new_quantity,
        reason=reason,
        notes=notes,
        performed_by_id=performed_by_id,
    )
    db.session.add(movement)
    db.session.flush()  # product UPDATE (version-checked) + movement INSERT, uncommitted
    return movement


def list_movements(
    *,
    page: int | None = None,
    limit: int | None = None,
    product_id: int | None = None,
) -> dict:
    """Newest-first movement listing, optionally for one product."""
    query = db.session.query(StockMovement)
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id if is_storable_id(product_id) else false())
    query = query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())

    result = paginate(query, page, limit)
    return {
        "movements": [m.to_dict() for m in result.items],
        "total_pages": result.total_pages,
        "current_page": result.page,
        "total": result.total,
    }


def get_product_ledger(product_id: int) -> list[StockMovement]:
    """All movements of one product, oldest first."""
    if not is_storable_id(product_id) or db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found")

    return (
        db.session.query(StockMovement)
        .filter(StockMovement.product_id == product_id)
        .order_by(StockMovement.created_at.asc(), StockMovement.id.asc())
        .all()
    )


def recent_movements(limit: int = 10) -> list[StockMovement]:
    return (
        db.session.query(StockMovement)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )
