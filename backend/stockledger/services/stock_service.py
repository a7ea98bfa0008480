# Overview: Service-layer operations for stock adjustments; encapsulates business logic and database work.

# backend/stockledger/services/stock_service.py

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models import Product, StockMovement
from ..validation import MAX_INTEGER, is_storable_id
from .concurrency import lock_for_update, run_with_retry
from .errors import (
    InsufficientStockError,
    InvalidArgumentError,
    NotFoundError,
    PersistenceConflictError,
)
from .ledger_service import append_movement
"""
Stock Adjustment Invariants (authoritative)

Quantity model:
- Product.quantity is the stored source of truth; movements are its audit trail.
- quantity is never negative after an accepted mutation.
- quantity never exceeds MAX_INTEGER (the INTEGER column range); a change that
  would exceed it is refused as an invalid argument.

Movement types (new quantity from previous quantity p and caller quantity q):
- stock_in:   p + |q|
- stock_out:  p - |q|
- adjustment: q (absolute target)
The movement always stores |q| as its quantity.

Over-draw policy (result < 0):
- FLOOR (single adjust_stock): clamp to 0 and record the movement.
- REJECT (bulk_adjust_stock): refuse the line item with "Insufficient stock",
  leaving the product untouched.
Both call paths share compute_new_quantity; only the policy differs.

Atomicity:
- The product UPDATE and the movement INSERT are flushed and committed in one
  transaction; any failure rolls both back.
- The product row is read FOR UPDATE and Product.version_id makes the UPDATE
  conditional on the version read, so concurrent adjustments of one product
  serialize (the loser retries with fresh state) instead of losing an update.
"""


_INT_RE = re.compile(r"[+-]?\d+")


class MovementType(str, enum.Enum):
    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"
    ADJUSTMENT = "adjustment"


class OverdrawPolicy(enum.Enum):
    FLOOR = "floor"
    REJECT = "reject"


@dataclass
class AdjustmentResult:
    movement: StockMovement
    product: Product

    def to_dict(self) -> dict:
        return {"movement": self.movement.to_dict(), "product": self.product.to_dict()}


def parse_movement_type(value) -> MovementType:
    try:
        return MovementType(value)
    except ValueError:
        raise InvalidArgumentError("Invalid adjustment type")


def parse_quantity(value) -> int:
    """Accept ints and plain integer strings within the INTEGER column range."""
    if isinstance(value, bool):
        raise InvalidArgumentError("Invalid quantity")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        parsed = int(value.strip())
    else:
        raise InvalidArgumentError("Invalid quantity")

    if abs(parsed) > MAX_INTEGER:
        raise InvalidArgumentError("Invalid quantity")
    return parsed


def _clean_reason(reason) -> str:
    if reason is None or not str(reason).strip():
        raise InvalidArgumentError("Reason is required")
    reason = str(reason).strip()
    if len(reason) > 255:
        raise InvalidArgumentError("Reason exceeds max length 255")
    return reason


def compute_new_quantity(
    movement_type: MovementType,
    previous_quantity: int,
    quantity: int,
    policy: OverdrawPolicy,
) -> int:
    magnitude = abs(quantity)

    if movement_type is MovementType.STOCK_IN:
        result = previous_quantity + magnitude
    elif movement_type is MovementType.STOCK_OUT:
        result = previous_quantity - magnitude
    elif movement_type is MovementType.ADJUSTMENT:
        result = quantity
    else:
        raise InvalidArgumentError("Invalid adjustment type")

    if result > MAX_INTEGER:
        raise InvalidArgumentError("Resulting quantity exceeds maximum stock level")
    if result < 0:
        if policy is OverdrawPolicy.REJECT:
            raise InsufficientStockError("Insufficient stock")
        return 0
    return result


def _load_product_for_update(product_id) -> Product:
    if isinstance(product_id, bool):
        raise NotFoundError("Product not found")
    try:
        product_id = int(product_id)
    except (TypeError, ValueError):
        raise NotFoundError("Product not found")
    if not is_storable_id(product_id):
        raise NotFoundError("Product not found")

    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _apply_adjustment_inner(
    *,
    product: Product,
    movement_type: MovementType,
    quantity: int,
    reason: str,
    notes: str | None,
    performed_by_id: int | None,
    policy: OverdrawPolicy,
) -> StockMovement:
    """Core mutation + movement logic without locking, retry, or commit.

    Shared by adjust_stock() and bulk_adjust_stock().
    """
    previous_quantity = product.quantity
    new_quantity = compute_new_quantity(movement_type, previous_quantity, quantity, policy)

    product.quantity = new_quantity

    return append_movement(
        product=product,
        movement_type=movement_type.value,
        quantity=quantity,
        previous_quantity=previous_quantity,
        new_quantity=new_quantity,
        reason=reason,
        notes=notes,
        performed_by_id=performed_by_id,
    )


def _adjust(
    *,
    product_id,
    movement_type,
    quantity,
    reason,
    notes,
    performed_by_id: int | None,
    policy: OverdrawPolicy,
) -> AdjustmentResult:
    def _op():
        # Existence is checked before the type, as reported to callers
        product = _load_product_for_update(product_id)
        mtype = parse_movement_type(movement_type)
        qty = parse_quantity(quantity)
        clean_reason = _clean_reason(reason)

        movement = _apply_adjustment_inner(
            product=product,
            movement_type=mtype,
            quantity=qty,
            reason=clean_reason,
            notes=notes,
            performed_by_id=performed_by_id,
            policy=policy,
        )
        db.session.commit()
        return AdjustmentResult(movement=movement, product=product)

    return run_with_retry(_op)


def adjust_stock(
    *,
    product_id: int,
    movement_type: str,
    quantity: int,
    reason: str,
    notes: str | None = None,
    performed_by_id: int | None = None,
) -> AdjustmentResult:
    """
    Apply one stock change and record its movement.

    Over-draw on stock_out (or a negative adjustment target) floors at 0.

    Raises:
        NotFoundError: product does not exist
        InvalidArgumentError: unknown type, malformed quantity, missing reason
            or a result above the storable maximum
        PersistenceConflictError: write failed or conflict retries exhausted
    """
    return _adjust(
        product_id=product_id,
        movement_type=movement_type,
        quantity=quantity,
        reason=reason,
        notes=notes,
        performed_by_id=performed_by_id,
        policy=OverdrawPolicy.FLOOR,
    )


def bulk_adjust_stock(items: list, *, performed_by_id: int | None = None) -> list[dict]:
    """
    Apply a list of {product_id, quantity, type, reason[, notes]} line items.

    Items are processed sequentially and committed one by one; a failing item
    is reported and the batch continues, whatever the failure. Negative
    results are rejected.
    """
    results = []

    for item in items:
        if not isinstance(item, dict):
            results.append({"product_id": None, "success": False, "message": "Product not found"})
            continue

        product_id = item.get("product_id")
        try:
            outcome = _adjust(
                product_id=product_id,
                movement_type=item.get("type"),
                quantity=item.get("quantity"),
                reason=item.get("reason"),
                notes=item.get("notes"),
                performed_by_id=performed_by_id,
                policy=OverdrawPolicy.REJECT,
            )
        except PersistenceConflictError:
            results.append({"product_id": product_id, "success": False, "message": "Failed to apply adjustment"})
            continue
        except (NotFoundError, InvalidArgumentError, InsufficientStockError) as e:
            results.append({"product_id": product_id, "success": False, "message": str(e)})
            continue
        except Exception:
            # run_with_retry has already rolled this item back
            current_app.logger.exception("Bulk adjustment item for product %r failed", product_id)
            results.append({"product_id": product_id, "success": False, "message": "Failed to apply adjustment"})
            continue

        results.append({
            "product_id": product_id,
            "success": True,
            "new_quantity": outcome.product.quantity,
        })

    applied = sum(1 for r in results if r["success"])
    current_app.logger.info("Bulk adjustment: %d/%d items applied", applied, len(results))
    return results
