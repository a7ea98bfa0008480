# Overview: Service-layer operations for cascading deletes; encapsulates business logic and database work.

"""
Cascade rules (authoritative)

- Product -> StockMovement: deleting a product deletes its whole ledger.
- Category -> Product -> StockMovement: deleting a category deletes its
  products AND their movements (second-order cascade).
- User -> StockMovement: deleting a user keeps the movements, nulls
  performed_by_id and appends "User deleted - original user: <id>" to notes.
  A user may never delete their own account.

Every rule runs as one transaction: existence is checked first, dependents
are removed, then the parent. Any persistence failure rolls the whole unit
back (see concurrency.run_with_retry).
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import case, literal

from ..extensions import db
from ..models import Category, Product, SessionToken, StockMovement, User
from ..validation import is_storable_id
from .concurrency import run_with_retry
from .errors import InvalidOperationError, NotFoundError


def _delete_movements_for(product_ids) -> int:
    if not product_ids:
        return 0
    return (
        db.session.query(StockMovement)
        .filter(StockMovement.product_id.in_(product_ids))
        .delete(synchronize_session=False)
    )


def _delete_products(product_ids) -> int:
    if not product_ids:
        return 0
    return (
        db.session.query(Product)
        .filter(Product.id.in_(product_ids))
        .delete(synchronize_session=False)
    )


def delete_product(product_id: int) -> dict:
    """Delete a product and all of its movements."""
    def _op():
        if not is_storable_id(product_id) or db.session.get(Product, product_id) is None:
            raise NotFoundError("Product not found")

        deleted_movements = _delete_movements_for([product_id])
        _delete_products([product_id])
        db.session.commit()
        return deleted_movements

    deleted_movements = run_with_retry(_op)
    current_app.logger.info(
        "Deleted product %s with %d movements", product_id, deleted_movements
    )
    return {"deleted_movements": deleted_movements}


def bulk_delete_products(product_ids: list[int]) -> dict:
    """
    Set-based delete: unknown ids are ignored, no per-item reporting.
    Ids outside the INTEGER column range cannot match a row and are dropped.
    """
    ids = sorted({pid for pid in product_ids if is_storable_id(pid)})

    def _op():
        deleted_movements = _delete_movements_for(ids)
        deleted_products = _delete_products(ids)
        db.session.commit()
        return deleted_products, deleted_movements

    deleted_products, deleted_movements = run_with_retry(_op)
    current_app.logger.info(
        "Bulk deleted %d products with %d movements", deleted_products, deleted_movements
    )
    return {"deleted_products": deleted_products, "deleted_movements": deleted_movements}


def delete_category(category_id: int) -> dict:
    """Delete a category, its products, and their movements."""
    def _op():
        if not is_storable_id(category_id) or db.session.get(Category, category_id) is None:
            raise NotFoundError("Category not found")

        product_ids = [
            pid for (pid,) in db.session.query(Product.id).filter(Product.category_id == category_id)
        ]
        deleted_movements = _delete_movements_for(product_ids)
        deleted_products = _delete_products(product_ids)
        db.session.query(Category).filter(Category.id == category_id).delete(synchronize_session=False)
        db.session.commit()
        return deleted_products, deleted_movements

    deleted_products, deleted_movements = run_with_retry(_op)
    current_app.logger.info(
        "Deleted category %s with %d products and %d movements",
        category_id, deleted_products, deleted_movements,
    )
    return {"deleted_products": deleted_products, "deleted_movements": deleted_movements}


def delete_user(user_id: int, *, acting_user_id: int) -> dict:
    """
    Delete a user while preserving the movements they authored.

    Raises:
        InvalidOperationError: user_id is the acting user's own id
        NotFoundError: user does not exist
    """
    if user_id == acting_user_id:
        raise InvalidOperationError("Cannot delete your own account")

    note = f"User deleted - original user: {user_id}"

    def _op():
        if not is_storable_id(user_id) or db.session.get(User, user_id) is None:
            raise NotFoundError("User not found")

        updated_movements = (
            db.session.query(StockMovement)
            .filter(StockMovement.performed_by_id == user_id)
            .update(
                {
                    StockMovement.performed_by_id: None,
                    StockMovement.notes: case(
                        (StockMovement.notes.is_(None), literal(note)),
                        (StockMovement.notes == "", literal(note)),
                        else_=StockMovement.notes + literal(" | " + note),
                    ),
                },
                synchronize_session=False,
            )
        )
        db.session.query(SessionToken).filter(SessionToken.user_id == user_id).delete(
            synchronize_session=False
        )
        db.session.query(User).filter(User.id == user_id).delete(synchronize_session=False)
        db.session.commit()
        return updated_movements

    updated_movements = run_with_retry(_op)
    current_app.logger.info(
        "Deleted user %s; anonymised %d movements", user_id, updated_movements
    )
    return {"updated_movements": updated_movements}
