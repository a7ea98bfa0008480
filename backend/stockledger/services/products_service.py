# backend/stockledger/services/products_service.py
"""
Products Service

Catalog CRUD and the filtered product listing.

QUANTITY: update_product never writes Product.quantity. Stock only moves
through stock_service so every change has a matching StockMovement.
An initial quantity may be supplied once, at creation.
"""
from __future__ import annotations

from sqlalchemy import false, or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, Product
from ..validation import ConflictError, is_storable_id
from .errors import NotFoundError
from .pagination import paginate

PRODUCT_MUTABLE_FIELDS = {
    "sku", "name", "description", "category_id", "low_stock_threshold",
    "unit_price", "location", "barcode", "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _require_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id) if is_storable_id(category_id) else None
    if category is None:
        raise NotFoundError("Category not found")
    return category


def _ensure_sku_available(sku: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"SKU {sku} already exists")


def list_products(
    *,
    search: str | None = None,
    category_id: int | None = None,
    low_stock: bool = False,
    page: int | None = None,
    limit: int | None = None,
) -> dict:
    """
    Active products, newest first, with optional filters.

    Args:
        search: case-insensitive substring over name, sku and description
        category_id: only products of this category
        low_stock: only products at or below their threshold
        page: 1-based page number
        limit: page size (capped by MAX_PAGE_SIZE)

    Returns:
        Dict with 'products', 'total_pages', 'current_page' and 'total'.
    """
    query = db.session.query(Product).filter(Product.is_active.is_(True))

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Product.name.ilike(pattern),
                Product.sku.ilike(pattern),
                Product.description.ilike(pattern),
            )
        )

    if category_id is not None:
        # an id no row can hold matches nothing
        query = query.filter(Product.category_id == category_id if is_storable_id(category_id) else false())

    if low_stock:
        query = query.filter(Product.quantity <= Product.low_stock_threshold)

    query = query.order_by(Product.created_at.desc(), Product.id.desc())

    result = paginate(query, page, limit)
    return {
        "products": [p.to_dict() for p in result.items],
        "total_pages": result.total_pages,
        "current_page": result.page,
        "total": result.total,
    }


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id) if is_storable_id(product_id) else None
    if product is None:
        raise NotFoundError("Product not found")
    return product


def create_product(*, patch: dict) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        NotFoundError: category_id does not exist
        ConflictError: SKU already exists
    """
    _require_category(patch["category_id"])
    _ensure_sku_available(patch["sku"])

    product = Product(quantity=patch.get("quantity") or 0)
    apply_product_patch(product, patch)
    db.session.add(product)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"SKU {patch['sku']} already exists")

    return product


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Update product fields (never quantity).

    Raises:
        NotFoundError: product or new category does not exist
        ConflictError: new SKU already used by another product
    """
    product = get_product(product_id)

    if patch.get("category_id") is not None:
        _require_category(patch["category_id"])
    if patch.get("sku") is not None:
        _ensure_sku_available(patch["sku"], exclude_id=product_id)

    apply_product_patch(product, patch)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("SKU already exists")

    return product
