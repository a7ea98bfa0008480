"""Category CRUD. Deletion lives in cascade_service."""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category
from ..validation import ConflictError, is_storable_id
from .errors import NotFoundError

CATEGORY_MUTABLE_FIELDS = {"name", "description", "is_active"}


def _ensure_name_available(name: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Category.id).filter(Category.name == name)
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Category {name} already exists")


def list_categories() -> list[Category]:
    return (
        db.session.query(Category)
        .filter(Category.is_active.is_(True))
        .order_by(Category.name.asc())
        .all()
    )


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id) if is_storable_id(category_id) else None
    if category is None:
        raise NotFoundError("Category not found")
    return category


def create_category(*, patch: dict) -> Category:
    _ensure_name_available(patch["name"])

    category = Category()
    for k, v in patch.items():
        if k in CATEGORY_MUTABLE_FIELDS:
            setattr(category, k, v)
    db.session.add(category)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Category {patch['name']} already exists")
    return category


def update_category(*, category_id: int, patch: dict) -> Category:
    category = get_category(category_id)

    if patch.get("name") is not None:
        _ensure_name_available(patch["name"], exclude_id=category_id)

    for k, v in patch.items():
        if k in CATEGORY_MUTABLE_FIELDS:
            setattr(category, k, v)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Category name already exists")
    return category
