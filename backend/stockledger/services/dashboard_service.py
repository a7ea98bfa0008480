# Overview: Read-only aggregations for the dashboard; never mutates the store.

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Category, Product, StockMovement
from ..time_utils import utcnow
from .ledger_service import recent_movements


def _low_stock_query():
    return db.session.query(Product).filter(
        Product.is_active.is_(True),
        Product.quantity <= Product.low_stock_threshold,
    )


def list_low_stock(limit: int = 10) -> list[Product]:
    """Active products at or below threshold, emptiest first."""
    return (
        _low_stock_query()
        .order_by(Product.quantity.asc(), Product.id.asc())
        .limit(limit)
        .all()
    )


def dashboard_stats(now: datetime | None = None) -> dict:
    """
    Headline counts for the dashboard.

    recent_movements counts movements created in the trailing
    RECENT_MOVEMENT_DAYS window ending at now (UTC, call time by default).
    """
    now = now or utcnow()
    window_days = current_app.config.get("RECENT_MOVEMENT_DAYS", 7)
    since = now - timedelta(days=window_days)

    total_products = db.session.query(Product).filter(Product.is_active.is_(True)).count()
    total_categories = db.session.query(Category).filter(Category.is_active.is_(True)).count()
    low_stock_products = _low_stock_query().count()

    total_value = (
        db.session.query(func.coalesce(func.sum(Product.quantity * Product.unit_price), 0))
        .filter(Product.is_active.is_(True))
        .scalar()
    )
    total_value = Decimal(str(total_value or 0)).quantize(Decimal("0.01"))

    recent = (
        db.session.query(StockMovement)
        .filter(StockMovement.created_at >= since)
        .count()
    )

    return {
        "total_products": total_products,
        "total_categories": total_categories,
        "low_stock_products": low_stock_products,
        "total_value": float(total_value),
        "recent_movements": recent,
    }


def recent_activities(limit: int = 10) -> list[StockMovement]:
    return recent_movements(limit)
