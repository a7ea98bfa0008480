from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


class Category(db.Model):
    """
    Product grouping.

    Deletion is hard and cascades to the category's products (and their
    movements) through cascade_service; is_active only hides a category
    from listings and dashboard counts.
    """
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False, unique=True)
    description = db.Column(db.String(200), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data with its current stock level.

    QUANTITY OWNERSHIP:
    Product.quantity is the source of truth for stock on hand. It is only
    changed by stock_service, which records a StockMovement in the same
    transaction. Product updates through products_service never touch it.

    CONCURRENCY:
    version_id is the optimistic-locking column. Every UPDATE is issued as
    "... WHERE id = :id AND version_id = :read_version", so two writers that
    read the same quantity cannot both commit (the loser gets StaleDataError
    and the ledger engine retries the whole read-compute-write unit).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_active", "category_id", "is_active"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Stored uppercase (see validation.enforce_rules_product)
    sku = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    location = db.Column(db.String(100), nullable=True)
    barcode = db.Column(db.String(64), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.low_stock_threshold

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} quantity={self.quantity}>"

    def to_dict(self, include_category: bool = True) -> dict:
        data = {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category_id": self.category_id,
            "quantity": self.quantity,
            "low_stock_threshold": self.low_stock_threshold,
            "unit_price": float(self.unit_price) if self.unit_price is not None else None,
            "location": self.location,
            "barcode": self.barcode,
            "is_active": self.is_active,
            "is_low_stock": self.is_low_stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_category:
            data["category"] = (
                {
                    "id": self.category.id,
                    "name": self.category.name,
                    "description": self.category.description,
                }
                if self.category is not None
                else None
            )
        return data
