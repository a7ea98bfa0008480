from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


class StockMovement(db.Model):
    """
    One entry of a product's stock ledger.

    Append-only: rows are written by ledger_service.append_movement and never
    edited afterwards. The two exceptions are both cascades:
    - deleting a product deletes its movements
    - deleting a user nulls performed_by_id and appends a note naming the
      original author
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        db.Index("ix_stock_movements_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # stock_in | stock_out | adjustment (see stock_service.MovementType)
    type = db.Column(db.String(16), nullable=False, index=True)

    # Absolute magnitude as supplied by the caller
    quantity = db.Column(db.Integer, nullable=False)
    previous_quantity = db.Column(db.Integer, nullable=False)
    new_quantity = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    performed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    product = db.relationship("Product")
    performed_by = db.relationship("User")

    def __repr__(self) -> str:
        return (
            f"<StockMovement id={self.id} product_id={self.product_id} type={self.type} "
            f"{self.previous_quantity}->{self.new_quantity}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": (
                {"id": self.product.id, "name": self.product.name, "sku": self.product.sku}
                if self.product is not None
                else None
            ),
            "type": self.type,
            "quantity": self.quantity,
            "previous_quantity": self.previous_quantity,
            "new_quantity": self.new_quantity,
            "reason": self.reason,
            "notes": self.notes,
            "performed_by_id": self.performed_by_id,
            "performed_by": (
                {"id": self.performed_by.id, "name": self.performed_by.name}
                if self.performed_by is not None
                else None
            ),
            "created_at": to_utc_z(self.created_at),
        }
