from __future__ import annotations

from datetime import date, timedelta

from ..extensions import db
from ..money import money_str
from ..time_utils import to_iso_date, to_utc_z, today


class StockStatus:
    CRITICAL = "CRITICAL"
    LOW = "LOW"
    ADEQUATE = "ADEQUATE"


class MovementType:
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"


class InventoryItem(db.Model):
    """
    Stock record for one product.

    current_stock is the authoritative on-hand quantity. It is only changed
    by inventory_service (add/remove/adjust), each change appending a
    StockMovement. maximum_stock is a reorder target, not a hard cap.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.Index("ix_inventory_items_active_stock", "is_active", "current_stock"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    minimum_stock = db.Column(db.Integer, nullable=False, default=0)
    maximum_stock = db.Column(db.Integer, nullable=False, default=1000)

    cost_price = db.Column(db.Numeric(10, 2), nullable=True)
    expiration_date = db.Column(db.Date, nullable=True, index=True)
    supplier = db.Column(db.String(255), nullable=True)
    location = db.Column(db.String(128), nullable=True)
    last_restocked = db.Column(db.Date, nullable=True)

    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)
    critical_stock_threshold = db.Column(db.Integer, nullable=False, default=5)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("inventory_items", lazy=True))

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} product_id={self.product_id} stock={self.current_stock}>"

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.low_stock_threshold

    @property
    def is_critical_stock(self) -> bool:
        return self.current_stock <= self.critical_stock_threshold

    @property
    def stock_status(self) -> str:
        if self.is_critical_stock:
            return StockStatus.CRITICAL
        if self.is_low_stock:
            return StockStatus.LOW
        return StockStatus.ADEQUATE

    def is_expired(self, on: date | None = None) -> bool:
        on = on or today()
        return self.expiration_date is not None and self.expiration_date < on

    def is_expiring_soon(self, days: int = 7, on: date | None = None) -> bool:
        on = on or today()
        return (
            self.expiration_date is not None
            and on < self.expiration_date < on + timedelta(days=days)
        )

    @property
    def reorder_quantity(self) -> int:
        # Negative when overstocked; callers clamp if they need to
        return self.maximum_stock - self.current_stock

    def stock_summary(self, on: date | None = None) -> str:
        name = self.product.name if self.product else f"Item {self.id}"
        status = {
            StockStatus.CRITICAL: "Critical stock level",
            StockStatus.LOW: "Low stock level",
            StockStatus.ADEQUATE: "Adequate stock level",
        }[self.stock_status]
        text = (
            f"{name}, Current stock: {self.current_stock}, "
            f"Minimum required: {self.minimum_stock}, Status: {status}"
        )
        if self.expiration_date is not None:
            text += f", Expires: {self.expiration_date.isoformat()}"
            if self.is_expired(on):
                text += " (Expired)"
            elif self.is_expiring_soon(on=on):
                text += " (Expiring soon)"
        return text

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "current_stock": self.current_stock,
            "minimum_stock": self.minimum_stock,
            "maximum_stock": self.maximum_stock,
            "cost_price": money_str(self.cost_price),
            "expiration_date": to_iso_date(self.expiration_date),
            "supplier": self.supplier,
            "location": self.location,
            "last_restocked": to_iso_date(self.last_restocked),
            "low_stock_threshold": self.low_stock_threshold,
            "critical_stock_threshold": self.critical_stock_threshold,
            "stock_status": self.stock_status,
            "reorder_quantity": self.reorder_quantity,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only audit record of a stock change.

    quantity is signed: +n for IN, -n for OUT, the signed delta for ADJUSTMENT.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint(
            "movement_type IN ('IN', 'OUT', 'ADJUSTMENT')",
            name="ck_stock_movements_type",
        ),
        db.Index("ix_stock_movements_item_created", "inventory_item_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    movement_type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    inventory_item = db.relationship("InventoryItem", backref=db.backref("movements", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_item_id": self.inventory_item_id,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "reason": self.reason,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }
