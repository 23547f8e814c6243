from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..money import ZERO, money_str, quantize
from ..time_utils import to_utc_z


class SaleStatus:
    DRAFT = "DRAFT"
    COMPLETED = "COMPLETED"
    VOIDED = "VOIDED"


PAYMENT_METHODS = ("CASH", "CARD", "E_WALLET")


class Sale(db.Model):
    """
    Sale document.

    Lifecycle: DRAFT (cart being built) -> COMPLETED (finalized, transaction
    number assigned, stock deducted) -> VOIDED. Only DRAFT sales accept item,
    tax or discount changes.

    Totals are derived and recomputed by recalculate_totals() after every
    mutation:
        subtotal = sum(item.total_price)
        tax      = subtotal * tax_rate   (half-up to cents)
        total    = subtotal + tax - discount
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_sale_date", "status", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Assigned at finalization (e.g., "TXN-000123")
    transaction_number = db.Column(db.String(32), nullable=True, unique=True)

    status = db.Column(db.String(16), nullable=False, default=SaleStatus.DRAFT, index=True)

    subtotal = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)
    tax_rate = db.Column(db.Numeric(5, 4), nullable=False, default=Decimal("0"))
    tax = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)
    total = db.Column(db.Numeric(10, 2), nullable=False, default=ZERO)

    payment_method = db.Column(db.String(32), nullable=True)
    customer_info = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    sale_date = db.Column(db.DateTime(timezone=True), nullable=True)

    accessibility_assistance_used = db.Column(db.Boolean, nullable=False, default=False)
    accessibility_notes = db.Column(db.Text, nullable=True)

    # Void audit trail
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    voided_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.id",
        cascade="all, delete-orphan",
    )
    cashier = db.relationship("User", foreign_keys=[cashier_id])
    voided_by = db.relationship("User", foreign_keys=[voided_by_user_id])

    @property
    def is_voided(self) -> bool:
        return self.status == SaleStatus.VOIDED

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def recalculate_totals(self) -> None:
        subtotal = sum((Decimal(item.total_price) for item in self.items), ZERO)
        self.subtotal = quantize(subtotal)
        self.tax = quantize(self.subtotal * Decimal(self.tax_rate or 0))
        self.total = quantize(self.subtotal + self.tax - Decimal(self.discount or 0))

    def find_item(self, product_id: int):
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "transaction_number": self.transaction_number,
            "status": self.status,
            "is_voided": self.is_voided,
            "subtotal": money_str(self.subtotal),
            "tax_rate": str(self.tax_rate) if self.tax_rate is not None else None,
            "tax": money_str(self.tax),
            "discount": money_str(self.discount),
            "total": money_str(self.total),
            "item_count": self.item_count,
            "payment_method": self.payment_method,
            "customer_info": self.customer_info,
            "notes": self.notes,
            "cashier_id": self.cashier_id,
            "sale_date": to_utc_z(self.sale_date),
            "accessibility_assistance_used": self.accessibility_assistance_used,
            "accessibility_notes": self.accessibility_notes,
            "voided_at": to_utc_z(self.voided_at),
            "voided_by_user_id": self.voided_by_user_id,
            "void_reason": self.void_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Line item on a sale.

    unit_price is a snapshot taken when the product is first added, so later
    catalog price changes never alter historical sales.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "product_id", name="uq_sale_items_sale_product"),
        db.CheckConstraint("quantity >= 1", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    notes = db.Column(db.String(255), nullable=True)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product")

    def recalculate(self) -> None:
        self.total_price = quantize(Decimal(self.unit_price) * self.quantity)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "total_price": money_str(self.total_price),
            "notes": self.notes,
        }
