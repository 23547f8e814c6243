from __future__ import annotations

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog product.

    Products are never physically deleted: is_active=False hides them from
    the catalog while keeping historical sale lines and inventory items valid.
    Barcode is optional but unique when present.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    category = db.Column(db.String(64), nullable=True, index=True)
    barcode = db.Column(db.String(64), nullable=True, unique=True)
    unit = db.Column(db.String(32), nullable=False, default="piece")

    # Read by assistive frontends; no behaviour attached
    alt_text = db.Column(db.String(255), nullable=True)
    large_text_description = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} barcode={self.barcode!r}>"

    @property
    def full_description(self) -> str:
        parts = [self.name]
        if self.description:
            parts.append(self.description)
        parts.append(f"Price: {money_str(self.price)}")
        if self.category:
            parts.append(f"Category: {self.category}")
        return ". ".join(parts)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": money_str(self.price),
            "category": self.category,
            "barcode": self.barcode,
            "unit": self.unit,
            "alt_text": self.alt_text,
            "large_text_description": self.large_text_description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
