# backend/cofitearia/services/catalog_service.py
"""
Product catalog service.

Products are soft-deleted only (is_active=False) so historical sales and
inventory items keep valid references. All queries hide inactive products
unless the caller explicitly asks for them.

Barcode is unique across all products, active or not: a deactivated
product still owns its barcode.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import Product
from ..validation import ModelValidationPolicy, enforce_rules_product, validate_payload
from .concurrency import run_with_retry

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "price",
        "category",
        "barcode",
        "unit",
        "alt_text",
        "large_text_description",
        "is_active",
    },
    required_on_create={"name", "price"},
)


def _clean_patch(patch: dict, *, partial: bool) -> dict:
    cleaned = validate_payload(model=Product, payload=patch, policy=PRODUCT_POLICY, partial=partial)
    enforce_rules_product(cleaned)
    return cleaned


def _ensure_barcode_free(barcode: str | None, *, exclude_id: int | None = None) -> None:
    if barcode is None:
        return
    q = db.session.query(Product.id).filter(Product.barcode == barcode)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Barcode {barcode} already exists")


def _flush_or_conflict() -> None:
    try:
        db.session.flush()
    except IntegrityError as exc:
        # Lost a race on the unique barcode index
        db.session.rollback()
        raise ConflictError("Barcode already exists") from exc


def create_product(patch: dict) -> Product:
    """Create a product from a raw patch dict (validated here)."""
    cleaned = _clean_patch(patch, partial=False)

    def _op():
        _ensure_barcode_free(cleaned.get("barcode"))
        p = Product(**cleaned)
        db.session.add(p)
        _flush_or_conflict()
        db.session.commit()
        current_app.logger.info("Product created: id=%s name=%s", p.id, p.name)
        return p

    return run_with_retry(_op)


def get_product(product_id: int, *, include_inactive: bool = False) -> Product:
    p = db.session.get(Product, product_id)
    if p is None or (not p.is_active and not include_inactive):
        raise NotFoundError("Product", product_id)
    return p


def get_product_by_barcode(barcode: str) -> Product:
    p = db.session.query(Product).filter_by(barcode=barcode, is_active=True).first()
    if p is None:
        raise NotFoundError("Product with barcode", barcode)
    return p


def list_products(*, active_only: bool = True, category: str | None = None) -> list[Product]:
    q = db.session.query(Product)
    if active_only:
        q = q.filter(Product.is_active.is_(True))
    if category:
        q = q.filter(Product.category == category)
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def search_products(term: str | None, *, include_inactive: bool = False) -> list[Product]:
    """
    Case-insensitive substring search over name, description and barcode.
    """
    term = (term or "").strip()
    if not term:
        return list_products(active_only=not include_inactive)

    # Escape LIKE wildcards so user input is matched literally
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"

    q = db.session.query(Product).filter(
        or_(
            func.lower(Product.name).like(pattern, escape="\\"),
            func.lower(func.coalesce(Product.description, "")).like(pattern, escape="\\"),
            func.lower(func.coalesce(Product.barcode, "")).like(pattern, escape="\\"),
        )
    )
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def list_categories() -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.is_active.is_(True), Product.category.isnot(None))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [r[0] for r in rows]


def barcode_exists(barcode: str) -> bool:
    return db.session.query(Product.id).filter(Product.barcode == barcode).first() is not None


def update_product(product_id: int, patch: dict) -> Product:
    cleaned = _clean_patch(patch, partial=True)

    def _op():
        p = get_product(product_id, include_inactive=True)
        if "barcode" in cleaned and cleaned["barcode"] != p.barcode:
            _ensure_barcode_free(cleaned["barcode"], exclude_id=p.id)

        for k, v in cleaned.items():
            setattr(p, k, v)

        _flush_or_conflict()
        db.session.commit()
        current_app.logger.info(
            "Product updated: id=%s fields=%s", p.id, ", ".join(sorted(cleaned.keys()))
        )
        return p

    return run_with_retry(_op)


def delete_product(product_id: int) -> Product:
    """
    Soft-delete a product. Repeating the call is a no-op.
    """
    def _op():
        p = get_product(product_id, include_inactive=True)
        if p.is_active:
            p.is_active = False
            db.session.commit()
            current_app.logger.info("Product deactivated: id=%s name=%s", p.id, p.name)
        return p

    return run_with_retry(_op)
