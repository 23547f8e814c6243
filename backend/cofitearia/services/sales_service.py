"""
Sales Service - cart building, finalization and voids.

A sale starts as a DRAFT cart. Items, tax rate and discount may change only
while DRAFT. finalize_sale() deducts stock for every tracked product,
assigns the transaction number and marks it COMPLETED in one DB transaction.
void_sale() marks a COMPLETED sale VOIDED; stock is not returned.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import update

from ..errors import (
    EmptyCartError,
    NotFoundError,
    SaleStateError,
    ValidationError,
)
from ..extensions import db
from ..models import PAYMENT_METHODS, Product, Sale, SaleItem, SaleStatus, User
from ..money import ZERO, format_money, quantize, to_money, to_rate
from ..time_utils import utcnow
from ..validation import coerce_int, require_positive_quantity
from . import settings_service
from .concurrency import begin_immediate, run_with_retry
from .inventory_service import deduct_stock, find_inventory_item_for_product
from .sequence_service import next_document_number

TRANSACTION_DOCUMENT_TYPE = "SALE"
TRANSACTION_PREFIX = "TXN"
MAX_LIST_LIMIT = 1000


def _ensure_user(user_id: int | None) -> None:
    if user_id is not None and db.session.get(User, user_id) is None:
        raise NotFoundError("User", user_id)


def _load_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale", sale_id)
    return sale


def _load_draft(sale_id: int) -> Sale:
    sale = _load_sale(sale_id)
    if sale.status != SaleStatus.DRAFT:
        raise SaleStateError(
            f"Sale {sale_id} is {sale.status}; only DRAFT sales can be modified",
            details={"sale_id": sale_id, "status": sale.status},
        )
    return sale


def _clean_text(value, field: str, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return value


def normalize_payment_method(payment_method) -> str:
    method = (str(payment_method).strip().upper() if payment_method is not None else "")
    if method not in PAYMENT_METHODS:
        raise ValidationError(
            f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}"
        )
    return method


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------

def create_sale(cashier_id: int | None = None, tax_rate=None) -> Sale:
    """Create new draft sale. tax_rate defaults to the tax_rate setting."""
    rate = to_rate(tax_rate, "tax_rate") if tax_rate is not None else settings_service.get_tax_rate()

    def _op():
        _ensure_user(cashier_id)
        sale = Sale(
            status=SaleStatus.DRAFT,
            cashier_id=cashier_id,
            tax_rate=rate,
            discount=ZERO,
        )
        sale.recalculate_totals()
        db.session.add(sale)
        db.session.commit()
        return sale

    return run_with_retry(_op)


def add_item(sale_id: int, product_id: int, quantity=1) -> Sale:
    """
    Add quantity of a product. Repeated adds of the same product increase
    the existing line, which keeps its original unit price.
    """
    qty = require_positive_quantity(quantity)

    def _op():
        sale = _load_draft(sale_id)
        product = db.session.get(Product, product_id)
        if product is None or not product.is_active:
            raise NotFoundError("Product", product_id)
        if product.price is None:
            raise ValidationError(f"Product {product_id} has no price")

        item = sale.find_item(product_id)
        if item is None:
            item = SaleItem(product_id=product_id, quantity=qty, unit_price=product.price)
            sale.items.append(item)
        else:
            item.quantity += qty
        item.recalculate()

        sale.recalculate_totals()
        db.session.commit()
        return sale

    return run_with_retry(_op)


def _require_item(sale: Sale, product_id: int) -> SaleItem:
    item = sale.find_item(product_id)
    if item is None:
        raise NotFoundError(f"Product {product_id} on sale", sale.id)
    return item


def decrement_item(sale_id: int, product_id: int) -> Sale:
    """Reduce a line by one; the line disappears when it reaches zero."""
    def _op():
        sale = _load_draft(sale_id)
        item = _require_item(sale, product_id)
        if item.quantity <= 1:
            sale.items.remove(item)
        else:
            item.quantity -= 1
            item.recalculate()
        sale.recalculate_totals()
        db.session.commit()
        return sale

    return run_with_retry(_op)


def remove_item(sale_id: int, product_id: int) -> Sale:
    def _op():
        sale = _load_draft(sale_id)
        item = _require_item(sale, product_id)
        sale.items.remove(item)
        sale.recalculate_totals()
        db.session.commit()
        return sale

    return run_with_retry(_op)


def apply_tax(sale_id: int, rate) -> Sale:
    """Set the tax rate (0..1). Tax is recomputed on every later item change."""
    new_rate = to_rate(rate, "tax_rate")

    def _op():
        sale = _load_draft(sale_id)
        sale.tax_rate = new_rate
        sale.recalculate_totals()
        db.session.commit()
        return sale

    return run_with_retry(_op)


def apply_discount(sale_id: int, amount) -> Sale:
    """Set a flat discount; must not exceed subtotal + tax."""
    discount = to_money(amount, "discount")
    if discount < 0:
        raise ValidationError("discount must be >= 0")

    def _op():
        sale = _load_draft(sale_id)
        sale.recalculate_totals()
        ceiling = Decimal(sale.subtotal) + Decimal(sale.tax)
        if discount > ceiling:
            raise ValidationError(
                f"discount cannot exceed {quantize(ceiling)}",
                details={"discount": str(discount), "max_discount": str(ceiling)},
            )
        sale.discount = discount
        sale.recalculate_totals()
        db.session.commit()
        return sale

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def finalize_sale(
    sale_id: int,
    payment_method,
    cashier_id: int | None = None,
    customer_info: str | None = None,
    notes: str | None = None,
    accessibility_assistance_used: bool = False,
    accessibility_notes: str | None = None,
) -> Sale:
    """
    Complete a draft sale.

    All-or-nothing: stock deduction for every tracked line, the transaction
    number and the status change commit together. InsufficientStockError on
    any line rolls the whole unit back (run_with_retry) and the sale stays
    DRAFT with inventory untouched.

    The DRAFT -> COMPLETED transition is a guarded UPDATE issued before any
    stock moves; a concurrent second finalize matches no row and gets
    SaleStateError.
    """
    method = normalize_payment_method(payment_method)
    customer_info = _clean_text(customer_info, "customer_info", 255)
    notes = _clean_text(notes, "notes")
    accessibility_notes = _clean_text(accessibility_notes, "accessibility_notes")
    if not isinstance(accessibility_assistance_used, bool):
        raise ValidationError("accessibility_assistance_used must be a boolean")

    def _op():
        begin_immediate()
        sale = _load_draft(sale_id)
        if not sale.items:
            raise EmptyCartError(sale_id)

        _ensure_user(cashier_id)
        actor_id = cashier_id if cashier_id is not None else sale.cashier_id

        sale.recalculate_totals()
        if Decimal(sale.total) < 0:
            raise ValidationError("discount exceeds the sale amount; adjust the discount before finalizing")

        # Only one finalizer can move the row out of DRAFT
        claimed = db.session.execute(
            update(Sale)
            .where(Sale.id == sale_id, Sale.status == SaleStatus.DRAFT)
            .values(status=SaleStatus.COMPLETED)
            .execution_options(synchronize_session=False)
        )
        if not claimed.rowcount:
            raise SaleStateError(
                f"Sale {sale_id} was already finalized",
                details={"sale_id": sale_id},
            )

        txn = next_document_number(
            document_type=TRANSACTION_DOCUMENT_TYPE, prefix=TRANSACTION_PREFIX
        )

        for item in sale.items:
            inv = find_inventory_item_for_product(item.product_id)
            if inv is None:
                # Untracked product (e.g. made-to-order drink)
                continue
            deduct_stock(inv.id, item.quantity, f"Sale {txn}", actor_id)

        sale.transaction_number = txn
        sale.payment_method = method
        sale.cashier_id = actor_id
        sale.customer_info = customer_info
        sale.notes = notes
        sale.accessibility_assistance_used = accessibility_assistance_used
        sale.accessibility_notes = accessibility_notes
        sale.sale_date = utcnow()
        sale.status = SaleStatus.COMPLETED

        db.session.commit()
        current_app.logger.info(
            "Sale finalized: id=%s txn=%s total=%s payment=%s",
            sale.id, txn, sale.total, method,
        )
        return sale

    return run_with_retry(_op)


def void_sale(sale_id: int, user_id: int | None = None, reason: str | None = None) -> Sale:
    """Void a completed sale. Inventory is not restocked."""
    reason = _clean_text(reason, "reason", 255)

    def _op():
        sale = _load_sale(sale_id)
        if sale.status != SaleStatus.COMPLETED:
            raise SaleStateError(
                f"Sale {sale_id} is {sale.status}; only COMPLETED sales can be voided",
                details={"sale_id": sale_id, "status": sale.status},
            )
        _ensure_user(user_id)

        sale.status = SaleStatus.VOIDED
        sale.voided_at = utcnow()
        sale.voided_by_user_id = user_id
        sale.void_reason = reason
        db.session.commit()
        current_app.logger.warning(
            "Sale voided: id=%s txn=%s by_user=%s reason=%s",
            sale.id, sale.transaction_number, user_id, reason,
        )
        return sale

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_sale(sale_id: int) -> Sale:
    return _load_sale(sale_id)


def get_sale_by_transaction_number(number: str) -> Sale:
    sale = db.session.query(Sale).filter_by(transaction_number=number).first()
    if sale is None:
        raise NotFoundError("Sale", number)
    return sale


def _completed_query(*, include_voided: bool, start: datetime | None, end: datetime | None):
    statuses = [SaleStatus.COMPLETED]
    if include_voided:
        statuses.append(SaleStatus.VOIDED)
    q = db.session.query(Sale).filter(Sale.status.in_(statuses))
    if start is not None:
        q = q.filter(Sale.sale_date >= start)
    if end is not None:
        q = q.filter(Sale.sale_date <= end)
    return q


def list_sales(
    include_voided: bool = False,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 200,
) -> list[Sale]:
    """Finalized sales, newest first. Date bounds are inclusive."""
    limit = coerce_int("limit", limit)
    if limit <= 0 or limit > MAX_LIST_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_LIST_LIMIT}")
    return (
        _completed_query(include_voided=include_voided, start=start, end=end)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )


def list_draft_sales(cashier_id: int | None = None) -> list[Sale]:
    q = db.session.query(Sale).filter(Sale.status == SaleStatus.DRAFT)
    if cashier_id is not None:
        q = q.filter(Sale.cashier_id == cashier_id)
    return q.order_by(Sale.id.asc()).all()


def summarize_sales(start: datetime | None = None, end: datetime | None = None) -> dict:
    """Totals over COMPLETED sales only; voided sales are excluded."""
    sales = _completed_query(include_voided=False, start=start, end=end).all()

    summary = {
        "sale_count": len(sales),
        "item_count": 0,
        "subtotal": ZERO,
        "tax": ZERO,
        "discount": ZERO,
        "total": ZERO,
    }
    for sale in sales:
        summary["item_count"] += sale.item_count
        for key in ("subtotal", "tax", "discount", "total"):
            summary[key] += Decimal(getattr(sale, key))

    for key in ("subtotal", "tax", "discount", "total"):
        summary[key] = quantize(summary[key])
    return summary


def render_receipt(sale: Sale, currency_symbol: str | None = None) -> str:
    """Plain-text receipt, suitable for printing or reading aloud."""
    symbol = currency_symbol if currency_symbol is not None else settings_service.get_currency_symbol()

    def m(value) -> str:
        return format_money(value, symbol)

    cashier = sale.cashier.username if sale.cashier else "N/A"
    sale_date = sale.sale_date.strftime("%Y-%m-%d %H:%M:%S") if sale.sale_date else "N/A"

    lines = [
        f"Transaction: {sale.transaction_number or 'N/A'}",
        f"Date: {sale_date}",
        f"Cashier: {cashier}",
        "",
        "Items:",
    ]
    for item in sale.items:
        name = item.product.name if item.product else f"Product {item.product_id}"
        lines.append(f"{name} x{item.quantity} = {m(item.total_price)}")

    lines.append("")
    lines.append(f"Subtotal: {m(sale.subtotal)}")
    if Decimal(sale.tax) > 0:
        lines.append(f"Tax: {m(sale.tax)}")
    if Decimal(sale.discount) > 0:
        lines.append(f"Discount: {m(sale.discount)}")
    lines.append(f"Total: {m(sale.total)}")
    lines.append(f"Payment: {sale.payment_method or 'N/A'}")

    if sale.is_voided:
        lines.append("")
        lines.append(f"VOIDED: {sale.void_reason or 'no reason given'}")
    if sale.accessibility_assistance_used:
        lines.append("")
        lines.append("Accessibility assistance was provided for this transaction.")

    return "\n".join(lines)
