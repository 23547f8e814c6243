# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/cofitearia/services/inventory_service.py
"""
Inventory ledger invariants (authoritative)

Stock model:
- InventoryItem.current_stock is the on-hand quantity and never goes negative.
- Every change to current_stock appends exactly one StockMovement in the same
  DB transaction (IN +n, OUT -n, ADJUSTMENT signed delta). Movements are
  append-only.
- Each active product has at most one active inventory item.

Atomicity:
- Increments and decrements are single guarded UPDATE statements, so the
  availability check and the decrement cannot interleave with another writer.
  A decrement that affects zero rows changes nothing.

Thresholds:
- CRITICAL when current_stock <= critical_stock_threshold, LOW when
  current_stock <= low_stock_threshold. critical <= low is enforced on write.

Time:
- Expiration and restock stamps are calendar dates (time_utils.today()).
"""
from __future__ import annotations

from datetime import date, timedelta

from flask import current_app
from sqlalchemy import update
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryItem, MovementType, Product, StockMovement
from ..time_utils import today as business_today
from ..validation import (
    ModelValidationPolicy,
    coerce_int,
    enforce_rules_inventory_item,
    require_positive_quantity,
    validate_payload,
)
from .concurrency import begin_immediate, run_with_retry


DEFAULT_EXPIRING_DAYS = 7
MAX_MOVEMENT_LIMIT = 1000

INVENTORY_ITEM_FIELDS = (
    "current_stock",
    "minimum_stock",
    "maximum_stock",
    "cost_price",
    "expiration_date",
    "supplier",
    "location",
    "low_stock_threshold",
    "critical_stock_threshold",
)

CREATE_POLICY = ModelValidationPolicy(
    writable_fields=set(INVENTORY_ITEM_FIELDS),
    required_on_create=set(),
)

# current_stock only moves through add/remove/adjust
UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=set(INVENTORY_ITEM_FIELDS) - {"current_stock"},
    required_on_create=set(),
)


def _clean_reason(reason: str | None) -> str | None:
    if reason is None:
        return None
    reason = str(reason).strip()
    if not reason:
        return None
    if len(reason) > 255:
        raise ValidationError("reason exceeds max length 255")
    return reason


def _active_items_query():
    return (
        db.session.query(InventoryItem)
        .join(Product, Product.id == InventoryItem.product_id)
        .filter(InventoryItem.is_active.is_(True), Product.is_active.is_(True))
    )


def _load_active_item(item_id: int, *, fresh: bool = False) -> InventoryItem:
    # fresh=True bypasses the identity map after a Core UPDATE
    item = db.session.get(InventoryItem, item_id, populate_existing=fresh)
    if item is None or not item.is_active:
        raise NotFoundError("Inventory item", item_id)
    return item


def _record_movement(
    item_id: int, movement_type: str, quantity: int, reason: str | None, user_id: int | None
) -> StockMovement:
    movement = StockMovement(
        inventory_item_id=item_id,
        movement_type=movement_type,
        quantity=quantity,
        reason=reason,
        user_id=user_id,
    )
    db.session.add(movement)
    return movement


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

def create_inventory_item(product_id: int, patch: dict | None = None) -> InventoryItem:
    cleaned = validate_payload(
        model=InventoryItem, payload=patch or {}, policy=CREATE_POLICY, partial=False
    )

    merged = {
        "current_stock": 0,
        "minimum_stock": 0,
        "maximum_stock": 1000,
        "low_stock_threshold": 10,
        "critical_stock_threshold": 5,
    }
    merged.update(cleaned)
    enforce_rules_inventory_item(merged)

    def _op():
        begin_immediate()
        product = db.session.get(Product, product_id)
        if product is None or not product.is_active:
            raise NotFoundError("Product", product_id)

        existing = (
            db.session.query(InventoryItem.id)
            .filter_by(product_id=product_id, is_active=True)
            .first()
        )
        if existing is not None:
            raise ConflictError(f"Product {product_id} already has an active inventory item")

        item = InventoryItem(product_id=product_id, is_active=True, **merged)
        db.session.add(item)
        db.session.commit()
        current_app.logger.info(
            "Inventory item created: id=%s product_id=%s stock=%s",
            item.id, product_id, item.current_stock,
        )
        return item

    return run_with_retry(_op)


def get_inventory_item(item_id: int) -> InventoryItem:
    return _load_active_item(item_id)


def get_inventory_item_for_product(product_id: int) -> InventoryItem:
    item = (
        db.session.query(InventoryItem)
        .filter_by(product_id=product_id, is_active=True)
        .first()
    )
    if item is None:
        raise NotFoundError("Inventory item for product", product_id)
    return item


def find_inventory_item_for_product(product_id: int) -> InventoryItem | None:
    """Like get_inventory_item_for_product but returns None for untracked products."""
    return (
        db.session.query(InventoryItem)
        .filter_by(product_id=product_id, is_active=True)
        .first()
    )


def list_inventory_items() -> list[InventoryItem]:
    return _active_items_query().order_by(Product.name.asc(), InventoryItem.id.asc()).all()


def update_inventory_item(item_id: int, patch: dict) -> InventoryItem:
    if isinstance(patch, dict) and "current_stock" in patch:
        raise ValidationError("current_stock cannot be edited directly; use a stock adjustment")

    cleaned = validate_payload(model=InventoryItem, payload=patch, policy=UPDATE_POLICY, partial=True)

    def _op():
        begin_immediate()
        item = _load_active_item(item_id)

        merged = {k: getattr(item, k) for k in INVENTORY_ITEM_FIELDS}
        merged.update(cleaned)
        enforce_rules_inventory_item(merged)

        for k, v in cleaned.items():
            setattr(item, k, v)
        db.session.commit()
        current_app.logger.info(
            "Inventory item updated: id=%s fields=%s", item.id, ", ".join(sorted(cleaned.keys()))
        )
        return item

    return run_with_retry(_op)


def deactivate_inventory_item(item_id: int) -> InventoryItem:
    def _op():
        item = _load_active_item(item_id)
        item.is_active = False
        db.session.commit()
        current_app.logger.info("Inventory item deactivated: id=%s", item.id)
        return item

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# Stock movements
# ---------------------------------------------------------------------------

def add_stock(item_id: int, quantity, reason: str | None = None, user_id: int | None = None) -> InventoryItem:
    """Receive stock: current_stock += quantity, last_restocked = today."""
    qty = require_positive_quantity(quantity)
    reason = _clean_reason(reason)

    def _op():
        result = db.session.execute(
            update(InventoryItem)
            .where(InventoryItem.id == item_id, InventoryItem.is_active.is_(True))
            .values(
                current_stock=InventoryItem.current_stock + qty,
                last_restocked=business_today(),
            )
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            raise NotFoundError("Inventory item", item_id)

        _record_movement(item_id, MovementType.IN, qty, reason, user_id)
        db.session.commit()

        item = _load_active_item(item_id, fresh=True)
        current_app.logger.info(
            "Stock added: item_id=%s qty=%s new_stock=%s", item_id, qty, item.current_stock
        )
        return item

    return run_with_retry(_op)


def deduct_stock(item_id: int, qty: int, reason: str | None, user_id: int | None) -> None:
    """
    Guarded decrement plus OUT movement, without committing.

    Raises NotFoundError / InsufficientStockError when the UPDATE matches no
    row; in that case nothing was written.
    """
    result = db.session.execute(
        update(InventoryItem)
        .where(
            InventoryItem.id == item_id,
            InventoryItem.is_active.is_(True),
            InventoryItem.current_stock >= qty,
        )
        .values(current_stock=InventoryItem.current_stock - qty)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        row = (
            db.session.query(InventoryItem.current_stock, InventoryItem.is_active)
            .filter(InventoryItem.id == item_id)
            .first()
        )
        if row is None or not row.is_active:
            raise NotFoundError("Inventory item", item_id)
        raise InsufficientStockError(item_id, qty, row.current_stock)

    _record_movement(item_id, MovementType.OUT, -qty, reason, user_id)


def remove_stock(item_id: int, quantity, reason: str | None = None, user_id: int | None = None) -> InventoryItem:
    """Issue stock. Fails without mutation when on-hand is insufficient."""
    qty = require_positive_quantity(quantity)
    reason = _clean_reason(reason)

    def _op():
        deduct_stock(item_id, qty, reason, user_id)
        db.session.commit()

        item = _load_active_item(item_id, fresh=True)
        current_app.logger.info(
            "Stock removed: item_id=%s qty=%s new_stock=%s", item_id, qty, item.current_stock
        )
        return item

    return run_with_retry(_op)


def adjust_stock(item_id: int, new_quantity, reason: str | None = None, user_id: int | None = None) -> InventoryItem:
    """
    Set an absolute on-hand count (physical count correction).

    Records an ADJUSTMENT movement with the signed delta; a zero delta
    records nothing.
    """
    target = coerce_int("new_quantity", new_quantity)
    if target < 0:
        raise ValidationError("new_quantity must be >= 0")
    reason = _clean_reason(reason)

    def _op():
        begin_immediate()
        item = _load_active_item(item_id, fresh=True)
        observed = item.current_stock
        delta = target - observed
        if delta == 0:
            db.session.commit()
            return item

        # Write only if nobody moved stock since the read; run_with_retry re-reads
        result = db.session.execute(
            update(InventoryItem)
            .where(
                InventoryItem.id == item_id,
                InventoryItem.is_active.is_(True),
                InventoryItem.current_stock == observed,
            )
            .values(current_stock=target)
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            raise StaleDataError(f"Inventory item {item_id} changed during adjustment")

        _record_movement(item_id, MovementType.ADJUSTMENT, delta, reason, user_id)
        db.session.commit()

        item = _load_active_item(item_id, fresh=True)
        current_app.logger.info(
            "Stock adjusted: item_id=%s delta=%s new_stock=%s", item_id, delta, target
        )
        return item

    return run_with_retry(_op)


def list_stock_movements(item_id: int, limit: int = 200) -> list[StockMovement]:
    """Newest first."""
    limit = coerce_int("limit", limit)
    if limit <= 0 or limit > MAX_MOVEMENT_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_MOVEMENT_LIMIT}")

    if db.session.get(InventoryItem, item_id) is None:
        raise NotFoundError("Inventory item", item_id)

    return (
        db.session.query(StockMovement)
        .filter(StockMovement.inventory_item_id == item_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )


# ---------------------------------------------------------------------------
# Stock level and expiration reports
# ---------------------------------------------------------------------------

def list_low_stock() -> list[InventoryItem]:
    return (
        _active_items_query()
        .filter(InventoryItem.current_stock <= InventoryItem.low_stock_threshold)
        .order_by(InventoryItem.current_stock.asc(), InventoryItem.id.asc())
        .all()
    )


def list_critical_stock() -> list[InventoryItem]:
    return (
        _active_items_query()
        .filter(InventoryItem.current_stock <= InventoryItem.critical_stock_threshold)
        .order_by(InventoryItem.current_stock.asc(), InventoryItem.id.asc())
        .all()
    )


def list_expired(today: date | None = None) -> list[InventoryItem]:
    on = today or business_today()
    return (
        _active_items_query()
        .filter(
            InventoryItem.expiration_date.isnot(None),
            InventoryItem.expiration_date < on,
            InventoryItem.current_stock > 0,
        )
        .order_by(InventoryItem.expiration_date.asc(), InventoryItem.id.asc())
        .all()
    )


def list_expiring_soon(days: int = DEFAULT_EXPIRING_DAYS, today: date | None = None) -> list[InventoryItem]:
    days = coerce_int("days", days)
    if days <= 0:
        raise ValidationError("days must be > 0")
    on = today or business_today()
    return (
        _active_items_query()
        .filter(
            InventoryItem.expiration_date.isnot(None),
            InventoryItem.expiration_date > on,
            InventoryItem.expiration_date < on + timedelta(days=days),
            InventoryItem.current_stock > 0,
        )
        .order_by(InventoryItem.expiration_date.asc(), InventoryItem.id.asc())
        .all()
    )


def reorder_quantity(item_id: int) -> int:
    """maximum_stock - current_stock; negative when overstocked."""
    return _load_active_item(item_id).reorder_quantity
