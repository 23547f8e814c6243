"""
Inventory ledger tests.

Covers stock status transitions, the guarded decrement, movements,
threshold validation and the low/critical/expiry reports.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import update

from cofitearia.errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from cofitearia.models import InventoryItem, MovementType, StockMovement, StockStatus
from cofitearia.services import catalog_service, inventory_service


def _movements(db_session, item_id):
    return (
        db_session.query(StockMovement)
        .filter_by(inventory_item_id=item_id)
        .order_by(StockMovement.id)
        .all()
    )


class TestStockStatus:

    def test_status_walks_from_adequate_to_low_to_critical(self, db_session, milk_tea_stock):
        item_id = milk_tea_stock.id
        assert milk_tea_stock.stock_status == StockStatus.ADEQUATE

        item = inventory_service.remove_stock(item_id, 91, "sale")
        assert item.current_stock == 9
        assert item.stock_status == StockStatus.LOW

        item = inventory_service.remove_stock(item_id, 5, "sale")
        assert item.current_stock == 4
        assert item.stock_status == StockStatus.CRITICAL

    def test_thresholds_are_inclusive(self, db_session, milk_tea_stock):
        item = inventory_service.adjust_stock(milk_tea_stock.id, 10, "count")
        assert item.stock_status == StockStatus.LOW
        item = inventory_service.adjust_stock(milk_tea_stock.id, 5, "count")
        assert item.stock_status == StockStatus.CRITICAL
        item = inventory_service.adjust_stock(milk_tea_stock.id, 11, "count")
        assert item.stock_status == StockStatus.ADEQUATE

    def test_stock_summary_mentions_status(self, db_session, milk_tea_stock):
        summary = milk_tea_stock.stock_summary()
        assert "Classic Milk Tea" in summary
        assert "Adequate stock level" in summary


class TestRemoveStock:

    def test_remove_exact_stock_leaves_zero(self, db_session, milk_tea_stock):
        item = inventory_service.remove_stock(milk_tea_stock.id, 100, "sale")
        assert item.current_stock == 0

    def test_remove_more_than_stock_fails_without_mutation(self, db_session, milk_tea_stock):
        with pytest.raises(InsufficientStockError) as exc_info:
            inventory_service.remove_stock(milk_tea_stock.id, 101, "sale")

        assert exc_info.value.details["available"] == 100
        assert exc_info.value.details["requested"] == 101
        db_session.expire_all()
        assert db_session.get(InventoryItem, milk_tea_stock.id).current_stock == 100
        assert _movements(db_session, milk_tea_stock.id) == []

    def test_second_removal_sees_first(self, db_session, milk_tea_stock):
        # Another till drains most of the stock first
        inventory_service.remove_stock(milk_tea_stock.id, 95, "other till")

        with pytest.raises(InsufficientStockError):
            inventory_service.remove_stock(milk_tea_stock.id, 10, "sale")

        db_session.expire_all()
        assert db_session.get(InventoryItem, milk_tea_stock.id).current_stock == 5

    @pytest.mark.parametrize("qty", [0, -1, "abc", 1.5, True])
    def test_non_positive_or_non_integer_quantity_rejected(self, db_session, milk_tea_stock, qty):
        with pytest.raises(ValidationError):
            inventory_service.remove_stock(milk_tea_stock.id, qty, "sale")

    def test_missing_item_raises_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.remove_stock(999999, 1, "sale")

    def test_inactive_item_raises_not_found(self, db_session, milk_tea_stock):
        inventory_service.deactivate_inventory_item(milk_tea_stock.id)
        with pytest.raises(NotFoundError):
            inventory_service.remove_stock(milk_tea_stock.id, 1, "sale")

    def test_remove_records_negative_out_movement(self, db_session, milk_tea_stock, staff):
        inventory_service.remove_stock(milk_tea_stock.id, 3, "spillage", user_id=staff.id)
        [movement] = _movements(db_session, milk_tea_stock.id)
        assert movement.movement_type == MovementType.OUT
        assert movement.quantity == -3
        assert movement.reason == "spillage"
        assert movement.user_id == staff.id


class TestAddAndAdjust:

    def test_add_stock_increments_and_stamps_restock_date(self, db_session, milk_tea_stock):
        item = inventory_service.add_stock(milk_tea_stock.id, 25, "delivery")
        assert item.current_stock == 125
        assert item.last_restocked == date.today()
        [movement] = _movements(db_session, milk_tea_stock.id)
        assert movement.movement_type == MovementType.IN
        assert movement.quantity == 25

    def test_add_zero_rejected(self, db_session, milk_tea_stock):
        with pytest.raises(ValidationError):
            inventory_service.add_stock(milk_tea_stock.id, 0, "delivery")

    def test_add_to_missing_item_raises_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.add_stock(999999, 1, "delivery")

    def test_adjust_records_signed_delta(self, db_session, milk_tea_stock):
        inventory_service.adjust_stock(milk_tea_stock.id, 90, "count")
        inventory_service.adjust_stock(milk_tea_stock.id, 92, "count")
        deltas = [(m.movement_type, m.quantity) for m in _movements(db_session, milk_tea_stock.id)]
        assert deltas == [(MovementType.ADJUSTMENT, -10), (MovementType.ADJUSTMENT, 2)]

    def test_adjust_to_same_value_records_nothing(self, db_session, milk_tea_stock):
        inventory_service.adjust_stock(milk_tea_stock.id, 100, "count")
        assert _movements(db_session, milk_tea_stock.id) == []

    def test_adjust_rereads_when_stock_moves_before_write(self, db_session, monkeypatch, milk_tea_stock):
        real_load = inventory_service._load_active_item
        seen = []

        def load_then_sell_elsewhere(item_id, *, fresh=False):
            item = real_load(item_id, fresh=fresh)
            seen.append(item.current_stock)
            if len(seen) == 1:
                # Stock moves between the count's read and its guarded write
                db_session.execute(
                    update(InventoryItem)
                    .where(InventoryItem.id == item_id)
                    .values(current_stock=InventoryItem.current_stock - 7)
                    .execution_options(synchronize_session=False)
                )
            return item

        monkeypatch.setattr(inventory_service, "_load_active_item", load_then_sell_elsewhere)

        item = inventory_service.adjust_stock(milk_tea_stock.id, 80, "count")

        # First write matched no row; the retry rolled back and counted again
        assert len(seen) == 3
        assert item.current_stock == 80
        deltas = [(m.movement_type, m.quantity) for m in _movements(db_session, milk_tea_stock.id)]
        assert deltas == [(MovementType.ADJUSTMENT, -20)]

    def test_adjust_negative_rejected(self, db_session, milk_tea_stock):
        with pytest.raises(ValidationError):
            inventory_service.adjust_stock(milk_tea_stock.id, -1, "count")

    def test_movements_listed_newest_first(self, db_session, milk_tea_stock):
        inventory_service.add_stock(milk_tea_stock.id, 1, "first")
        inventory_service.remove_stock(milk_tea_stock.id, 1, "second")
        reasons = [m.reason for m in inventory_service.list_stock_movements(milk_tea_stock.id)]
        assert reasons == ["second", "first"]


class TestItemLifecycle:

    def test_one_active_item_per_product(self, db_session, milk_tea_stock, milk_tea):
        with pytest.raises(ConflictError):
            inventory_service.create_inventory_item(milk_tea.id, {})

    def test_inactive_product_cannot_get_item(self, db_session, milk_tea):
        catalog_service.delete_product(milk_tea.id)
        with pytest.raises(NotFoundError):
            inventory_service.create_inventory_item(milk_tea.id, {})

    def test_defaults(self, db_session, milk_tea):
        item = inventory_service.create_inventory_item(milk_tea.id)
        assert item.current_stock == 0
        assert item.maximum_stock == 1000
        assert item.low_stock_threshold == 10
        assert item.critical_stock_threshold == 5

    def test_inverted_thresholds_rejected_on_create(self, db_session, milk_tea):
        with pytest.raises(ValidationError, match="critical_stock_threshold"):
            inventory_service.create_inventory_item(
                milk_tea.id, {"low_stock_threshold": 3, "critical_stock_threshold": 8}
            )

    def test_inverted_thresholds_rejected_on_update(self, db_session, milk_tea_stock):
        with pytest.raises(ValidationError):
            inventory_service.update_inventory_item(milk_tea_stock.id, {"critical_stock_threshold": 11})

    def test_max_below_min_rejected(self, db_session, milk_tea_stock):
        with pytest.raises(ValidationError):
            inventory_service.update_inventory_item(milk_tea_stock.id, {"maximum_stock": 10})

    def test_current_stock_not_editable_through_update(self, db_session, milk_tea_stock):
        with pytest.raises(ValidationError):
            inventory_service.update_inventory_item(milk_tea_stock.id, {"current_stock": 5})

    def test_update_metadata(self, db_session, milk_tea_stock):
        item = inventory_service.update_inventory_item(
            milk_tea_stock.id,
            {"supplier": "Leaf Co", "cost_price": "20.50", "expiration_date": "2030-01-31"},
        )
        assert item.supplier == "Leaf Co"
        assert item.cost_price == Decimal("20.50")
        assert item.expiration_date == date(2030, 1, 31)

    def test_reload_yields_equal_fields(self, db_session, milk_tea_stock):
        before = milk_tea_stock.to_dict()
        db_session.expire_all()
        after = inventory_service.get_inventory_item(milk_tea_stock.id).to_dict()
        assert after == before

    def test_reorder_quantity_is_unclamped(self, db_session, milk_tea_stock):
        assert inventory_service.reorder_quantity(milk_tea_stock.id) == 400
        inventory_service.add_stock(milk_tea_stock.id, 450, "big delivery")
        assert inventory_service.reorder_quantity(milk_tea_stock.id) == -50

    def test_get_for_product(self, db_session, milk_tea_stock, milk_tea):
        assert inventory_service.get_inventory_item_for_product(milk_tea.id).id == milk_tea_stock.id


class TestReports:

    def test_low_stock_ordered_by_stock_then_id(self, db_session, milk_tea_stock, matcha_stock, pearls):
        pearls_stock = inventory_service.create_inventory_item(pearls.id, {"current_stock": 3})
        inventory_service.remove_stock(milk_tea_stock.id, 92, "sale")

        ids = [i.id for i in inventory_service.list_low_stock()]
        assert ids == [matcha_stock.id, pearls_stock.id, milk_tea_stock.id]

    def test_low_stock_query_is_idempotent(self, db_session, milk_tea_stock, matcha_stock):
        first = [i.to_dict() for i in inventory_service.list_low_stock()]
        second = [i.to_dict() for i in inventory_service.list_low_stock()]
        assert first == second

    def test_critical_stock(self, db_session, milk_tea_stock, matcha_stock):
        assert [i.id for i in inventory_service.list_critical_stock()] == [matcha_stock.id]

    def test_expired_and_expiring(self, db_session, milk_tea_stock, matcha_stock):
        today = date(2026, 6, 15)
        inventory_service.update_inventory_item(milk_tea_stock.id, {"expiration_date": "2026-06-14"})
        inventory_service.update_inventory_item(matcha_stock.id, {"expiration_date": "2026-06-20"})

        assert [i.id for i in inventory_service.list_expired(today=today)] == [milk_tea_stock.id]
        assert [i.id for i in inventory_service.list_expiring_soon(today=today)] == [matcha_stock.id]
        assert inventory_service.list_expiring_soon(days=3, today=today) == []

    def test_expiry_boundaries(self, db_session, milk_tea_stock):
        today = date(2026, 6, 15)
        inventory_service.update_inventory_item(milk_tea_stock.id, {"expiration_date": today.isoformat()})
        assert inventory_service.list_expired(today=today) == []
        assert inventory_service.list_expiring_soon(today=today) == []

        inventory_service.update_inventory_item(
            milk_tea_stock.id, {"expiration_date": (today + timedelta(days=7)).isoformat()}
        )
        assert inventory_service.list_expiring_soon(days=7, today=today) == []

    def test_expired_items_without_stock_are_skipped(self, db_session, milk_tea_stock):
        inventory_service.update_inventory_item(milk_tea_stock.id, {"expiration_date": "2020-01-01"})
        inventory_service.adjust_stock(milk_tea_stock.id, 0, "written off")
        assert inventory_service.list_expired(today=date(2026, 1, 1)) == []
