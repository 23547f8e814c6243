"""
HTTP API tests.

Verifies:
- Unauthenticated requests return 401
- Staff roles are denied manager/owner operations (403)
- Domain errors map to the documented status codes
- A sale can be rung up end to end over the API
"""

import pytest

from .conftest import auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/inventory"),
            ("GET", "/api/inventory/low-stock"),
            ("POST", "/api/sales"),
            ("GET", "/api/sales/summary"),
            ("GET", "/api/users"),
            ("GET", "/api/settings"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_rejected(self, client, db_session):
        resp = client.get("/api/products", headers=auth_headers("0" * 64))
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["checks"]["database"]["status"] == "healthy"


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================


class TestLogin:

    def test_login_returns_token_and_permissions(self, client, staff):
        resp = client.post("/api/auth/login", json={"username": "staffuser", "password": "secret123"})
        assert resp.status_code == 200
        assert len(resp.json["token"]) == 64
        assert resp.json["permissions"] == ["PROCESS_SALE", "UPDATE_STOCK", "VIEW_INVENTORY", "VIEW_SALES"]

    def test_wrong_password_is_401(self, client, staff):
        resp = client.post("/api/auth/login", json={"username": "staffuser", "password": "wrongpw"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid username or password"

    def test_missing_fields_is_400(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "staffuser"})
        assert resp.status_code == 400

    def test_logout_revokes_token(self, client, staff):
        token = get_auth_token(client, "staffuser")
        headers = auth_headers(token)
        assert client.get("/api/auth/me", headers=headers).status_code == 200
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401


# =============================================================================
# STAFF DENIED PRIVILEGED OPERATIONS (403)
# =============================================================================


class TestStaffDenied:

    def test_cannot_create_product(self, client, staff_headers):
        resp = client.post("/api/products", json={"name": "X", "price": "1.00"}, headers=staff_headers)
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "MANAGE_PRODUCTS"

    def test_cannot_list_users(self, client, staff_headers):
        assert client.get("/api/users", headers=staff_headers).status_code == 403

    def test_cannot_adjust_stock(self, client, staff_headers, milk_tea_stock):
        resp = client.post(
            f"/api/inventory/{milk_tea_stock.id}/adjust",
            json={"new_quantity": 1},
            headers=staff_headers,
        )
        assert resp.status_code == 403

    def test_can_remove_stock(self, client, staff_headers, milk_tea_stock):
        resp = client.post(
            f"/api/inventory/{milk_tea_stock.id}/remove",
            json={"quantity": 91, "reason": "sale"},
            headers=staff_headers,
        )
        assert resp.status_code == 200
        assert resp.json["current_stock"] == 9
        assert resp.json["stock_status"] == "LOW"

    def test_cannot_change_settings(self, client, staff_headers):
        resp = client.put("/api/settings/tax_rate", json={"value": "0.10"}, headers=staff_headers)
        assert resp.status_code == 403


class TestManagerLimits:

    def test_manager_cannot_deactivate_users(self, client, manager_headers, staff):
        assert client.delete(f"/api/users/{staff.id}", headers=manager_headers).status_code == 403

    def test_manager_cannot_create_owner(self, client, manager_headers):
        resp = client.post(
            "/api/users",
            json={
                "username": "boss2", "password": "secret123",
                "first_name": "Boss", "last_name": "Two", "role": "OWNER",
            },
            headers=manager_headers,
        )
        assert resp.status_code == 403

    def test_manager_can_void(self, client, manager_headers, staff_headers, milk_tea):
        sale_id = client.post("/api/sales", headers=staff_headers).json["id"]
        client.post(f"/api/sales/{sale_id}/items", json={"product_id": milk_tea.id}, headers=staff_headers)
        client.post(f"/api/sales/{sale_id}/finalize", json={"payment_method": "CASH"}, headers=staff_headers)

        assert client.post(f"/api/sales/{sale_id}/void", headers=staff_headers).status_code == 403
        resp = client.post(f"/api/sales/{sale_id}/void", json={"reason": "test"}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json["status"] == "VOIDED"


# =============================================================================
# STATUS MAPPING
# =============================================================================


class TestErrorMapping:

    def test_validation_is_400(self, client, manager_headers):
        resp = client.post("/api/products", json={"name": "Float", "price": 1.5}, headers=manager_headers)
        assert resp.status_code == 400

    def test_not_found_is_404(self, client, manager_headers):
        assert client.get("/api/products/99999", headers=manager_headers).status_code == 404

    def test_duplicate_barcode_is_409(self, client, manager_headers, milk_tea):
        resp = client.post(
            "/api/products",
            json={"name": "Copy", "price": "1.00", "barcode": "MT-001"},
            headers=manager_headers,
        )
        assert resp.status_code == 409

    def test_insufficient_stock_is_409_with_details(self, client, staff_headers, matcha_stock):
        resp = client.post(
            f"/api/inventory/{matcha_stock.id}/remove",
            json={"quantity": 4},
            headers=staff_headers,
        )
        assert resp.status_code == 409
        assert resp.json["details"] == {"item_id": matcha_stock.id, "requested": 4, "available": 3}

    def test_empty_cart_is_409(self, client, staff_headers):
        sale_id = client.post("/api/sales", headers=staff_headers).json["id"]
        resp = client.post(f"/api/sales/{sale_id}/finalize", json={"payment_method": "CASH"}, headers=staff_headers)
        assert resp.status_code == 409


# =============================================================================
# END TO END
# =============================================================================


class TestSaleFlow:

    def test_ring_up_finalize_and_print(self, client, staff_headers, milk_tea, matcha, milk_tea_stock):
        sale = client.post("/api/sales", headers=staff_headers).json
        assert sale["status"] == "DRAFT"
        assert sale["tax_rate"] == "0.1200"

        client.post(f"/api/sales/{sale['id']}/items", json={"product_id": milk_tea.id, "quantity": 2}, headers=staff_headers)
        resp = client.post(f"/api/sales/{sale['id']}/items", json={"product_id": matcha.id}, headers=staff_headers)
        body = resp.json
        assert (body["subtotal"], body["tax"], body["total"]) == ("145.00", "17.40", "162.40")

        resp = client.post(
            f"/api/sales/{sale['id']}/finalize",
            json={"payment_method": "CARD"},
            headers=staff_headers,
        )
        assert resp.status_code == 200
        assert resp.json["transaction_number"] == "TXN-000001"

        receipt = client.get(f"/api/sales/{sale['id']}/receipt", headers=staff_headers).json["receipt"]
        assert "Total: ₱162.40" in receipt

        summary = client.get("/api/sales/summary", headers=staff_headers).json
        assert summary["sale_count"] == 1
        assert summary["total"] == "162.40"

        item = client.get(f"/api/inventory/{milk_tea_stock.id}", headers=staff_headers).json
        assert item["current_stock"] == 98

    def test_product_crud_as_manager(self, client, manager_headers):
        created = client.post(
            "/api/products",
            json={"name": "Wintermelon Tea", "price": "48.00", "category": "Beverages"},
            headers=manager_headers,
        )
        assert created.status_code == 201
        pid = created.json["id"]

        updated = client.put(f"/api/products/{pid}", json={"price": "49.00"}, headers=manager_headers)
        assert updated.json["price"] == "49.00"

        found = client.get("/api/products?q=winter", headers=manager_headers).json["items"]
        assert [p["id"] for p in found] == [pid]

        assert client.delete(f"/api/products/{pid}", headers=manager_headers).json["is_active"] is False
        assert client.get("/api/products?q=winter", headers=manager_headers).json["items"] == []

    def test_own_accessibility_preferences(self, client, staff_headers):
        resp = client.put(
            "/api/users/me/accessibility",
            json={"high_contrast_mode": True},
            headers=staff_headers,
        )
        assert resp.status_code == 200
        assert resp.json["preferences"]["high_contrast_mode"] is True

    def test_owner_updates_tax_rate(self, client, owner_headers, staff_headers):
        resp = client.put("/api/settings/tax_rate", json={"value": "0.10"}, headers=owner_headers)
        assert resp.status_code == 200
        assert resp.json["value"] == "0.1000"
        assert client.get("/api/settings/tax_rate", headers=staff_headers).json["value"] == "0.1000"

    def test_open_drafts_belong_to_cashier(self, client, staff_headers, manager_headers, milk_tea):
        mine = client.post("/api/sales", headers=staff_headers).json["id"]
        client.post("/api/sales", headers=manager_headers)

        drafts = client.get("/api/sales/drafts", headers=staff_headers).json["items"]
        assert [d["id"] for d in drafts] == [mine]

    def test_product_detail_reads_aloud(self, client, staff_headers, milk_tea):
        body = client.get(f"/api/products/{milk_tea.id}", headers=staff_headers).json
        assert body["full_description"] == (
            "Classic Milk Tea. Black tea with milk. Price: 45.00. Category: Beverages"
        )
