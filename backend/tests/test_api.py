"""
HTTP API tests.

Verifies:
- Unauthenticated requests return 401
- Staff cannot reach admin-only operations (403)
- Stock adjust / bulk adjust / movement listing over HTTP
- Cascading deletes and user management responses
- Catalog CRUD validation and conflicts
"""

import pytest

from stockledger.extensions import db
from stockledger.models import Product, StockMovement

# Plaintext behind the password_hash fixture
PASSWORD = "Password123!"


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("POST", "/api/products/bulk-adjust"),
            ("POST", "/api/products/bulk-delete"),
            ("GET", "/api/categories"),
            ("POST", "/api/stock/adjust"),
            ("GET", "/api/stock/movements"),
            ("GET", "/api/dashboard/stats"),
            ("GET", "/api/dashboard/low-stock"),
            ("GET", "/api/dashboard/recent-activities"),
            ("GET", "/api/auth/me"),
            ("GET", "/api/auth/users"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid or expired token"

    def test_health_is_public(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["message"] == "Server is running!"
        assert body["database"]["status"] == "healthy"


# =============================================================================
# STAFF DENIED ADMIN OPERATIONS - 403
# =============================================================================


class TestStaffDeniedAdminOperations:

    def test_cannot_create_product(self, client, staff_headers, category):
        resp = client.post(
            "/api/products",
            json={"sku": "X-1", "name": "X", "category_id": category.id, "unit_price": 1},
            headers=staff_headers,
        )
        assert resp.status_code == 403
        assert resp.get_json()["required_roles"] == ["admin"]

    def test_cannot_delete_product(self, client, staff_headers, product):
        resp = client.delete(f"/api/products/{product.id}", headers=staff_headers)
        assert resp.status_code == 403
        assert db.session.get(Product, product.id) is not None

    def test_cannot_bulk_adjust(self, client, staff_headers, product):
        resp = client.post(
            "/api/products/bulk-adjust",
            json={"adjustments": [{"product_id": product.id, "quantity": 1, "type": "stock_in", "reason": "r"}]},
            headers=staff_headers,
        )
        assert resp.status_code == 403

    def test_cannot_delete_category(self, client, staff_headers, category):
        resp = client.delete(f"/api/categories/{category.id}", headers=staff_headers)
        assert resp.status_code == 403

    def test_cannot_list_users(self, client, staff_headers):
        resp = client.get("/api/auth/users", headers=staff_headers)
        assert resp.status_code == 403

    def test_can_adjust_stock(self, client, staff_headers, product, staff_user):
        resp = client.post(
            "/api/stock/adjust",
            json={"product_id": product.id, "type": "stock_out", "quantity": 2, "reason": "sale"},
            headers=staff_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["movement"]["performed_by"]["id"] == staff_user.id


# =============================================================================
# AUTH
# =============================================================================


class TestAuth:

    def test_login_me_logout(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"email": "ADMIN@stock.local", "password": PASSWORD})
        assert resp.status_code == 200
        token = resp.get_json()["token"]
        headers = {"Authorization": f"Bearer {token}"}

        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.get_json()["email"] == "admin@stock.local"

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_bad_password(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"email": "admin@stock.local", "password": "wrong-password"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid credentials"

    def test_register_defaults_to_staff(self, client, db_session):
        resp = client.post(
            "/api/auth/register",
            json={"name": "New Person", "email": "new@stock.local", "password": PASSWORD},
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["user"]["role"] == "staff"
        assert body["token"]

    def test_register_duplicate_email(self, client, staff_user):
        resp = client.post(
            "/api/auth/register",
            json={"name": "Again", "email": "staff@stock.local", "password": PASSWORD},
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "User already exists"

    def test_register_weak_password(self, client, db_session):
        resp = client.post(
            "/api/auth/register",
            json={"name": "Weak", "email": "weak@stock.local", "password": "short"},
        )
        assert resp.status_code == 400

    def test_deactivated_user_loses_session(self, client, admin_headers, staff_user, staff_headers):
        resp = client.put(f"/api/auth/users/{staff_user.id}", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert client.get("/api/auth/me", headers=staff_headers).status_code == 401


# =============================================================================
# STOCK
# =============================================================================


class TestStockAdjustRoute:

    def test_restock(self, client, admin_headers, product):
        resp = client.post(
            "/api/stock/adjust",
            json={"product_id": product.id, "type": "stock_in", "quantity": 20, "reason": "restock"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["product"]["quantity"] == 25
        assert body["product"]["is_low_stock"] is False
        assert body["movement"]["previous_quantity"] == 5
        assert body["movement"]["new_quantity"] == 25
        assert body["movement"]["type"] == "stock_in"

    def test_overdraw_floors(self, client, admin_headers, product):
        resp = client.post(
            "/api/stock/adjust",
            json={"product_id": product.id, "type": "stock_out", "quantity": 9, "reason": "sale"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["product"]["quantity"] == 0

    def test_unknown_product(self, client, admin_headers, db_session):
        resp = client.post(
            "/api/stock/adjust",
            json={"product_id": 999, "type": "stock_in", "quantity": 1, "reason": "r"},
            headers=admin_headers,
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Product not found"

    @pytest.mark.parametrize(
        "patch,error",
        [
            ({"type": "teleport"}, "Invalid adjustment type"),
            ({"quantity": 1.5}, "Invalid quantity"),
            ({"quantity": 10**20}, "Invalid quantity"),
            ({"reason": ""}, "Reason is required"),
        ],
    )
    def test_invalid_input(self, client, admin_headers, product, patch, error):
        body = {"product_id": product.id, "type": "stock_in", "quantity": 1, "reason": "r", **patch}
        resp = client.post("/api/stock/adjust", json=body, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == error

    def test_out_of_range_product_id(self, client, admin_headers, db_session):
        resp = client.post(
            "/api/stock/adjust",
            json={"product_id": 10**20, "type": "stock_in", "quantity": 1, "reason": "r"},
            headers=admin_headers,
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Product not found"

    def test_out_of_range_ids_in_reads(self, client, admin_headers, product):
        huge = 10**20
        assert client.get(f"/api/products/{huge}", headers=admin_headers).status_code == 404
        assert client.get(f"/api/products/{huge}/ledger", headers=admin_headers).status_code == 404

        resp = client.get(f"/api/stock/movements?product_id={huge}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["total"] == 0

        resp = client.get(f"/api/products?category_id={huge}&page={huge}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["products"] == []

    def test_movements_listing(self, client, admin_headers, product):
        for qty in (1, 2):
            client.post(
                "/api/stock/adjust",
                json={"product_id": product.id, "type": "stock_in", "quantity": qty, "reason": "r"},
                headers=admin_headers,
            )

        resp = client.get(f"/api/stock/movements?product_id={product.id}&limit=1", headers=admin_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["total"] == 2
        assert body["total_pages"] == 2
        assert body["current_page"] == 1
        assert body["movements"][0]["quantity"] == 2

    def test_product_ledger(self, client, admin_headers, product):
        client.post(
            "/api/stock/adjust",
            json={"product_id": product.id, "type": "adjustment", "quantity": 3, "reason": "count"},
            headers=admin_headers,
        )
        resp = client.get(f"/api/products/{product.id}/ledger", headers=admin_headers)
        assert resp.status_code == 200
        assert [m["new_quantity"] for m in resp.get_json()["movements"]] == [3]


class TestBulkAdjustRoute:

    def test_requires_array(self, client, admin_headers, db_session):
        for body in ({}, {"adjustments": []}, {"adjustments": "nope"}):
            resp = client.post("/api/products/bulk-adjust", json=body, headers=admin_headers)
            assert resp.status_code == 400
            assert resp.get_json()["error"] == "Adjustments array is required"

    def test_insufficient_stock_item(self, client, admin_headers, make_product):
        p = make_product("LOW-2", quantity=2)

        resp = client.post(
            "/api/products/bulk-adjust",
            json={"adjustments": [{"product_id": p.id, "quantity": 3, "type": "stock_out", "reason": "sale"}]},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.get_json()["results"] == [
            {"product_id": p.id, "success": False, "message": "Insufficient stock"}
        ]
        assert p.quantity == 2

    def test_oversized_values_are_reported_per_item(self, client, admin_headers, product):
        resp = client.post(
            "/api/products/bulk-adjust",
            json={
                "adjustments": [
                    {"product_id": product.id, "quantity": 10**20, "type": "stock_in", "reason": "r"},
                    {"product_id": 10**20, "quantity": 1, "type": "stock_in", "reason": "r"},
                    {"product_id": product.id, "quantity": 1, "type": "stock_in", "reason": "r"},
                ]
            },
            headers=admin_headers,
        )

        assert resp.status_code == 200
        results = resp.get_json()["results"]
        assert [r["success"] for r in results] == [False, False, True]
        assert results[0]["message"] == "Invalid quantity"
        assert results[1]["message"] == "Product not found"
        assert results[2]["new_quantity"] == 6


# =============================================================================
# DELETES
# =============================================================================


class TestDeleteRoutes:

    def test_delete_product(self, client, admin_headers, product):
        product_id = product.id
        client.post(
            "/api/stock/adjust",
            json={"product_id": product_id, "type": "stock_in", "quantity": 1, "reason": "r"},
            headers=admin_headers,
        )

        resp = client.delete(f"/api/products/{product_id}", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.get_json()["deleted_movements"] == 1
        assert client.get(f"/api/products/{product_id}", headers=admin_headers).status_code == 404

    def test_delete_missing_product(self, client, admin_headers, db_session):
        assert client.delete("/api/products/9999", headers=admin_headers).status_code == 404

    def test_bulk_delete(self, client, admin_headers, make_product):
        ids = [make_product(f"BD-{i}").id for i in range(3)]

        resp = client.post("/api/products/bulk-delete", json={"product_ids": ids[:2]}, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.get_json()["deleted_products"] == 2
        assert db.session.query(Product).count() == 1

    def test_bulk_delete_requires_int_array(self, client, admin_headers, db_session):
        resp = client.post("/api/products/bulk-delete", json={"product_ids": ["1"]}, headers=admin_headers)
        assert resp.status_code == 400

    def test_bulk_delete_ignores_out_of_range_ids(self, client, admin_headers, product):
        resp = client.post(
            "/api/products/bulk-delete", json={"product_ids": [10**20, -(10**20)]}, headers=admin_headers
        )

        assert resp.status_code == 200
        assert resp.get_json()["deleted_products"] == 0
        assert db.session.query(Product).count() == 1

    def test_delete_out_of_range_ids(self, client, admin_headers, db_session):
        huge = 10**20
        assert client.delete(f"/api/products/{huge}", headers=admin_headers).status_code == 404
        assert client.delete(f"/api/categories/{huge}", headers=admin_headers).status_code == 404
        assert client.delete(f"/api/auth/users/{huge}", headers=admin_headers).status_code == 404

    def test_delete_category_cascades(self, client, admin_headers, product):
        category_id = product.category_id
        client.post(
            "/api/stock/adjust",
            json={"product_id": product.id, "type": "stock_in", "quantity": 1, "reason": "r"},
            headers=admin_headers,
        )

        resp = client.delete(f"/api/categories/{category_id}", headers=admin_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["deleted_products"] == 1
        assert body["deleted_movements"] == 1
        assert db.session.query(StockMovement).count() == 0

    def test_cannot_delete_self(self, client, admin_headers, admin_user):
        resp = client.delete(f"/api/auth/users/{admin_user.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Cannot delete your own account"

    def test_delete_user_keeps_movements(self, client, admin_headers, staff_user, staff_headers, product):
        staff_id = staff_user.id
        client.post(
            "/api/stock/adjust",
            json={"product_id": product.id, "type": "stock_in", "quantity": 1, "reason": "r"},
            headers=staff_headers,
        )

        resp = client.delete(f"/api/auth/users/{staff_id}", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.get_json()["updated_movements"] == 1
        movement = db.session.query(StockMovement).one()
        assert movement.performed_by_id is None
        assert movement.notes == f"User deleted - original user: {staff_id}"

    def test_delete_missing_user(self, client, admin_headers):
        assert client.delete("/api/auth/users/4040", headers=admin_headers).status_code == 404


# =============================================================================
# CATALOG CRUD
# =============================================================================


class TestCatalogRoutes:

    def test_create_product(self, client, admin_headers, category):
        resp = client.post(
            "/api/products",
            json={
                "sku": "new-01",
                "name": "Widget",
                "category_id": category.id,
                "unit_price": "4.99",
                "quantity": 3,
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["sku"] == "NEW-01"
        assert body["quantity"] == 3
        assert body["unit_price"] == pytest.approx(4.99)
        assert body["category"]["id"] == category.id

    def test_create_product_duplicate_sku(self, client, admin_headers, product):
        resp = client.post(
            "/api/products",
            json={"sku": "bolt-001", "name": "Dup", "category_id": product.category_id, "unit_price": 1},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_create_product_unknown_category(self, client, admin_headers, db_session):
        resp = client.post(
            "/api/products",
            json={"sku": "ORPHAN", "name": "Orphan", "category_id": 555, "unit_price": 1},
            headers=admin_headers,
        )
        assert resp.status_code == 404

    @pytest.mark.parametrize(
        "patch",
        [
            {"unit_price": -1},
            {"quantity": -5},
            {"low_stock_threshold": 0},
            {"quantity": 2.5},
            {"colour": "red"},
            {"unit_price": "1e30"},
            {"unit_price": 1e30},
            {"quantity": 10**20},
            {"category_id": 10**20},
        ],
    )
    def test_create_product_validation(self, client, admin_headers, category, patch):
        body = {"sku": "VAL-1", "name": "Val", "category_id": category.id, "unit_price": 1, **patch}
        resp = client.post("/api/products", json=body, headers=admin_headers)
        assert resp.status_code == 400

    def test_update_cannot_set_quantity(self, client, admin_headers, product):
        resp = client.put(f"/api/products/{product.id}", json={"quantity": 500}, headers=admin_headers)
        assert resp.status_code == 400
        assert product.quantity == 5

    def test_update_product(self, client, admin_headers, product):
        resp = client.put(
            f"/api/products/{product.id}",
            json={"name": "Hex Bolt", "low_stock_threshold": 3},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["name"] == "Hex Bolt"
        assert body["is_low_stock"] is False

    def test_category_crud(self, client, admin_headers, staff_headers, db_session):
        created = client.post("/api/categories", json={"name": "Garden"}, headers=admin_headers)
        assert created.status_code == 201
        category_id = created.get_json()["id"]

        dup = client.post("/api/categories", json={"name": "Garden"}, headers=admin_headers)
        assert dup.status_code == 409

        updated = client.put(
            f"/api/categories/{category_id}", json={"description": "Outdoor"}, headers=admin_headers
        )
        assert updated.get_json()["description"] == "Outdoor"

        listing = client.get("/api/categories", headers=staff_headers)
        assert [c["name"] for c in listing.get_json()] == ["Garden"]


# =============================================================================
# DASHBOARD
# =============================================================================


class TestDashboardRoutes:

    def test_stats(self, client, staff_headers, product):
        resp = client.get("/api/dashboard/stats", headers=staff_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["total_products"] == 1
        assert body["low_stock_products"] == 1
        assert body["total_value"] == pytest.approx(12.5)

    def test_low_stock(self, client, staff_headers, product):
        resp = client.get("/api/dashboard/low-stock?limit=5", headers=staff_headers)
        assert [p["sku"] for p in resp.get_json()] == ["BOLT-001"]

    def test_recent_activities(self, client, admin_headers, product):
        client.post(
            "/api/stock/adjust",
            json={"product_id": product.id, "type": "stock_in", "quantity": 1, "reason": "r"},
            headers=admin_headers,
        )
        resp = client.get("/api/dashboard/recent-activities", headers=admin_headers)
        assert resp.status_code == 200
        assert len(resp.get_json()) == 1
