"""
Catalog tests: status derivation, CRUD, filtering, pagination and role gates.
"""

from decimal import Decimal

import pytest
from minierp.models import Product, compute_stock_status

from conftest import make_product


def product_body(**overrides):
    body = {
        "name": "Packing Tape",
        "sku": "tape-01",
        "category": "Supplies",
        "currentStock": 40,
        "reorderLevel": 10,
        "reorderQuantity": 50,
        "unitPrice": 3.99,
        "supplier": "Acme Supplies",
        "location": "Aisle 3",
    }
    body.update(overrides)
    return body


class TestStockStatus:
    @pytest.mark.parametrize("stock,reorder,status,expected", [
        (0, 10, "in-stock", "out-of-stock"),
        (0, 10, "discontinued", "out-of-stock"),
        (1, 10, "in-stock", "low-stock"),
        (10, 10, "in-stock", "low-stock"),
        (11, 10, "low-stock", "in-stock"),
        (11, 10, "discontinued", "discontinued"),
        (5, 10, "discontinued", "low-stock"),
        (3, 0, "out-of-stock", "in-stock"),
    ])
    def test_compute_stock_status(self, stock, reorder, status, expected):
        assert compute_stock_status(stock, reorder, status) == expected


class TestCreateProduct:
    def test_manager_creates_product(self, client, manager_headers):
        response = client.post("/api/inventory", json=product_body(), headers=manager_headers)

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["sku"] == "TAPE-01"
        assert data["status"] == "in-stock"
        assert data["unitPrice"] == 3.99
        assert data["currentStock"] == 40
        assert data["lastRestocked"] is not None

    def test_zero_stock_product_is_out_of_stock(self, client, admin_headers):
        response = client.post("/api/inventory", json=product_body(currentStock=0), headers=admin_headers)

        assert response.status_code == 201
        assert response.get_json()["data"]["status"] == "out-of-stock"
        assert response.get_json()["data"]["lastRestocked"] is None

    def test_defaults_applied(self, client, admin_headers):
        body = product_body()
        for key in ("currentStock", "reorderLevel", "reorderQuantity"):
            body.pop(key)

        response = client.post("/api/inventory", json=body, headers=admin_headers)

        data = response.get_json()["data"]
        assert data["currentStock"] == 0
        assert data["reorderLevel"] == 10
        assert data["reorderQuantity"] == 50

    def test_duplicate_sku_conflicts_case_insensitively(self, client, admin_headers, product_a):
        response = client.post("/api/inventory", json=product_body(sku="sku-a"), headers=admin_headers)

        assert response.status_code == 409
        assert response.get_json()["error"] == "SKU already exists"

    def test_missing_required_fields(self, client, admin_headers):
        response = client.post("/api/inventory", json={"name": "Only a name"}, headers=admin_headers)

        assert response.status_code == 400
        assert "Missing required fields" in response.get_json()["error"]
        assert "unitPrice" in response.get_json()["error"]

    @pytest.mark.parametrize("overrides", [
        {"currentStock": -1},
        {"unitPrice": -0.01},
        {"reorderQuantity": 0},
        {"currentStock": 2.5},
        {"status": "lost"},
        {"unitPrice": "abc"},
        {"unitPrice": "1e30"},
        {"unitPrice": "10000000000"},
        {"warehouse": "B"},
    ])
    def test_invalid_values_rejected(self, client, admin_headers, overrides):
        response = client.post("/api/inventory", json=product_body(**overrides), headers=admin_headers)
        assert response.status_code == 400

    @pytest.mark.parametrize("headers_fixture", ["staff_headers", "viewer_headers"])
    def test_non_privileged_roles_cannot_create(self, client, request, headers_fixture, db_session):
        headers = request.getfixturevalue(headers_fixture)

        response = client.post("/api/inventory", json=product_body(), headers=headers)

        assert response.status_code == 403
        assert db_session.query(Product).count() == 0


class TestListProducts:
    @pytest.fixture
    def catalog(self, db_session):
        make_product(db_session, name="Vinyl Record Sleeve", sku="VIN-1", category="Packaging",
                     current_stock=5, supplier="Acme Supplies")
        make_product(db_session, name="Outer Sleeve", sku="SLV-2", category="Packaging",
                     current_stock=0, supplier="Vinyl Depot")
        make_product(db_session, name="Turntable Mat", sku="TTM-3", category="Accessories",
                     current_stock=80, supplier="Spin Co")

    def test_lists_all_with_pagination_meta(self, client, staff_headers, catalog):
        response = client.get("/api/inventory", headers=staff_headers)

        assert response.status_code == 200
        body = response.get_json()
        assert len(body["data"]) == 3
        assert body["pagination"] == {"page": 1, "limit": 20, "total": 3, "pages": 1}

    def test_newest_first(self, client, staff_headers, catalog):
        response = client.get("/api/inventory", headers=staff_headers)
        skus = [p["sku"] for p in response.get_json()["data"]]
        assert skus == ["TTM-3", "SLV-2", "VIN-1"]

    def test_search_matches_name_sku_and_supplier(self, client, viewer_headers, catalog):
        response = client.get("/api/inventory?search=vinyl", headers=viewer_headers)
        skus = sorted(p["sku"] for p in response.get_json()["data"])
        assert skus == ["SLV-2", "VIN-1"]

        response = client.get("/api/inventory?search=ttm", headers=viewer_headers)
        assert [p["sku"] for p in response.get_json()["data"]] == ["TTM-3"]

    def test_search_treats_wildcards_literally(self, client, viewer_headers, catalog):
        response = client.get("/api/inventory?search=%25", headers=viewer_headers)
        assert response.get_json()["data"] == []

    def test_filter_by_category_and_status(self, client, viewer_headers, catalog):
        response = client.get("/api/inventory?category=Packaging&status=out-of-stock", headers=viewer_headers)
        data = response.get_json()["data"]
        assert [p["sku"] for p in data] == ["SLV-2"]

    def test_pagination(self, client, viewer_headers, catalog):
        response = client.get("/api/inventory?page=2&limit=2", headers=viewer_headers)
        body = response.get_json()
        assert [p["sku"] for p in body["data"]] == ["VIN-1"]
        assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}

    def test_limit_is_capped(self, client, viewer_headers, catalog):
        response = client.get("/api/inventory?limit=500", headers=viewer_headers)
        assert response.get_json()["pagination"]["limit"] == 100

    def test_unknown_status_filter_rejected(self, client, viewer_headers, catalog):
        response = client.get("/api/inventory?status=lost", headers=viewer_headers)

        assert response.status_code == 400
        assert "must be one of" in response.get_json()["error"]

    @pytest.mark.parametrize("query", ["page=0", "limit=0", "page=abc", "limit=1.5"])
    def test_bad_paging_rejected(self, client, viewer_headers, query):
        response = client.get(f"/api/inventory?{query}", headers=viewer_headers)
        assert response.status_code == 400


class TestGetUpdateDelete:
    def test_get_product(self, client, viewer_headers, product_a):
        response = client.get(f"/api/inventory/{product_a.id}", headers=viewer_headers)

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["sku"] == "SKU-A"
        assert data["status"] == "low-stock"

    def test_get_missing_product(self, client, viewer_headers):
        response = client.get("/api/inventory/9999", headers=viewer_headers)
        assert response.status_code == 404
        assert response.get_json() == {"success": False, "error": "Product not found"}

    def test_restock_recomputes_status(self, client, manager_headers, product_a):
        response = client.put(
            f"/api/inventory/{product_a.id}",
            json={"currentStock": 60},
            headers=manager_headers,
        )

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["currentStock"] == 60
        assert data["status"] == "in-stock"
        assert data["lastRestocked"] is not None

    def test_raising_reorder_level_marks_low_stock(self, client, manager_headers, product_b):
        response = client.put(
            f"/api/inventory/{product_b.id}",
            json={"reorderLevel": 150},
            headers=manager_headers,
        )
        assert response.get_json()["data"]["status"] == "low-stock"

    def test_discontinued_kept_while_stock_above_reorder_level(self, client, manager_headers, product_b):
        response = client.put(
            f"/api/inventory/{product_b.id}",
            json={"status": "discontinued"},
            headers=manager_headers,
        )
        assert response.get_json()["data"]["status"] == "discontinued"

    def test_update_to_taken_sku_conflicts(self, client, manager_headers, product_a, product_b):
        response = client.put(
            f"/api/inventory/{product_b.id}",
            json={"sku": "sku-a"},
            headers=manager_headers,
        )
        assert response.status_code == 409

    def test_update_price(self, client, admin_headers, product_a, db_session):
        response = client.put(
            f"/api/inventory/{product_a.id}",
            json={"unitPrice": "5.255"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert db_session.get(Product, product_a.id).unit_price == Decimal("5.26")

    def test_staff_cannot_update(self, client, staff_headers, product_a):
        response = client.put(
            f"/api/inventory/{product_a.id}",
            json={"currentStock": 60},
            headers=staff_headers,
        )
        assert response.status_code == 403

    def test_update_missing_product(self, client, admin_headers):
        response = client.put("/api/inventory/9999", json={"currentStock": 1}, headers=admin_headers)
        assert response.status_code == 404

    def test_admin_deletes_product(self, client, admin_headers, product_a, db_session):
        product_id = product_a.id

        response = client.delete(f"/api/inventory/{product_id}", headers=admin_headers)

        assert response.status_code == 200
        assert db_session.get(Product, product_id) is None

    def test_manager_cannot_delete(self, client, manager_headers, product_a):
        response = client.delete(f"/api/inventory/{product_a.id}", headers=manager_headers)

        assert response.status_code == 403
        assert response.get_json()["required_roles"] == ["admin"]

    def test_delete_missing_product(self, client, admin_headers):
        response = client.delete("/api/inventory/9999", headers=admin_headers)
        assert response.status_code == 404
