"""
HTTP API tests through the Flask test client.

Verifies:
- Write routes require the X-Principal-Id header (401)
- Domain errors map to 400 / 404 / 409
- The invoice flow end to end
"""

import uuid

import pytest

from garment_ledger.services import inventory_service


# =============================================================================
# IDENTITY (401)
# =============================================================================


class TestPrincipalRequired:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/categories"),
            ("POST", "/api/sizes"),
            ("POST", "/api/colors"),
            ("POST", "/api/products"),
            ("POST", "/api/inventory/adjust"),
            ("POST", "/api/inventory/set"),
            ("POST", "/api/invoices"),
            ("PUT", "/api/settings"),
        ],
    )
    def test_requires_principal(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path, json={})
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_malformed_principal_rejected(self, client, db_session):
        resp = client.post("/api/categories", json={"name": "X"}, headers={"X-Principal-Id": "nobody"})
        assert resp.status_code == 401

    def test_reads_are_open(self, client, db_session):
        assert client.get("/api/products").status_code == 200
        assert client.get("/api/invoices").status_code == 200


# =============================================================================
# SYSTEM
# =============================================================================


def test_health(client, db_session):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "ok"
    assert resp.json["checks"]["database"]["status"] == "healthy"


# =============================================================================
# CATALOG
# =============================================================================


class TestCatalogRoutes:

    def test_create_and_list_sizes(self, client, db_session, headers):
        resp = client.post("/api/sizes", json={"name": "M", "sort_order": 3}, headers=headers)
        assert resp.status_code == 201

        resp = client.get("/api/sizes")
        assert [s["name"] for s in resp.json["items"]] == ["M"]

    def test_duplicate_color_is_conflict(self, client, db_session, headers, colors):
        resp = client.post("/api/colors", json={"name": "Red"}, headers=headers)
        assert resp.status_code == 409

    def test_bad_hex_code_is_bad_request(self, client, db_session, headers):
        resp = client.post("/api/colors", json={"name": "Teal", "hex_code": "teal"}, headers=headers)
        assert resp.status_code == 400

    def test_unknown_field_rejected(self, client, db_session, headers):
        resp = client.post("/api/categories", json={"name": "Shirts", "owner": "me"}, headers=headers)
        assert resp.status_code == 400

    def test_delete_missing_category_is_not_found(self, client, db_session, headers):
        resp = client.delete(f"/api/categories/{uuid.uuid4()}", headers=headers)
        assert resp.status_code == 404


class TestProductRoutes:

    def test_create_product_with_variants(self, client, db_session, headers, sizes, colors):
        resp = client.post("/api/products", json={
            "name": "Linen Kurta",
            "price_cents": 89900,
            "sku": "KURTA-1",
            "size_ids": [str(sizes["M"].id), str(sizes["L"].id)],
            "color_ids": [str(colors["Blue"].id)],
        }, headers=headers)
        assert resp.status_code == 201
        product_id = resp.json["id"]

        resp = client.get(f"/api/products/{product_id}/variants")
        assert resp.json["count"] == 2

    def test_missing_price_is_bad_request(self, client, db_session, headers):
        resp = client.post("/api/products", json={"name": "No Price"}, headers=headers)
        assert resp.status_code == 400

    def test_duplicate_sku_is_conflict(self, client, db_session, headers, shirt):
        resp = client.post("/api/products", json={"name": "Copy", "price_cents": 1, "sku": "SHIRT-001"}, headers=headers)
        assert resp.status_code == 409

    def test_size_price_override_flow(self, client, db_session, headers, shirt, sizes):
        m_id = str(sizes["M"].id)

        resp = client.put(f"/api/products/{shirt.id}/prices/{m_id}", json={"price_cents": 60000}, headers=headers)
        assert resp.status_code == 200

        resp = client.get(f"/api/products/{shirt.id}/price", query_string={"size_id": m_id})
        assert resp.json["price_cents"] == 60000

        resp = client.get(f"/api/products/{shirt.id}/prices")
        assert len(resp.json["overrides"]) == 1

        resp = client.delete(f"/api/products/{shirt.id}/prices/{m_id}", headers=headers)
        assert resp.status_code == 200
        resp = client.delete(f"/api/products/{shirt.id}/prices/{m_id}", headers=headers)
        assert resp.status_code == 404

    def test_stock_projection_is_not_client_writable(self, client, db_session, headers, scarf):
        resp = client.put(f"/api/products/{scarf.id}", json={"quantity_in_stock": 50}, headers=headers)
        assert resp.status_code == 400

        resp = client.post("/api/products", json={"name": "Stole", "price_cents": 100, "quantity_in_stock": 5}, headers=headers)
        assert resp.status_code == 400

        assert client.get(f"/api/products/{scarf.id}").json["quantity_in_stock"] == 0

    def test_unknown_product_is_not_found(self, client, db_session):
        assert client.get(f"/api/products/{uuid.uuid4()}").status_code == 404


# =============================================================================
# INVENTORY
# =============================================================================


class TestInventoryRoutes:

    def test_adjust_and_read(self, client, db_session, headers, shirt, sizes, colors):
        body = {
            "product_id": str(shirt.id),
            "size_id": str(sizes["S"].id),
            "color_id": str(colors["Red"].id),
            "delta": 4,
        }
        resp = client.post("/api/inventory/adjust", json=body, headers=headers)
        assert resp.status_code == 200
        assert resp.json["quantity"] == 4

        resp = client.get(f"/api/inventory/{shirt.id}")
        assert resp.json["total_stock"] == 4

    def test_oversell_adjustment_reports_shortfall(self, client, db_session, headers, scarf):
        resp = client.post(
            "/api/inventory/adjust",
            json={"product_id": str(scarf.id), "delta": -3},
            headers=headers,
        )
        assert resp.status_code == 409
        assert resp.json["details"]["shortfall"] == 3

    def test_refresh_totals(self, client, db_session, headers, scarf, stock):
        stock(scarf, quantity=6)
        resp = client.post("/api/inventory/refresh-totals", json={}, headers=headers)
        assert resp.json["totals"][str(scarf.id)] == 6


# =============================================================================
# INVOICES
# =============================================================================


class TestInvoiceRoutes:

    def test_create_invoice(self, client, db_session, headers, principal, shirt, sizes, colors, stock):
        m, red = sizes["M"], colors["Red"]
        stock(shirt, m, red, 3)
        client.put(f"/api/products/{shirt.id}/prices/{m.id}", json={"price_cents": 60000}, headers=headers)

        resp = client.post("/api/invoices", json={
            "lines": [{"product_id": str(shirt.id), "size_id": str(m.id), "color_id": str(red.id), "quantity": 2}],
            "tax_rate_bps": 1800,
            "customer_name": "Priya",
        }, headers=headers)

        assert resp.status_code == 201
        invoice = resp.json["invoice"]
        assert invoice["invoice_number"] == "INV-000001"
        assert invoice["grand_total_cents"] == 141600
        assert invoice["created_by"] == str(principal)
        assert invoice["items"][0]["size_name"] == "M"
        assert inventory_service.get_quantity(shirt.id, m.id, red.id) == 1

    def test_insufficient_stock_is_conflict(self, client, db_session, headers, scarf):
        resp = client.post("/api/invoices", json={
            "lines": [{"product_id": str(scarf.id), "quantity": 1}],
        }, headers=headers)
        assert resp.status_code == 409
        assert resp.json["details"]["available"] == 0

    def test_pending_without_date_is_conflict(self, client, db_session, headers, scarf, stock):
        stock(scarf, quantity=1)
        resp = client.post("/api/invoices", json={
            "lines": [{"product_id": str(scarf.id), "quantity": 1}],
            "payment_status": "pending",
        }, headers=headers)
        assert resp.status_code == 409

    def test_missing_lines_is_bad_request(self, client, db_session, headers):
        resp = client.post("/api/invoices", json={}, headers=headers)
        assert resp.status_code == 400

    def test_payment_document_and_delete(self, client, db_session, headers, scarf, stock):
        stock(scarf, quantity=1)
        resp = client.post("/api/invoices", json={
            "lines": [{"product_id": str(scarf.id), "quantity": 1}],
        }, headers=headers)
        invoice_id = resp.json["invoice"]["id"]

        resp = client.patch(f"/api/invoices/{invoice_id}/payment", json={
            "payment_status": "pending", "expected_payment_date": "2026-01-15",
        }, headers=headers)
        assert resp.status_code == 200
        assert resp.json["invoice"]["expected_payment_date"] == "2026-01-15"

        resp = client.get("/api/invoices/overdue", query_string={"as_of": "2026-02-01"})
        assert [i["id"] for i in resp.json["items"]] == [invoice_id]

        resp = client.put(f"/api/invoices/{invoice_id}/document", json={"pdf_url": "https://files.example/a.pdf"}, headers=headers)
        assert resp.json["invoice"]["pdf_url"] == "https://files.example/a.pdf"

        resp = client.delete(f"/api/invoices/{invoice_id}", headers=headers)
        assert resp.status_code == 200
        assert resp.json["restored_lines"] == 1
        assert inventory_service.get_quantity(scarf.id, None, None) == 1
        assert client.get(f"/api/invoices/{invoice_id}").status_code == 404

    def test_preview_and_next_number(self, client, db_session, scarf):
        resp = client.post("/api/invoices/preview", json={
            "lines": [{"product_id": str(scarf.id), "quantity": 2}],
            "discount_type": "fixed",
            "discount_value": 4000,
        })
        assert resp.status_code == 200
        assert resp.json["totals"]["grand_total_cents"] == 20000

        resp = client.get("/api/invoices/next-number")
        assert resp.json["next_invoice_number"] == "INV-000001"


# =============================================================================
# SETTINGS
# =============================================================================


class TestSettingsRoutes:

    def test_defaults_then_update(self, client, db_session, headers):
        resp = client.get("/api/settings")
        assert resp.json["tax_rate_bps"] == 1800

        resp = client.put("/api/settings", json={"tax_rate_bps": 1200, "store_name": "Kapda Ghar"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json["tax_rate_bps"] == 1200
        assert resp.json["store_name"] == "Kapda Ghar"

    def test_out_of_range_tax_rejected(self, client, db_session, headers):
        resp = client.put("/api/settings", json={"tax_rate_bps": 10001}, headers=headers)
        assert resp.status_code == 400
