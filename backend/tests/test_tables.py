"""
Generic table API tests.

Verifies:
- Unauthenticated requests return 401
- Bulk select, insert, update and delete round trip through the API
- Partner profiles only see and write their own rows
- Stock edits always leave a movement behind
- Every write is journaled in activity_log
"""

import pytest

from eno.extensions import db
from eno.models import ActivityLogEntry, Product, StockMovement


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/tables/partners"),
            ("POST", "/api/tables/products"),
            ("PATCH", "/api/tables/products/x"),
            ("DELETE", "/api/tables/transactions/x"),
            ("POST", "/api/rpc/generate_partner_code"),
            ("GET", "/api/realtime/products"),
            ("GET", "/api/auth/session"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_rejects_unknown_token(self, client, db_session):
        resp = client.get("/api/tables/partners", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


class TestCrud:

    def test_insert_select_update_delete_transaction(self, client, ceo_headers):
        resp = client.post("/api/tables/transactions", json={
            "type": "income", "amount": 15000, "category": "Divers", "operation_date": "2026-03-02",
        }, headers=ceo_headers)
        assert resp.status_code == 201
        row = resp.json["row"]
        assert row["amount"] == 15000.0
        assert row["operation_date"] == "2026-03-02"
        assert row["created_at"].endswith("Z")

        resp = client.get("/api/tables/transactions", headers=ceo_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 1

        resp = client.patch(f"/api/tables/transactions/{row['id']}", json={"amount": 20000}, headers=ceo_headers)
        assert resp.status_code == 200
        assert resp.json["row"]["amount"] == 20000.0

        resp = client.delete(f"/api/tables/transactions/{row['id']}", headers=ceo_headers)
        assert resp.status_code == 200
        assert resp.json == {"deleted": row["id"]}
        assert client.get("/api/tables/transactions", headers=ceo_headers).json["count"] == 0

    def test_unknown_table_is_404(self, client, ceo_headers):
        assert client.get("/api/tables/nope", headers=ceo_headers).status_code == 404

    def test_validation_errors_are_400(self, client, ceo_headers):
        resp = client.post("/api/tables/transactions", json={
            "type": "gift", "amount": 10, "operation_date": "2026-03-02",
        }, headers=ceo_headers)
        assert resp.status_code == 400
        assert "income or expense" in resp.json["error"]

        resp = client.post("/api/tables/transactions", json={"type": "income"}, headers=ceo_headers)
        assert resp.status_code == 400
        assert "Missing required fields" in resp.json["error"]

    def test_filters_order_and_limit(self, client, ceo_headers):
        for day in ("2026-03-03", "2026-03-01", "2026-03-02"):
            client.post("/api/tables/standard_orders", json={
                "delivery_amount": 2000, "operation_date": day,
            }, headers=ceo_headers)
        resp = client.get("/api/tables/standard_orders?order=operation_date&desc=1&limit=2", headers=ceo_headers)
        days = [r["operation_date"] for r in resp.json["rows"]]
        assert days == ["2026-03-03", "2026-03-02"]

        resp = client.get("/api/tables/standard_orders?operation_date=2026-03-01", headers=ceo_headers)
        assert resp.json["count"] == 1

        resp = client.get("/api/tables/standard_orders?limit=abc", headers=ceo_headers)
        assert resp.status_code == 400

    def test_writes_are_journaled(self, client, ceo_headers, partner_a):
        client.patch(f"/api/tables/partners/{partner_a.id}", json={"phone": "90 00 00 00"}, headers=ceo_headers)
        entry = db.session.query(ActivityLogEntry).filter_by(action="partner_updated").one()
        assert entry.details["id"] == partner_a.id
        assert entry.details["fields"] == ["phone"]
        assert entry.user_full_name == "Eno Ceo"


class TestRoleAccess:

    def test_secretary_cannot_read_accounting(self, client, secretary_headers, ceo_headers):
        client.post("/api/tables/transactions", json={
            "type": "expense", "amount": 500, "operation_date": "2026-03-02",
        }, headers=ceo_headers)
        resp = client.get("/api/tables/transactions", headers=secretary_headers)
        assert resp.status_code == 200
        assert resp.json["rows"] == []

    def test_secretary_cannot_write_accounting(self, client, secretary_headers):
        resp = client.post("/api/tables/transactions", json={
            "type": "expense", "amount": 500, "operation_date": "2026-03-02",
        }, headers=secretary_headers)
        assert resp.status_code == 403

    def test_accountant_manages_salaries(self, client, accountant_headers):
        resp = client.post("/api/tables/salaries", json={
            "beneficiary_name": "Koffi", "amount": 75000, "payment_date": "2026-03-31",
        }, headers=accountant_headers)
        assert resp.status_code == 201

    def test_salary_needs_employee_or_name(self, client, accountant_headers):
        resp = client.post("/api/tables/salaries", json={
            "amount": 75000, "payment_date": "2026-03-31",
        }, headers=accountant_headers)
        assert resp.status_code == 400

    def test_profiles_are_owner_scoped(self, client, secretary, ceo, secretary_headers, ceo_headers):
        rows = client.get("/api/tables/profiles", headers=secretary_headers).json["rows"]
        assert [r["id"] for r in rows] == [secretary.id]
        assert "password_hash" not in rows[0]

        rows = client.get("/api/tables/profiles", headers=ceo_headers).json["rows"]
        assert {r["id"] for r in rows} == {secretary.id, ceo.id}

    def test_cannot_demote_self(self, client, ceo, ceo_headers):
        resp = client.patch(f"/api/tables/profiles/{ceo.id}", json={"role": "secretary"}, headers=ceo_headers)
        assert resp.status_code == 400


class TestPartnerScope:

    @pytest.fixture
    def products(self, client, ceo_headers, partner_a, partner_b):
        own = client.post("/api/tables/products", json={
            "partner_id": partner_a.id, "name": "Savon", "stock": 5, "alert_threshold": 10,
        }, headers=ceo_headers).json["row"]
        other = client.post("/api/tables/products", json={
            "partner_id": partner_b.id, "name": "Pagne", "stock": 3,
        }, headers=ceo_headers).json["row"]
        return own, other

    def test_partner_sees_only_own_rows(self, client, partner_headers, products, partner_a):
        own, other = products
        rows = client.get("/api/tables/products", headers=partner_headers).json["rows"]
        assert [r["id"] for r in rows] == [own["id"]]

        partners = client.get("/api/tables/partners", headers=partner_headers).json["rows"]
        assert [p["id"] for p in partners] == [partner_a.id]

        movements = client.get("/api/tables/stock_movements", headers=partner_headers).json["rows"]
        assert {m["product_id"] for m in movements} == {own["id"]}

    def test_partner_cannot_touch_other_partner(self, client, partner_headers, products, partner_b):
        _, other = products
        resp = client.patch(f"/api/tables/products/{other['id']}", json={"name": "x"}, headers=partner_headers)
        assert resp.status_code == 404

        resp = client.post("/api/tables/products", json={
            "partner_id": partner_b.id, "name": "Intrus",
        }, headers=partner_headers)
        assert resp.status_code == 403

    def test_partner_cannot_read_accounting(self, client, partner_headers, products):
        assert client.get("/api/tables/transactions", headers=partner_headers).json["rows"] == []
        assert client.get("/api/tables/salaries", headers=partner_headers).json["rows"] == []


class TestStockThroughMovements:

    def test_initial_stock_is_an_adjustment(self, client, ceo_headers, partner_a):
        row = client.post("/api/tables/products", json={
            "partner_id": partner_a.id, "name": "Savon", "stock": 5,
        }, headers=ceo_headers).json["row"]
        assert row["stock"] == 5
        movement = db.session.query(StockMovement).filter_by(product_id=row["id"]).one()
        assert (movement.type, movement.previous_stock, movement.new_stock) == ("adjustment", 0, 5)
        assert movement.reason == "Stock initial"

    def test_stock_edit_records_correction(self, client, ceo_headers, partner_a):
        row = client.post("/api/tables/products", json={
            "partner_id": partner_a.id, "name": "Savon", "stock": 5,
        }, headers=ceo_headers).json["row"]
        resp = client.patch(f"/api/tables/products/{row['id']}", json={"stock": 2}, headers=ceo_headers)
        assert resp.json["row"]["stock"] == 2

        movements = db.session.query(StockMovement).filter_by(product_id=row["id"]).order_by(StockMovement.created_at).all()
        assert movements[-1].reason == "Correction manuelle"
        assert movements[-1].quantity == 3

    def test_movements_are_append_only(self, client, ceo_headers, partner_a):
        row = client.post("/api/tables/products", json={
            "partner_id": partner_a.id, "name": "Savon", "stock": 5,
        }, headers=ceo_headers).json["row"]
        movement = client.get("/api/tables/stock_movements", headers=ceo_headers).json["rows"][0]
        resp = client.delete(f"/api/tables/stock_movements/{movement['id']}", headers=ceo_headers)
        assert resp.status_code == 403

    def test_negative_stock_rejected(self, client, ceo_headers, partner_a):
        resp = client.post("/api/tables/products", json={
            "partner_id": partner_a.id, "name": "Savon", "stock": -1,
        }, headers=ceo_headers)
        assert resp.status_code == 400

    def test_delete_product_removes_movements(self, client, ceo_headers, partner_a):
        row = client.post("/api/tables/products", json={
            "partner_id": partner_a.id, "name": "Savon", "stock": 5,
        }, headers=ceo_headers).json["row"]
        assert client.delete(f"/api/tables/products/{row['id']}", headers=ceo_headers).status_code == 200
        db.session.expire_all()
        assert db.session.get(Product, row["id"]) is None
        assert db.session.query(StockMovement).filter_by(product_id=row["id"]).count() == 0
