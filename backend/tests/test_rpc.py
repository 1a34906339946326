"""
Remote procedure tests.

Verifies:
- Partner code generation and the PAT001 numbering
- Cascading partner delete leaves no orphans
- Accounting reset, partner code repair
- Stock movements through record_stock_movement
- User administration procedures
"""

from datetime import datetime

import pytest

from conftest import PASSWORD, auth_headers, make_profile, token_for
from eno.extensions import db
from eno.models import (
    Partner,
    PartnerDeliveryFee,
    Product,
    Profile,
    Salary,
    StandardOrder,
    StockMovement,
    Transaction,
)
from eno.services import session_service


def rpc(client, name, headers, **params):
    return client.post(f"/api/rpc/{name}", json=params, headers=headers)


class TestPartnerCodes:

    def test_first_code_is_pat001(self, client, ceo_headers):
        resp = rpc(client, "generate_partner_code", ceo_headers)
        assert resp.status_code == 200
        assert resp.json == {"data": "PAT001"}

    def test_next_code_follows_highest(self, client, ceo_headers, partner_a, partner_b):
        assert rpc(client, "generate_partner_code", ceo_headers).json["data"] == "PAT003"

    def test_generated_code_creates_partner(self, client, ceo_headers):
        code = rpc(client, "generate_partner_code", ceo_headers).json["data"]
        resp = client.post("/api/tables/partners", json={
            "id": code, "partner_code": code, "name": "Chez Ama",
        }, headers=ceo_headers)
        assert resp.status_code == 201
        assert resp.json["row"]["id"] == "PAT001"
        assert rpc(client, "generate_partner_code", ceo_headers).json["data"] == "PAT002"

    def test_duplicate_code_conflicts(self, client, ceo_headers, partner_a):
        resp = client.post("/api/tables/partners", json={
            "id": "PAT001", "partner_code": "PAT001", "name": "Doublon",
        }, headers=ceo_headers)
        assert resp.status_code == 409

    def test_mismatched_id_and_code_rejected(self, client, ceo_headers):
        resp = client.post("/api/tables/partners", json={
            "id": "PAT001", "partner_code": "PAT002", "name": "Chez Ama",
        }, headers=ceo_headers)
        assert resp.status_code == 400

    def test_partner_profile_cannot_generate(self, client, partner_headers):
        assert rpc(client, "generate_partner_code", partner_headers).status_code == 403

    def test_unknown_procedure(self, client, ceo_headers):
        assert rpc(client, "drop_everything", ceo_headers).status_code == 404


class TestDeletePartner:

    @pytest.fixture
    def populated(self, client, ceo_headers, partner_a, partner_b, partner_user):
        for partner in (partner_a, partner_b):
            product = client.post("/api/tables/products", json={
                "partner_id": partner.id, "name": f"Produit {partner.id}", "stock": 4,
            }, headers=ceo_headers).json["row"]
            rpc(client, "record_stock_movement", ceo_headers, product_id=product["id"], type="out", quantity=1)
            client.post("/api/tables/partner_delivery_fees", json={
                "partner_id": partner.id, "turnover": 10000, "total_delivery_fee": 1500,
                "total_packages_delivered": 3, "operation_date": "2026-03-02",
            }, headers=ceo_headers)
            client.post("/api/tables/deliveries", json={
                "partner_id": partner.id, "customer_name": "Client", "status": "pending",
            }, headers=ceo_headers)

    def test_cascade_removes_dependents(self, client, ceo_headers, populated, partner_user):
        partner_token = token_for(partner_user)
        resp = rpc(client, "delete_partner_and_dependents", ceo_headers, partner_id="PAT001")
        assert resp.status_code == 200
        assert resp.json["data"] == {
            "partner_id": "PAT001",
            "deleted": {
                "stock_movements": 2,
                "products": 1,
                "partner_delivery_fees": 1,
                "deliveries": 1,
                "profiles": 1,
            },
        }

        db.session.expire_all()
        assert db.session.get(Partner, "PAT001") is None
        assert db.session.query(Product).filter_by(partner_id="PAT001").count() == 0
        assert db.session.query(PartnerDeliveryFee).filter_by(partner_id="PAT001").count() == 0
        # no movement points at a missing product
        product_ids = {p.id for p in db.session.query(Product).all()}
        assert {m.product_id for m in db.session.query(StockMovement).all()} <= product_ids
        # the other partner is untouched
        assert db.session.query(Product).filter_by(partner_id="PAT002").count() == 1

        profile = db.session.get(Profile, partner_user.id)
        assert profile.is_active is False
        assert profile.partner_id is None
        assert session_service.validate_session(partner_token) is None

    def test_missing_partner_is_404(self, client, ceo_headers):
        resp = rpc(client, "delete_partner_and_dependents", ceo_headers, partner_id="PAT404")
        assert resp.status_code == 404

    def test_partner_id_required(self, client, ceo_headers):
        assert rpc(client, "delete_partner_and_dependents", ceo_headers).status_code == 400

    def test_delete_through_table_route(self, client, ceo_headers, populated):
        resp = client.delete("/api/tables/partners/PAT002", headers=ceo_headers)
        assert resp.status_code == 200
        db.session.expire_all()
        assert db.session.get(Partner, "PAT002") is None


class TestAccountingReset:

    def test_reset_clears_accounting_only(self, client, ceo_headers, partner_a):
        client.post("/api/tables/transactions", json={
            "type": "income", "amount": 100, "operation_date": "2026-03-02",
        }, headers=ceo_headers)
        client.post("/api/tables/standard_orders", json={
            "delivery_amount": 2000, "operation_date": "2026-03-02",
        }, headers=ceo_headers)
        client.post("/api/tables/salaries", json={
            "beneficiary_name": "Koffi", "amount": 50000, "payment_date": "2026-03-31",
        }, headers=ceo_headers)
        client.post("/api/tables/products", json={
            "partner_id": partner_a.id, "name": "Savon", "stock": 2,
        }, headers=ceo_headers)

        resp = rpc(client, "reset_accounting_data", ceo_headers)
        assert resp.status_code == 200
        assert resp.json["data"] == {
            "transactions": 1, "standard_orders": 1, "partner_delivery_fees": 0, "salaries": 1,
        }

        db.session.expire_all()
        for model in (Transaction, StandardOrder, PartnerDeliveryFee, Salary):
            assert db.session.query(model).count() == 0
        assert db.session.query(Product).count() == 1
        assert db.session.query(Partner).count() == 1

    def test_reset_needs_settings_capability(self, client, accountant_headers):
        assert rpc(client, "reset_accounting_data", accountant_headers).status_code == 403


class TestReassignPartnerCodes:

    def test_repairs_duplicates_and_malformed(self, client, ceo_headers, db_session):
        db_session.add_all([
            Partner(id="PAT001", partner_code="PAT001", name="Ancien", created_at=datetime(2026, 1, 1)),
            Partner(id="legacy-2", partner_code="PAT001", name="Doublon", created_at=datetime(2026, 1, 2)),
            Partner(id="legacy-3", partner_code="P-3", name="Malformé", created_at=datetime(2026, 1, 3)),
        ])
        db_session.commit()

        resp = rpc(client, "reassign_partner_codes", ceo_headers)
        assert resp.status_code == 200
        codes = {p["id"]: p["partner_code"] for p in resp.json["data"]}
        assert codes == {"legacy-2": "PAT002", "legacy-3": "PAT003"}

        db_session.expire_all()
        assert db_session.get(Partner, "PAT001").partner_code == "PAT001"

    def test_nothing_to_repair(self, client, ceo_headers, partner_a, partner_b):
        assert rpc(client, "reassign_partner_codes", ceo_headers).json["data"] == []


class TestRecordStockMovement:

    @pytest.fixture
    def product(self, client, ceo_headers, partner_a):
        return client.post("/api/tables/products", json={
            "partner_id": partner_a.id, "name": "Savon", "stock": 5, "alert_threshold": 10,
        }, headers=ceo_headers).json["row"]

    def test_in_adds_quantity(self, client, ceo_headers, product):
        resp = rpc(client, "record_stock_movement", ceo_headers,
                   product_id=product["id"], type="in", quantity=10, reason="Réception")
        assert resp.status_code == 200
        movement = resp.json["data"]
        assert (movement["previous_stock"], movement["new_stock"], movement["quantity"]) == (5, 15, 10)
        assert movement["reason"] == "Réception"

        db.session.expire_all()
        assert db.session.get(Product, product["id"]).stock == 15

    def test_out_subtracts_quantity(self, client, ceo_headers, product):
        movement = rpc(client, "record_stock_movement", ceo_headers,
                       product_id=product["id"], type="out", quantity=2).json["data"]
        assert movement["new_stock"] == 3

    def test_out_beyond_stock_conflicts(self, client, ceo_headers, product):
        resp = rpc(client, "record_stock_movement", ceo_headers,
                   product_id=product["id"], type="out", quantity=6)
        assert resp.status_code == 409
        db.session.expire_all()
        assert db.session.get(Product, product["id"]).stock == 5
        assert db.session.query(StockMovement).filter_by(product_id=product["id"]).count() == 1

    def test_adjustment_sets_level(self, client, ceo_headers, product):
        movement = rpc(client, "record_stock_movement", ceo_headers,
                       product_id=product["id"], type="adjustment", new_stock=1).json["data"]
        assert (movement["type"], movement["quantity"], movement["new_stock"]) == ("adjustment", 4, 1)

    def test_adjustment_to_same_level_rejected(self, client, ceo_headers, product):
        resp = rpc(client, "record_stock_movement", ceo_headers,
                   product_id=product["id"], type="adjustment", new_stock=5)
        assert resp.status_code == 400

    @pytest.mark.parametrize("quantity", [0, -3, 1.5, "abc", None])
    def test_invalid_quantity(self, client, ceo_headers, product, quantity):
        resp = rpc(client, "record_stock_movement", ceo_headers,
                   product_id=product["id"], type="in", quantity=quantity)
        assert resp.status_code == 400

    def test_unknown_type(self, client, ceo_headers, product):
        resp = rpc(client, "record_stock_movement", ceo_headers,
                   product_id=product["id"], type="gift", quantity=1)
        assert resp.status_code == 400

    def test_partner_records_on_own_product(self, client, partner_headers, product):
        resp = rpc(client, "record_stock_movement", partner_headers,
                   product_id=product["id"], type="in", quantity=1)
        assert resp.status_code == 200

    def test_partner_blocked_on_other_product(self, client, ceo_headers, partner_b, partner_b_user, product):
        headers = auth_headers(token_for(partner_b_user))
        resp = rpc(client, "record_stock_movement", headers,
                   product_id=product["id"], type="in", quantity=1)
        assert resp.status_code == 403

    def test_insert_into_movements_table_goes_through_stock(self, client, ceo_headers, product):
        resp = client.post("/api/tables/stock_movements", json={
            "product_id": product["id"], "type": "out", "quantity": 5,
        }, headers=ceo_headers)
        assert resp.status_code == 201
        assert resp.json["row"]["new_stock"] == 0


class TestUserAdministration:

    def test_invite_then_accept(self, client, ceo_headers, partner_a):
        resp = rpc(client, "invite_user", ceo_headers, email="Awa@Example.com", role="partner", partner_id="PAT001")
        assert resp.status_code == 200
        data = resp.json["data"]
        assert data["invitation"]["email"] == "awa@example.com"
        token = data["token"]

        resp = client.post("/api/auth/invitations/accept", json={
            "token": token, "password": PASSWORD, "full_name": "Awa",
        })
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "partner"
        assert resp.json["user"]["partner_id"] == "PAT001"

        resp = client.post("/api/auth/invitations/accept", json={"token": token, "password": PASSWORD})
        assert resp.status_code == 404

    def test_partner_invite_needs_partner(self, client, ceo_headers):
        resp = rpc(client, "invite_user", ceo_headers, email="x@example.com", role="partner")
        assert resp.status_code == 400

    def test_secretary_cannot_invite_staff(self, client, secretary_headers):
        resp = rpc(client, "invite_user", secretary_headers, email="x@example.com", role="accountant")
        assert resp.status_code == 403

    def test_delete_user(self, client, ceo_headers, secretary):
        salary_resp = client.post("/api/tables/salaries", json={
            "user_id": secretary.id, "amount": 60000, "payment_date": "2026-03-31",
        }, headers=ceo_headers)
        salary_id = salary_resp.json["row"]["id"]

        resp = rpc(client, "delete_user_by_id", ceo_headers, user_id=secretary.id)
        assert resp.status_code == 200
        assert resp.json["data"]["email"] == "secretariat@eno.test"

        db.session.expire_all()
        assert db.session.get(Profile, secretary.id) is None
        assert db.session.get(Salary, salary_id).user_id is None

    def test_cannot_delete_self(self, client, ceo, ceo_headers):
        assert rpc(client, "delete_user_by_id", ceo_headers, user_id=ceo.id).status_code == 409

    def test_set_user_permissions(self, client, ceo_headers, secretary):
        resp = rpc(client, "set_user_permissions", ceo_headers,
                   user_id=secretary.id, permissions=["export_data", "VIEW_ACCOUNTING"])
        assert resp.status_code == 200
        assert resp.json["data"]["permissions"] == ["EXPORT_DATA", "VIEW_ACCOUNTING"]

        headers = auth_headers(token_for(secretary))
        caps = client.get("/api/auth/session", headers=headers).json["capabilities"]
        assert "EXPORT_DATA" in caps

    def test_role_defaults_cannot_be_granted(self, client, ceo_headers, secretary):
        resp = rpc(client, "set_user_permissions", ceo_headers,
                   user_id=secretary.id, permissions=["MANAGE_SETTINGS"])
        assert resp.status_code == 400

    def test_grants_need_manage_users(self, client, accountant_headers, secretary):
        resp = rpc(client, "set_user_permissions", accountant_headers,
                   user_id=secretary.id, permissions=["EXPORT_DATA"])
        assert resp.status_code == 403
