"""
CLI and health endpoint tests.
"""

from datetime import date, timedelta

from openpyxl import load_workbook

from conftest import PASSWORD
from eno.cli import (
    cleanup_sessions_cli, create_ceo_cli, export_cli, init_system, list_users, reassign_codes_cli, reset_accounting_cli,
)
from eno.extensions import db
from eno.models import Partner, Profile, SessionToken, Transaction
from eno.services import session_service
from eno.time_utils import utcnow


class TestUserCommands:

    def test_create_ceo_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(create_ceo_cli, ["--email", "ceo@eno.test", "--password", PASSWORD])
        assert result.exit_code == 0
        assert "PASS Created CEO account ceo@eno.test" in result.output

        result = runner.invoke(create_ceo_cli, ["--email", "other@eno.test", "--password", PASSWORD])
        assert "SKIP" in result.output
        assert db.session.query(Profile).count() == 1

    def test_weak_password_fails(self, app, db_session):
        result = app.test_cli_runner().invoke(create_ceo_cli, ["--email", "ceo@eno.test", "--password", "abc"])
        assert result.exit_code != 0
        assert "at least 8 characters" in result.output

    def test_list_users(self, app, ceo, partner_user):
        result = app.test_cli_runner().invoke(list_users, ["--role", "partner"])
        assert "awa@eno.test" in result.output
        assert "ceo@eno.test" not in result.output

    def test_init_without_bootstrap_settings(self, app, db_session, monkeypatch):
        monkeypatch.setitem(app.config, "ENO_CEO_EMAIL", None)
        result = app.test_cli_runner().invoke(init_system)
        assert result.exit_code == 0
        assert "PASS Tables ready" in result.output


class TestMaintenanceCommands:

    def test_commands_need_a_ceo(self, app, db_session):
        result = app.test_cli_runner().invoke(reassign_codes_cli)
        assert result.exit_code != 0
        assert "No active CEO account" in result.output

    def test_reassign_codes(self, app, ceo, db_session):
        db_session.add(Partner(id="legacy-1", partner_code=None, name="Ancien"))
        db_session.commit()
        result = app.test_cli_runner().invoke(reassign_codes_cli)
        assert "legacy-1" in result.output
        assert "PASS Reassigned 1 partner code(s)" in result.output

    def test_reset_accounting(self, app, ceo, db_session):
        db_session.add(Transaction(type="income", amount=100, operation_date=date(2026, 3, 1)))
        db_session.commit()
        result = app.test_cli_runner().invoke(reset_accounting_cli, ["--yes"])
        assert "DELETE transactions: 1" in result.output
        assert db_session.query(Transaction).count() == 0

    def test_cleanup_sessions(self, app, ceo, db_session):
        long_ago = utcnow() - timedelta(days=40)
        stale, _ = session_service.create_session(ceo.id)
        stale.created_at = long_ago
        stale.is_revoked = True
        still_valid, _ = session_service.create_session(ceo.id)
        still_valid.created_at = long_ago
        still_valid.expires_at = utcnow() + timedelta(hours=1)
        recent, _ = session_service.create_session(ceo.id)
        recent.is_revoked = True
        db_session.commit()
        kept = {still_valid.id, recent.id}

        result = app.test_cli_runner().invoke(cleanup_sessions_cli, ["--retention-days", "30"])
        assert result.exit_code == 0, result.output
        assert "DELETE Removed 1 session(s) older than 30 days." in result.output
        db_session.expire_all()
        assert {s.id for s in db_session.query(SessionToken).all()} == kept

    def test_export_xlsx(self, app, ceo, partner_a, tmp_path):
        target = tmp_path / "export.xlsx"
        result = app.test_cli_runner().invoke(
            export_cli, ["--type", "partners", "--type", "users", "--format", "xlsx", "--output", str(target)],
        )
        assert result.exit_code == 0, result.output
        assert load_workbook(target).sheetnames == ["Partenaires", "Utilisateurs"]


class TestHealth:

    def test_degraded_without_ceo(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "degraded"

    def test_healthy(self, client, ceo, partner_a):
        body = client.get("/api/health").json
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["details"]["partners"] == 1
        assert "products" in body["checks"]["realtime"]["details"]["subscribers"]
