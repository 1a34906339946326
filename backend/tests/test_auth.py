"""
Authentication tests.

Verifies:
- First sign-up bootstraps the CEO, later self-registration is refused
- Login returns a session with capabilities and menu
- Logout revokes the session
- Self-service profile updates
"""

from conftest import PASSWORD, auth_headers, get_auth_token, make_profile
from eno.extensions import db
from eno.models import ActivityLogEntry, Profile


class TestSignUp:

    def test_first_signup_creates_ceo(self, client, db_session):
        resp = client.post("/api/auth/signup", json={
            "email": "Patron@Eno.test", "password": PASSWORD, "full_name": "Le Patron",
        })
        assert resp.status_code == 201
        body = resp.json
        assert body["user"]["role"] == "ceo"
        assert body["user"]["email"] == "patron@eno.test"
        assert body["token"]
        assert "MANAGE_SETTINGS" in body["capabilities"]
        assert "RECEIVE_LOW_STOCK_ALERTS" not in body["capabilities"]

    def test_second_signup_refused(self, client, ceo):
        resp = client.post("/api/auth/signup", json={
            "email": "someone@eno.test", "password": PASSWORD,
        })
        assert resp.status_code == 403

    def test_weak_password(self, client, db_session):
        resp = client.post("/api/auth/signup", json={"email": "a@eno.test", "password": "short"})
        assert resp.status_code == 400
        resp = client.post("/api/auth/signup", json={"email": "a@eno.test", "password": "longpassword"})
        assert resp.status_code == 400
        assert "digit" in resp.json["error"]

    def test_invalid_email(self, client, db_session):
        resp = client.post("/api/auth/signup", json={"email": "not-an-email", "password": PASSWORD})
        assert resp.status_code == 400


class TestLogin:

    def test_login_returns_session(self, client, accountant):
        resp = client.post("/api/auth/login", json={"email": "compta@eno.test", "password": PASSWORD})
        assert resp.status_code == 200
        body = resp.json
        assert body["user"]["id"] == accountant.id
        assert "password_hash" not in body["user"]
        assert "VIEW_ACCOUNTING" in body["capabilities"]
        menu_keys = [item["key"] for item in body["menu"]]
        assert "accounting" in menu_keys
        assert "settings" not in menu_keys
        assert body["session"]["expires_at"].endswith("Z")

        db.session.expire_all()
        assert db.session.get(Profile, accountant.id).last_login_at is not None

    def test_wrong_password(self, client, accountant):
        resp = client.post("/api/auth/login", json={"email": "compta@eno.test", "password": "Wrong12345"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid credentials"

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/auth/login", json={"email": "x@eno.test"}).status_code == 400

    def test_inactive_account_cannot_login(self, client, db_session):
        profile = make_profile("secretary", "off@eno.test")
        profile.is_active = False
        db.session.commit()
        assert get_auth_token(client, "off@eno.test") is None


class TestSession:

    def test_session_then_logout(self, client, secretary):
        token = get_auth_token(client, "secretariat@eno.test")
        headers = auth_headers(token)

        resp = client.get("/api/auth/session", headers=headers)
        assert resp.status_code == 200
        assert resp.json["user"]["role"] == "secretary"
        assert "token" not in resp.json

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/session", headers=headers).status_code == 401

    def test_partner_menu_has_partner_space(self, client, partner_user):
        token = get_auth_token(client, "awa@eno.test")
        menu = client.get("/api/auth/session", headers=auth_headers(token)).json["menu"]
        keys = [item["key"] for item in menu]
        assert keys == ["home", "partner-view", "notifications"]
        badge = {item["key"]: item["badge"] for item in menu}
        assert badge["notifications"] is True


class TestUpdateUser:

    def test_update_name_and_password(self, client, secretary):
        headers = auth_headers(get_auth_token(client, "secretariat@eno.test"))
        resp = client.patch("/api/auth/user", json={"full_name": "Sena", "password": "NewPass456"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json["user"]["full_name"] == "Sena"

        assert get_auth_token(client, "secretariat@eno.test") is None
        assert get_auth_token(client, "secretariat@eno.test", "NewPass456") is not None

        entry = db.session.query(ActivityLogEntry).filter_by(action="profile_updated").one()
        assert entry.details == {"fields": ["full_name", "password"]}

    def test_empty_update_rejected(self, client, secretary):
        headers = auth_headers(get_auth_token(client, "secretariat@eno.test"))
        assert client.patch("/api/auth/user", json={}, headers=headers).status_code == 400

    def test_blank_name_rejected(self, client, secretary):
        headers = auth_headers(get_auth_token(client, "secretariat@eno.test"))
        assert client.patch("/api/auth/user", json={"full_name": "  "}, headers=headers).status_code == 400
