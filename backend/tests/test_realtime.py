"""
Change feed tests.

Verifies:
- Events are published after commit and dropped on rollback
- Row scope filtering of events per viewer
- The server-sent event stream and its decoder
"""

import json

import pytest

from conftest import auth_headers, token_for
from eno.client.http import iter_sse_events
from eno.extensions import db
from eno.models import Partner, Product
from eno.permissions import Role, capabilities_for
from eno.routes.realtime import format_sse
from eno.services import table_service
from eno.services.permission_service import Viewer
from eno.services.realtime import ChangeEvent, ChangeFeed, get_feed


def viewer(role, partner_id=None, user_id="u1"):
    return Viewer(user_id=user_id, role=Role(role), partner_id=partner_id, capabilities=capabilities_for(role))


@pytest.fixture
def captured(app):
    events = []
    feed = get_feed()
    unsubscribers = [feed.subscribe(table, events.append) for table in ("partners", "products", "stock_movements")]
    yield events
    for unsubscribe in unsubscribers:
        unsubscribe()


class TestChangeFeed:

    def test_insert_published_after_commit(self, db_session, captured):
        db_session.add(Partner(id="PAT001", partner_code="PAT001", name="Boutique Awa"))
        db_session.flush()
        assert captured == []

        db_session.commit()
        assert len(captured) == 1
        change = captured[0]
        assert (change.table, change.event_type) == ("partners", "INSERT")
        assert change.new["name"] == "Boutique Awa"
        assert change.partner_id == "PAT001"

    def test_rollback_publishes_nothing(self, db_session, captured):
        db_session.add(Partner(id="PAT009", partner_code="PAT009", name="Annulé"))
        db_session.flush()
        db_session.rollback()
        db_session.add(Partner(id="PAT010", partner_code="PAT010", name="Gardé"))
        db_session.commit()
        assert [c.new["id"] for c in captured] == ["PAT010"]

    def test_update_and_delete_events(self, db_session, partner_a, captured):
        partner_a.phone = "90 00 00 00"
        db_session.commit()
        db_session.delete(partner_a)
        db_session.commit()

        update, delete = captured
        assert update.event_type == "UPDATE"
        assert update.new["phone"] == "90 00 00 00"
        assert update.old == {"id": "PAT001"}
        assert delete.event_type == "DELETE"
        assert delete.new is None
        assert delete.old["id"] == "PAT001"

    def test_movement_carries_product_partner(self, client, ceo_headers, partner_a, captured):
        client.post("/api/tables/products", json={
            "partner_id": partner_a.id, "name": "Savon", "stock": 3,
        }, headers=ceo_headers)
        movement = next(c for c in captured if c.table == "stock_movements")
        assert movement.partner_id == "PAT001"
        assert [c.event_type for c in captured if c.table == "products"] == ["INSERT", "UPDATE"]

    def test_broken_listener_does_not_stop_others(self):
        feed = ChangeFeed()
        seen = []

        def broken(change):
            raise RuntimeError("boom")

        feed.subscribe("products", broken)
        unsubscribe = feed.subscribe("products", seen.append)
        change = ChangeEvent("products", "INSERT", new={"id": "p1"})
        feed.publish(change)
        assert seen == [change]

        unsubscribe()
        unsubscribe()
        assert feed.listener_count("products") == 1


class TestEventVisibility:

    def test_partner_sees_only_own_rows(self):
        change = ChangeEvent("products", "INSERT", new={"id": "p1"}, partner_id="PAT001")
        assert table_service.event_visible(viewer("partner", "PAT001"), change)
        assert not table_service.event_visible(viewer("partner", "PAT002"), change)
        assert table_service.event_visible(viewer("secretary"), change)

    def test_unreadable_table_is_hidden(self):
        change = ChangeEvent("transactions", "INSERT", new={"id": "t1"})
        assert not table_service.event_visible(viewer("secretary"), change)
        assert table_service.event_visible(viewer("accountant"), change)

    def test_profiles_owner_scope(self):
        change = ChangeEvent("profiles", "UPDATE", new={"id": "u2"}, owner_id="u2")
        assert not table_service.event_visible(viewer("secretary", user_id="u1"), change)
        assert table_service.event_visible(viewer("secretary", user_id="u2"), change)
        assert table_service.event_visible(viewer("ceo", user_id="u1"), change)

    def test_unknown_table(self):
        assert not table_service.event_visible(viewer("ceo"), ChangeEvent("nope", "INSERT", new={}))


class TestServerSentEvents:

    def test_format_sse(self):
        payload = {"table": "products", "event_type": "DELETE", "new": None, "old": {"id": "p1"}}
        assert format_sse(payload) == (
            'data: {"table":"products","event_type":"DELETE","new":null,"old":{"id":"p1"}}\n\n'
        )

    def test_iter_sse_events(self):
        lines = [
            ": connected", "",
            'data: {"a": 1}', "",
            ": keep-alive", "",
            "data: {not json}", "",
            'data: {"b":', "data: 2}", "",
        ]
        assert list(iter_sse_events(lines)) == [{"a": 1}, {"b": 2}]

    def test_unknown_table_stream(self, client, ceo_headers):
        assert client.get("/api/realtime/nope", headers=ceo_headers).status_code == 404

    def test_unreadable_table_stream(self, client, secretary_headers):
        assert client.get("/api/realtime/transactions", headers=secretary_headers).status_code == 403

    def test_stream_delivers_visible_changes(self, client, ceo_headers, partner_a, partner_b, partner_user):
        headers = auth_headers(token_for(partner_user))
        resp = client.get("/api/realtime/products", headers=headers)
        assert resp.status_code == 200
        assert resp.mimetype == "text/event-stream"

        chunks = resp.iter_encoded()
        assert next(chunks).decode() == ": connected\n\n"

        client.post("/api/tables/products", json={"partner_id": "PAT002", "name": "Pagne"}, headers=ceo_headers)
        client.post("/api/tables/products", json={"partner_id": "PAT001", "name": "Savon"}, headers=ceo_headers)

        payload = None
        for _ in range(50):
            chunk = next(chunks).decode()
            if chunk.startswith("data: "):
                payload = json.loads(chunk[len("data: "):])
                break
        resp.close()

        assert payload["event_type"] == "INSERT"
        assert payload["new"]["name"] == "Savon"
        assert payload["new"]["partner_id"] == "PAT001"

    @pytest.mark.parametrize("ending", ["logout", "deactivation"])
    def test_stream_ends_with_the_session(self, client, partner_user, ending):
        token = token_for(partner_user)
        feed = get_feed()
        before = feed.listener_count("products")

        resp = client.get("/api/realtime/products", headers=auth_headers(token))
        chunks = resp.iter_encoded()
        assert next(chunks).decode() == ": connected\n\n"
        assert feed.listener_count("products") == before + 1

        if ending == "logout":
            assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        else:
            partner_user.is_active = False
            db.session.commit()

        # the next heartbeat re-checks the session and closes the stream
        for _ in range(200):
            try:
                assert next(chunks).decode().startswith(":")
            except StopIteration:
                break
        else:
            pytest.fail("stream still open after the session ended")
        resp.close()

        assert feed.listener_count("products") == before
