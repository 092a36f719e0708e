"""
HTTP and WebSocket tests for the portal and staff routers.

A fresh FastAPI app is wired with the in-memory store and fake classifier /
notifier, the same way main.py wires the real services.
"""
from datetime import timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from admin.router import is_staff, router as admin_router, staff_key
from incidents.context import build_portal_context
from incidents.translations import message
from portal.router import router as portal_router

STAFF = {"Authorization": "Bearer secret"}


@pytest.fixture
def portal(store, classifier, notifier):
    return build_portal_context(
        store=store,
        classifier=classifier,
        notifier=notifier,
        staff_password="secret",
        tz=timezone.utc,
    )


@pytest.fixture
def client(portal):
    app = FastAPI()
    app.include_router(portal_router)
    app.include_router(admin_router)
    app.state.portal = portal
    app.add_event_handler("startup", portal.start)
    app.add_event_handler("shutdown", portal.stop)
    with TestClient(app) as test_client:
        yield test_client


def _open_session(client, **body) -> dict:
    response = client.post("/api/sessions", json=body or None)
    assert response.status_code == 201
    return response.json()


def _submit(client, text="El aire acondicionado gotea", **fields) -> dict:
    session = _open_session(client, language="es", test_mode=True)
    response = client.post(
        f"/api/sessions/{session['session_id']}/submit",
        json={"description": text, **fields},
    )
    assert response.status_code == 200
    return response.json()


# =============================================================
# TEST: Tenant portal
# =============================================================

class TestPortalSessions:

    def test_create_session_defaults(self, client):
        session = _open_session(client)

        assert session["view"] == "login"
        assert session["state"] == "idle"
        assert session["can_submit"] is False

    def test_tenant_view_in_test_mode_prefills_identity(self, client):
        session = _open_session(client, language="en", test_mode=True)

        response = client.patch(f"/api/sessions/{session['session_id']}", json={"view": "tenant"})

        body = response.json()
        assert body["view"] == "tenant"
        assert body["language"] == "en"
        assert (body["tenant_name"], body["room"]) == ("James Bond", "007")

    def test_turning_test_mode_off_clears_identity(self, client):
        session = _open_session(client, test_mode=True)
        sid = session["session_id"]
        client.patch(f"/api/sessions/{sid}", json={"view": "tenant"})

        body = client.patch(f"/api/sessions/{sid}", json={"test_mode": False}).json()

        assert (body["tenant_name"], body["room"]) == ("", "")

    def test_unknown_language_falls_back(self, client):
        session = _open_session(client, language="fr")

        assert session["language"] == "es"

    def test_unknown_session(self, client):
        assert client.get("/api/sessions/nope").status_code == 404
        assert client.delete("/api/sessions/nope").status_code == 404

    def test_end_session(self, client):
        session = _open_session(client)
        sid = session["session_id"]

        assert client.delete(f"/api/sessions/{sid}").status_code == 200
        assert client.get(f"/api/sessions/{sid}").status_code == 404

    def test_examples(self, client):
        es = client.get("/api/examples").json()
        en = client.get("/api/examples", params={"lang": "en"}).json()

        assert len(es) == len(en) == 5
        assert all({"label", "text"} <= set(e) for e in en)


class TestSubmission:

    def test_submit_returns_success_with_analysis(self, client, store):
        body = _submit(client)

        assert body["state"] == "success"
        assert body["description"] == ""
        assert body["last_analysis"]["category"] == "Maintenance"
        assert body["last_incident_id"]
        [record] = store.snapshot()
        assert record.tenant_name == "James Bond"
        assert record.status.value == "open"

    def test_blank_description_is_a_no_op(self, client, classifier, store):
        body = _submit(client, text="   ")

        assert body["state"] == "idle"
        classifier.analyze.assert_not_awaited()
        assert store.snapshot() == []


# =============================================================
# TEST: Staff API
# =============================================================

class TestStaffAuth:

    def test_wrong_password(self, client):
        response = client.post("/admin/api/login", json={"password": "nope"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Contraseña incorrecta"

    def test_wrong_password_in_session_language(self, client):
        session = _open_session(client, language="en")

        response = client.post(
            "/admin/api/login",
            json={"password": "nope", "session_id": session["session_id"]},
        )

        assert response.json()["detail"] == "Incorrect password"

    def test_login_switches_session_to_staff_view(self, client):
        session = _open_session(client)

        response = client.post(
            "/admin/api/login",
            json={"password": "secret", "session_id": session["session_id"]},
        )

        assert response.status_code == 200
        assert response.json()["session"]["view"] == "staff"

    @pytest.mark.parametrize("kwargs", [
        {},
        {"headers": {"Authorization": "Bearer wrong"}},
        {"params": {"key": "wrong"}},
    ])
    def test_staff_endpoints_require_password(self, client, kwargs):
        assert client.get("/admin/api/incidents", **kwargs).status_code == 401

    def test_query_key_accepted(self, client):
        assert client.get("/admin/api/incidents", params={"key": "secret"}).status_code == 200


class TestStaffIncidents:

    def test_list_is_decorated_for_the_dashboard(self, client):
        _submit(client)

        [incident] = client.get("/admin/api/incidents", headers=STAFF).json()

        assert incident["tenantName"] == "James Bond"
        assert incident["status"] == "open"
        assert incident["status_label"] == "Abierto"
        assert incident["urgency_band"] == "high"
        assert incident["urgency_label"] == "Alta (4)"
        assert incident["category_label"] == "Mantenimiento"
        assert incident["sentiment_label"] == "Neutro"
        assert incident["channel"] == "portal"
        assert incident["resolvedAt"] is None

    def test_filters(self, client):
        _submit(client)

        assert client.get("/admin/api/incidents", headers=STAFF, params={"status": "resolved"}).json() == []
        assert len(client.get("/admin/api/incidents", headers=STAFF, params={"category": "Maintenance"}).json()) == 1

    def test_change_status(self, client):
        incident_id = _submit(client)["last_incident_id"]

        response = client.patch(
            f"/admin/api/incidents/{incident_id}", headers=STAFF, json={"status": "resolved"}
        )

        assert response.status_code == 200
        ack = response.json()
        assert ack["status"] == "resolved"
        assert ack["resolvedAt"] == ack["updatedAt"]

        incident = client.get(f"/admin/api/incidents/{incident_id}", headers=STAFF).json()
        assert incident["status"] == "resolved"
        assert incident["resolvedAt"] is not None

    def test_change_status_unknown_incident(self, client):
        response = client.patch("/admin/api/incidents/missing", headers=STAFF, json={"status": "open"})

        assert response.status_code == 404

    def test_change_status_rejects_unknown_status(self, client):
        incident_id = _submit(client)["last_incident_id"]

        response = client.patch(
            f"/admin/api/incidents/{incident_id}", headers=STAFF, json={"status": "archived"}
        )

        assert response.status_code == 422

    def test_stats(self, client):
        assert client.get("/admin/api/stats", headers=STAFF).json() is None

        _submit(client)
        stats = client.get("/admin/api/stats", headers=STAFF).json()

        assert stats["total"] == 1
        assert stats["completion_rate"] == 0
        assert stats["avg_resolution_time"] == "N/A"
        assert stats["high_impact"]["name"] == "Maintenance"
        assert len(stats["daily_counts"]) == 7
        assert stats["daily_counts"][-1]["count"] == 1


# =============================================================
# TEST: Live feed WebSocket
# =============================================================

class TestLiveFeed:

    def test_rejects_wrong_key(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/admin/ws?key=wrong") as ws:
                ws.receive_json()

    def test_snapshot_on_connect_and_after_change(self, client):
        with client.websocket_connect("/admin/ws?key=secret") as ws:
            first = ws.receive_json()
            assert first["type"] == "snapshot"
            assert first["incidents"] == []
            assert first["stats"] is None

            _submit(client)

            second = ws.receive_json()
            assert second["type"] == "snapshot"
            assert second["version"] > first["version"]
            assert len(second["incidents"]) == 1
            assert second["stats"]["total"] == 1


# =============================================================
# TEST: Shared staff check
# =============================================================

class TestStaffCheck:

    @pytest.mark.parametrize("authorization,key,expected", [
        ("Bearer secret", None, "secret"),
        ("Bearer secret", "other", "secret"),
        ("Bearer ", "fromquery", "fromquery"),
        (None, "fromquery", "fromquery"),
        ("Basic abc", None, ""),
        (None, None, ""),
    ])
    def test_staff_key_prefers_bearer(self, authorization, key, expected):
        assert staff_key(authorization, key) == expected

    def test_empty_password_never_matches(self):
        assert is_staff("", "") is False
        assert is_staff("anything", "") is False
        assert is_staff("secret", "secret") is True

    def test_empty_password_locks_http_and_websocket(self, store, classifier, notifier):
        portal = build_portal_context(
            store=store, classifier=classifier, notifier=notifier, staff_password="", tz=timezone.utc
        )
        app = FastAPI()
        app.include_router(admin_router)
        app.state.portal = portal
        app.add_event_handler("startup", portal.start)
        app.add_event_handler("shutdown", portal.stop)

        with TestClient(app) as test_client:
            assert test_client.get("/admin/api/incidents").status_code == 401
            with pytest.raises(WebSocketDisconnect):
                with test_client.websocket_connect("/admin/ws") as ws:
                    ws.receive_json()

    def test_unauthorized_detail_is_localized(self, client):
        es = client.get("/admin/api/incidents").json()["detail"]
        en = client.get("/admin/api/incidents", params={"lang": "en"}).json()["detail"]

        assert es == message("auth_required", "es")
        assert en == message("auth_required", "en")
