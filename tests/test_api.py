"""API tests: form definitions, validation, form sessions and notifications."""

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from healthmate.main import app
from healthmate.services.gateway import GatewayError
from conftest import VALID_VALUES


class FakeGateway:
    """Stands in for the HealthMate API."""

    def __init__(self):
        self.calls = []
        self.error = None
        self.reachable = True

    async def _handle(self, form_id, values):
        self.calls.append((form_id, dict(values)))
        if self.error is not None:
            raise self.error
        return {"ok": True, "form": form_id}

    def handler_for(self, form_id):
        async def handler(values):
            return await self._handle(form_id, values)
        return handler

    async def ping(self):
        if not self.reachable:
            raise GatewayError("unreachable")

    async def close(self):
        pass


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(gateway):
    with TestClient(app) as c:
        app.state.gateway = gateway
        yield c


def _create(client, form_id):
    resp = client.post(f"/api/v1/forms/{form_id}/sessions")
    assert resp.status_code == 201
    return resp.json()


def _fill(client, session_id, values):
    body = None
    for field, value in values.items():
        resp = client.put(f"/api/v1/form-sessions/{session_id}/values/{field}", json={"value": value})
        assert resp.status_code == 200
        body = resp.json()
    return body


class TestFormsEndpoints:

    def test_list_forms(self, client):
        resp = client.get("/api/v1/forms")
        assert resp.status_code == 200
        forms = {f["form_id"]: f for f in resp.json()}
        assert set(forms) == {"login", "register", "contact"}
        assert forms["login"]["fields"] == ["email", "password"]

    def test_get_form(self, client):
        resp = client.get("/api/v1/forms/register")
        assert resp.status_code == 200
        body = resp.json()
        assert body["strength_field"] == "password"
        assert body["validation"]["rules"][3]["validators"][1] == {
            "kind": "equals_field",
            "other": "password",
            "message": "Passwords must match",
        }

    def test_unknown_form(self, client):
        assert client.get("/api/v1/forms/nope").status_code == 404

    def test_validate(self, client):
        resp = client.post("/api/v1/forms/login/validate", json={
            "values": {"email": "not-an-email", "password": "secret1"},
        })
        assert resp.status_code == 200
        assert resp.json() == {
            "form_id": "login",
            "errors": {"email": "Please enter a valid email"},
            "is_valid": False,
        }

    def test_validate_unknown_field(self, client):
        resp = client.post("/api/v1/forms/login/validate", json={"values": {"nope": "x"}})
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"

    def test_password_strength(self, client):
        resp = client.post("/api/v1/password-strength", json={"password": "Password1"})
        assert resp.json() == {"score": 4, "label": "Good", "color": "blue"}


class TestFormSessionLifecycle:

    def test_pristine_login_cannot_submit(self, client):
        body = _create(client, "login")
        assert body["can_submit"] is False
        assert body["state"]["errors"] == {}
        assert body["password_strength"] is None
        assert body["websocket_url"] == f"/ws/form-sessions/{body['session_id']}"

    def test_touch_shows_only_touched_errors(self, client):
        sid = _create(client, "register")["session_id"]
        _fill(client, sid, {"email": "bad"})

        resp = client.post(f"/api/v1/form-sessions/{sid}/touched/email")
        state = resp.json()["state"]
        assert state["visible_errors"] == {"email": "Invalid email address"}
        assert state["touched"] == ["email"]

    def test_register_reports_password_strength(self, client):
        sid = _create(client, "register")["session_id"]
        body = _fill(client, sid, {"password": "password"})
        assert body["password_strength"] == {"score": 2, "label": "Weak", "color": "orange"}

    def test_unknown_field_is_422(self, client):
        sid = _create(client, "login")["session_id"]
        resp = client.put(f"/api/v1/form-sessions/{sid}/values/nope", json={"value": "x"})
        assert resp.status_code == 422

    def test_unknown_session_is_404(self, client):
        assert client.get("/api/v1/form-sessions/form_missing").status_code == 404

    def test_reset_and_delete(self, client):
        sid = _create(client, "login")["session_id"]
        _fill(client, sid, {"email": "a@b.com"})

        resp = client.post(f"/api/v1/form-sessions/{sid}/reset")
        assert resp.json()["state"]["values"] == {"email": "", "password": ""}

        assert client.delete(f"/api/v1/form-sessions/{sid}").status_code == 204
        assert client.get(f"/api/v1/form-sessions/{sid}").status_code == 404


class TestSubmit:

    def test_invalid_submit_does_not_call_gateway(self, client, gateway):
        sid = _create(client, "register")["session_id"]
        resp = client.post(f"/api/v1/form-sessions/{sid}/submit")

        body = resp.json()
        assert body["status"] == "rejected"
        assert body["reason"] == "validation_failed"
        assert body["session"]["state"]["visible_errors"]["confirmPassword"] == "Please confirm your password"
        assert gateway.calls == []

    def test_successful_login(self, client, gateway):
        sid = _create(client, "login")["session_id"]
        body = _fill(client, sid, VALID_VALUES["login"])
        assert body["can_submit"] is True

        resp = client.post(f"/api/v1/form-sessions/{sid}/submit")
        body = resp.json()
        assert body["status"] == "resolved"
        assert body["result"] == {"ok": True, "form": "login"}
        assert body["message"] == "Welcome back! Let's continue your health journey."
        assert gateway.calls == [("login", VALID_VALUES["login"])]
        # Login keeps its values after success
        assert body["session"]["state"]["values"] == VALID_VALUES["login"]

    def test_contact_resets_on_success(self, client):
        sid = _create(client, "contact")["session_id"]
        _fill(client, sid, VALID_VALUES["contact"])

        body = client.post(f"/api/v1/form-sessions/{sid}/submit").json()
        assert body["status"] == "resolved"
        assert all(v == "" for v in body["session"]["state"]["values"].values())

    def test_handler_error_keeps_values(self, client, gateway):
        gateway.error = GatewayError("Email already registered", status=409)
        sid = _create(client, "register")["session_id"]
        _fill(client, sid, VALID_VALUES["register"])

        body = client.post(f"/api/v1/form-sessions/{sid}/submit").json()
        assert body["status"] == "rejected"
        assert body["reason"] == "handler_error"
        assert body["message"] == "Email already registered"
        assert body["session"]["state"]["values"] == VALID_VALUES["register"]
        assert body["session"]["state"]["is_submitting"] is False

    def test_notifications_stream(self, client, gateway):
        gateway.error = GatewayError("")
        sid = _create(client, "contact")["session_id"]
        _fill(client, sid, VALID_VALUES["contact"])
        client.post(f"/api/v1/form-sessions/{sid}/submit")

        with client.websocket_connect(f"/ws/form-sessions/{sid}") as ws:
            history = ws.receive_json()
            assert history["type"] == "event_history"
            notification = history["events"][-1]
            assert notification["level"] == "error"
            assert notification["message"] == "Failed to send message. Please try again."

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_delete_notifies_connected_client(self, client):
        sid = _create(client, "login")["session_id"]

        with client.websocket_connect(f"/ws/form-sessions/{sid}") as ws:
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

            assert client.delete(f"/api/v1/form-sessions/{sid}").status_code == 204
            event = ws.receive_json()
            assert event["type"] == "session_closed"
            assert event["reason"] == "deleted"
            assert event["form_id"] == "login"

    def test_websocket_rejects_bad_messages(self, client):
        sid = _create(client, "login")["session_id"]

        with client.websocket_connect(f"/ws/form-sessions/{sid}") as ws:
            ws.send_text("not json")
            assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}
            ws.send_json({"type": "cancel"})
            assert ws.receive_json() == {"type": "error", "message": "Unsupported message"}

    def test_unknown_session_websocket_is_closed(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws/form-sessions/form_missing") as ws:
                ws.receive_json()
        assert exc_info.value.code == 4404


class TestHealth:

    def test_healthy(self, client):
        body = client.get("/api/v1/health").json()
        assert body["status"] == "healthy"
        assert body["dependencies"]["healthmate_api"]["status"] == "healthy"

    def test_degraded_when_upstream_down(self, client, gateway):
        gateway.reachable = False
        _create(client, "login")
        body = client.get("/api/v1/health").json()
        assert body["status"] == "degraded"
        assert body["active_form_sessions"] >= 1


def test_root(client):
    assert client.get("/").json()["name"] == "HealthMate Forms"


def test_unexpected_error_is_500(gateway):
    def broken_handler_for(form_id):
        raise RuntimeError("gateway misconfigured")

    gateway.handler_for = broken_handler_for
    with TestClient(app, raise_server_exceptions=False) as c:
        app.state.gateway = gateway
        sid = _create(c, "login")["session_id"]
        resp = c.post(f"/api/v1/form-sessions/{sid}/submit")

    assert resp.status_code == 500
    assert resp.json()["error"] == "internal_server_error"
