"""Tests for the notification bus, form session manager and API gateway."""

import asyncio
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from healthmate.services.form_sessions import FormSessionManager, SessionLimitError
from healthmate.services.gateway import GatewayError, HealthMateGateway
from healthmate.services.notifications import NotificationBus


class TestNotificationBus:

    @pytest.mark.asyncio
    async def test_publish_reaches_subscribers_and_history(self):
        bus = NotificationBus()
        bus.open("s1")
        received = []

        async def listener(event):
            received.append(event)

        bus.subscribe("s1", listener)
        await bus.create_callback("s1")({"type": "notification", "message": "hi"})

        assert received == [{"type": "notification", "message": "hi"}]
        assert bus.get_history("s1") == received
        assert bus.get_history("other") == []

    @pytest.mark.asyncio
    async def test_failing_listener_is_dropped(self):
        bus = NotificationBus()
        bus.open("s1")
        broken = AsyncMock(side_effect=RuntimeError("socket closed"))
        bus.subscribe("s1", broken)

        await bus.publish("s1", {"n": 1})
        await bus.publish("s1", {"n": 2})
        assert broken.await_count == 1

    @pytest.mark.asyncio
    async def test_history_is_bounded(self):
        bus = NotificationBus(max_history=3)
        bus.open("s1")
        for n in range(5):
            await bus.publish("s1", {"n": n})
        assert [e["n"] for e in bus.get_history("s1")] == [2, 3, 4]

    @pytest.mark.asyncio
    async def test_cleanup(self):
        bus = NotificationBus()
        bus.open("s1")
        await bus.publish("s1", {"n": 1})
        bus.cleanup("s1")
        assert bus.get_history("s1") == []
        assert not bus.is_open("s1")

    @pytest.mark.asyncio
    async def test_publish_after_close_leaves_no_history(self):
        bus = NotificationBus()
        bus.open("s1")
        bus.close_session("s1", "contact", "deleted")

        # A submit that settles after its session closed
        await bus.create_callback("s1")({"type": "notification", "message": "late"})
        assert bus.get_history("s1") == []
        assert not bus.is_open("s1")

    @pytest.mark.asyncio
    async def test_close_session_notifies_listeners(self):
        bus = NotificationBus()
        bus.open("s1")
        received = []
        delivered = asyncio.Event()

        async def listener(event):
            received.append(event)
            delivered.set()

        bus.subscribe("s1", listener)
        bus.close_session("s1", "login", "expired")
        await asyncio.wait_for(delivered.wait(), timeout=1)

        assert received[0]["type"] == "session_closed"
        assert received[0]["reason"] == "expired"
        assert received[0]["form_id"] == "login"
        assert bus.get_history("s1") == []


class FakeClock:

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestFormSessionManager:

    def test_create_and_get(self, login_definition):
        manager = FormSessionManager()
        session = manager.create(login_definition)

        assert session.session_id.startswith("form_")
        assert session.form_id == "login"
        assert manager.get(session.session_id) is session
        assert session.store.get_state().values == {"email": "", "password": ""}

    def test_sessions_are_independent(self, login_definition):
        manager = FormSessionManager()
        a = manager.create(login_definition)
        b = manager.create(login_definition)
        a.store.set_value("email", "a@b.com")
        assert b.store.get_state().values["email"] == ""

    def test_expiry_and_close_callback(self, login_definition):
        clock = FakeClock()
        opened, closed = [], []
        manager = FormSessionManager(
            ttl_seconds=60,
            on_open=opened.append,
            on_close=lambda *args: closed.append(args),
            clock=clock,
        )
        session = manager.create(login_definition)
        assert opened == [session.session_id]

        clock.now += 30
        assert manager.get(session.session_id) is session  # refreshes last access
        clock.now += 61
        assert manager.get(session.session_id) is None
        assert closed == [(session.session_id, "login", "expired")]
        assert manager.count() == 0

    def test_limit(self, login_definition):
        manager = FormSessionManager(max_sessions=1)
        manager.create(login_definition)
        with pytest.raises(SessionLimitError):
            manager.create(login_definition)

    def test_limit_frees_expired_sessions(self, login_definition):
        clock = FakeClock()
        manager = FormSessionManager(ttl_seconds=10, max_sessions=1, clock=clock)
        manager.create(login_definition)
        clock.now += 11
        assert manager.create(login_definition) is not None

    def test_delete(self, login_definition):
        manager = FormSessionManager()
        session = manager.create(login_definition)
        assert manager.delete(session.session_id)
        assert not manager.delete(session.session_id)
        assert manager.get(session.session_id) is None


class FakeResponse:

    def __init__(self, status, body):
        self.status = status
        self._body = body

    async def json(self, content_type=None):
        if self._body is None:
            raise ValueError("no body")
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None):
        self.calls.append((url, json))
        if self.error is not None:
            raise self.error
        return self.response


class TestHealthMateGateway:

    def _gateway(self, session):
        gateway = HealthMateGateway(base_url="http://api.test/api/", timeout_seconds=5)
        gateway._get_session = lambda: session
        return gateway

    @pytest.mark.asyncio
    async def test_register_drops_confirm_password(self):
        session = FakeSession(FakeResponse(201, {"user": {"name": "Ada"}}))
        gateway = self._gateway(session)

        result = await gateway.register({
            "name": "Ada",
            "email": "ada@example.com",
            "password": "Abc12345",
            "confirmPassword": "Abc12345",
        })

        assert result == {"user": {"name": "Ada"}}
        url, payload = session.calls[0]
        assert url == "http://api.test/api/auth/register"
        assert payload == {"name": "Ada", "email": "ada@example.com", "password": "Abc12345"}

    @pytest.mark.asyncio
    async def test_error_message_from_api_body(self):
        session = FakeSession(FakeResponse(401, {"message": "Invalid credentials"}))
        with pytest.raises(GatewayError) as exc_info:
            await self._gateway(session).login({"email": "a@b.com", "password": "secret1"})
        assert str(exc_info.value) == "Invalid credentials"
        assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_error_without_body_has_empty_message(self):
        session = FakeSession(FakeResponse(500, None))
        with pytest.raises(GatewayError) as exc_info:
            await self._gateway(session).send_contact({"name": "Ada"})
        assert str(exc_info.value) == ""

    @pytest.mark.asyncio
    async def test_connection_error_becomes_gateway_error(self):
        session = FakeSession(error=aiohttp.ClientConnectionError("refused"))
        with pytest.raises(GatewayError):
            await self._gateway(session).send_contact({"name": "Ada"})

    def test_handler_for(self):
        gateway = HealthMateGateway(base_url="http://api.test")
        assert gateway.handler_for("login") == gateway.login
        assert gateway.handler_for("register") == gateway.register
        assert gateway.handler_for("contact") == gateway.send_contact
        assert gateway.handler_for("unknown") is None

    def test_base_url_defaults_to_settings(self):
        with patch("healthmate.services.gateway.get_settings") as mock_settings:
            mock_settings.return_value.API_URL = "http://configured/api"
            mock_settings.return_value.HTTP_TIMEOUT_SECONDS = 3
            assert HealthMateGateway().base_url == "http://configured/api"
