"""Tests for BotEndpoint and the webhook app factory."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer
from botbuilder.schema import Activity

from chatbridge import __version__
from chatbridge.server.app import QuietAccessLogger, create_adapter, create_app
from chatbridge.server.bot_endpoint import BotEndpoint


def _endpoint(configured: bool = True) -> BotEndpoint:
    adapter = AsyncMock()
    adapter.process_activity = AsyncMock(return_value=None)
    bot = AsyncMock()
    return BotEndpoint(adapter, bot, credentials_configured=configured)


def _app(endpoint: BotEndpoint) -> web.Application:
    app = web.Application()
    endpoint.register(app.router)
    return app


class TestHandle:
    @pytest.mark.asyncio
    async def test_no_credentials(self) -> None:
        async with TestClient(TestServer(_app(_endpoint(configured=False)))) as client:
            resp = await client.post("/api/messages", json={"type": "message"})
            assert resp.status == 503
            data = await resp.json()
            assert "not configured" in data["message"].lower()

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        endpoint = _endpoint()
        async with TestClient(TestServer(_app(endpoint))) as client:
            resp = await client.post(
                "/api/messages",
                json={"type": "message", "text": "hi", "channelId": "telegram"},
                headers={"Authorization": "Bearer fake"},
            )
            assert resp.status == 200

        activity, auth, _ = endpoint.adapter.process_activity.call_args.args
        assert isinstance(activity, Activity)
        assert activity.channel_id == "telegram"
        assert auth == "Bearer fake"

    @pytest.mark.asyncio
    async def test_process_returns_response(self) -> None:
        endpoint = _endpoint()
        response = MagicMock()
        response.status = 201
        response.body = {"ok": True}
        endpoint.adapter.process_activity.return_value = response
        async with TestClient(TestServer(_app(endpoint))) as client:
            resp = await client.post("/api/messages", json={"type": "invoke"})
            assert resp.status == 201
            assert await resp.json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        async with TestClient(TestServer(_app(_endpoint()))) as client:
            resp = await client.post("/api/messages", data=b"{not json", headers={"Content-Type": "application/json"})
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_non_object_json(self) -> None:
        async with TestClient(TestServer(_app(_endpoint()))) as client:
            resp = await client.post("/api/messages", json=[1, 2])
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_permission_error(self) -> None:
        endpoint = _endpoint()
        endpoint.adapter.process_activity.side_effect = PermissionError("denied")
        async with TestClient(TestServer(_app(endpoint))) as client:
            resp = await client.post("/api/messages", json={"type": "message"})
            assert resp.status == 401

    @pytest.mark.asyncio
    async def test_internal_error(self) -> None:
        endpoint = _endpoint()
        endpoint.adapter.process_activity.side_effect = RuntimeError("boom")
        async with TestClient(TestServer(_app(endpoint))) as client:
            resp = await client.post("/api/messages", json={"type": "message"})
            assert resp.status == 500

    @pytest.mark.asyncio
    async def test_get_messages_probe(self) -> None:
        async with TestClient(TestServer(_app(_endpoint(configured=False)))) as client:
            resp = await client.get("/api/messages")
            assert resp.status == 200
            data = await resp.json()
            assert data["method"] == "POST required"
            assert data["bot_configured"] is False


class TestCreateApp:
    @pytest.mark.asyncio
    async def test_health_and_routes(self, engine) -> None:
        app = await create_app(engine)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/health")
            assert resp.status == 200
            assert await resp.json() == {"status": "ok", "version": __version__}

            resp = await client.post("/api/messages", json={"type": "message"})
            assert resp.status == 503
        assert app["http_session"].closed

    @pytest.mark.asyncio
    async def test_credentials_from_settings(self, engine) -> None:
        with patch.multiple(
            "chatbridge.server.app.cfg", bot_app_id="test-id", bot_app_password="test-pw",
        ):
            app = await create_app(engine)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/messages")
            assert (await resp.json())["bot_configured"] is True


class TestAdapter:
    @pytest.mark.asyncio
    async def test_turn_error_reported(self) -> None:
        adapter = create_adapter()
        context = MagicMock()
        context.activity.channel_id = "telegram"
        context.send_activity = AsyncMock()

        await adapter.on_turn_error(context, RuntimeError("bad turn"))

        activity = context.send_activity.await_args.args[0]
        assert activity.text == "An error occurred."
        assert activity.text_format == "plain"

    @pytest.mark.asyncio
    async def test_turn_error_send_failure_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        adapter = create_adapter()
        context = MagicMock()
        context.activity.channel_id = "webchat"
        context.send_activity = AsyncMock(side_effect=ConnectionError("gone"))

        await adapter.on_turn_error(context, RuntimeError("bad turn"))

        assert "Could not report turn error" in caplog.text


class TestQuietAccessLogger:
    def test_health_demoted(self) -> None:
        inner = MagicMock()
        access = QuietAccessLogger(inner, "")
        request = MagicMock()
        request.path = "/health"
        access.log(request, MagicMock(status=200), 0.01)
        assert inner.log.call_args.args[0] == 10

    def test_other_paths_info(self) -> None:
        inner = MagicMock()
        access = QuietAccessLogger(inner, "")
        request = MagicMock()
        request.path = "/api/messages"
        access.log(request, MagicMock(status=200), 0.01)
        assert inner.log.call_args.args[0] == 20
