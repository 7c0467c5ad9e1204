"""
Tests for the HTTP listener.

This module tests the health route, Jira webhook handling and the
launcher that runs the server as a tracked task.
"""

import asyncio
import hmac
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest
from aiohttp.test_utils import TestClient, TestServer

from jirabot.http_server import create_app, serve, start_http_server


SITE = "https://example.atlassian.net"

CREATED_EVENT = {
    "webhookEvent": "jira:issue_created",
    "user": {"displayName": "Dana"},
    "issue": {"key": "ABC-5", "fields": {"summary": "Checkout is slow"}},
}


@pytest.fixture
def channel():
    channel = MagicMock()
    channel.send = AsyncMock()
    return channel


@pytest.fixture
def context(channel):
    context = MagicMock()
    context.config.http.webhook_secret = None
    context.config.http.host = "127.0.0.1"
    context.config.http.port = 0
    context.config.http.address_prefix = ""
    context.jira.site_url = SITE
    context.bot.get_channel.return_value = channel
    return context


class TestRoutes:
    """Tests for the aiohttp routes."""

    @pytest.mark.asyncio
    async def test_health(self, context):
        async with TestClient(TestServer(create_app(context))) as client:
            resp = await client.get("/jirabot")
            assert resp.status == 200
            assert "running" in await resp.text()

    @pytest.mark.asyncio
    async def test_webhook_posts_to_channel(self, context, channel):
        """
        Tests a supported webhook event:
        - Channel looked up by the id in the URL
        - Message mentions the issue key and actor
        """
        async with TestClient(TestServer(create_app(context))) as client:
            resp = await client.post("/jirabot/webhook/42", json=CREATED_EVENT)
            assert resp.status == 200

        context.bot.get_channel.assert_called_once_with(42)
        channel.send.assert_awaited_once()
        message = channel.send.call_args[0][0]
        assert "ABC-5" in message
        assert "Dana created" in message

    @pytest.mark.asyncio
    async def test_ignored_event(self, context, channel):
        async with TestClient(TestServer(create_app(context))) as client:
            resp = await client.post("/jirabot/webhook/42", json={"webhookEvent": "sprint_started"})
            assert resp.status == 204
        channel.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_channel(self, context):
        context.bot.get_channel.return_value = None
        async with TestClient(TestServer(create_app(context))) as client:
            resp = await client.post("/jirabot/webhook/42", json=CREATED_EVENT)
            assert resp.status == 404

    @pytest.mark.asyncio
    async def test_bad_requests(self, context):
        async with TestClient(TestServer(create_app(context))) as client:
            resp = await client.post("/jirabot/webhook/general", json=CREATED_EVENT)
            assert resp.status == 400

            resp = await client.post("/jirabot/webhook/42", data="not json")
            assert resp.status == 400

            resp = await client.post("/jirabot/webhook/42", json=["a", "list"])
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_webhook_secret(self, context, channel):
        context.config.http.webhook_secret = "hook"
        async with TestClient(TestServer(create_app(context))) as client:
            resp = await client.post("/jirabot/webhook/42", json=CREATED_EVENT)
            assert resp.status == 403

            resp = await client.post("/jirabot/webhook/42?secret=wrong", json=CREATED_EVENT)
            assert resp.status == 403

            resp = await client.post("/jirabot/webhook/42?secret=h%C3%A9", json=CREATED_EVENT)
            assert resp.status == 403

            resp = await client.post("/jirabot/webhook/42?secret=hook", json=CREATED_EVENT)
            assert resp.status == 200
        channel.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_webhook_secret_compared_in_constant_time(self, context):
        context.config.http.webhook_secret = "hook"
        with patch("jirabot.http_server.hmac.compare_digest", wraps=hmac.compare_digest) as compare:
            async with TestClient(TestServer(create_app(context))) as client:
                resp = await client.post("/jirabot/webhook/42?secret=hook", json=CREATED_EVENT)
                assert resp.status == 200
        compare.assert_called_once_with(b"hook", b"hook")

    @pytest.mark.asyncio
    async def test_discord_failure(self, context, channel):
        response = MagicMock()
        response.status = 500
        response.reason = "Internal Server Error"
        channel.send.side_effect = discord.HTTPException(response, "boom")

        async with TestClient(TestServer(create_app(context))) as client:
            resp = await client.post("/jirabot/webhook/42", json=CREATED_EVENT)
            assert resp.status == 502


class TestServe:
    """Tests for serve() and the launcher."""

    @pytest.mark.asyncio
    async def test_serves_until_cancelled(self, context):
        task = asyncio.ensure_future(serve(context))
        await asyncio.sleep(0.1)
        assert not task.done()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    def test_launcher_spawns_tracked_task(self, context):
        with patch("jirabot.http_server.get_task_registry") as mock_registry:
            start_http_server(context)

        spawn = mock_registry.return_value.spawn
        spawn.assert_called_once()
        assert spawn.call_args[1]["name"] == "http-server"
        spawn.call_args[0][0].close()
