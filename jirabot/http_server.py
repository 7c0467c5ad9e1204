"""
Inbound HTTP listener.

Serves a health route and receives Jira webhooks, which are announced in
the Discord channel named by the URL.
"""

import asyncio
import hmac
from typing import TYPE_CHECKING

import discord
from aiohttp import web

from .config import HTTP_ROUTE_PREFIX
from .utils.logging import logger
from .utils.message_templates import MessageTemplates
from .utils.task_registry import get_task_registry

if TYPE_CHECKING:
    from .context import Context

CONTEXT_KEY = web.AppKey("context", object)


async def handle_health(request: web.Request) -> web.Response:
    return web.Response(text="jirabot is running")


async def handle_webhook(request: web.Request) -> web.Response:
    """Post a Jira webhook event to a Discord channel."""
    context = request.app[CONTEXT_KEY]
    secret = context.config.http.webhook_secret
    supplied = request.query.get("secret", "")
    if secret and not hmac.compare_digest(supplied.encode(), secret.encode()):
        logger.warning(f"Rejected webhook with bad secret from {request.remote}")
        raise web.HTTPForbidden(text="bad secret")

    try:
        channel_id = int(request.match_info["channel_id"])
    except ValueError:
        raise web.HTTPBadRequest(text="channel id must be numeric")

    try:
        payload = await request.json()
    except ValueError:
        raise web.HTTPBadRequest(text="body must be JSON")
    if not isinstance(payload, dict):
        raise web.HTTPBadRequest(text="body must be a JSON object")

    message = MessageTemplates.format_webhook_event(payload, context.jira.site_url)
    if message is None:
        logger.debug(f"Ignoring webhook event {payload.get('webhookEvent')}")
        return web.Response(status=204)

    channel = context.bot.get_channel(channel_id)
    if channel is None:
        raise web.HTTPNotFound(text=f"unknown channel {channel_id}")

    try:
        await channel.send(message)
    except discord.HTTPException as e:
        logger.error(f"Failed to post webhook event to channel {channel_id}: {e}")
        raise web.HTTPBadGateway(text="could not post to Discord")

    return web.Response(text="ok")


def create_app(context: "Context") -> web.Application:
    """Create the aiohttp application bound to the shared context."""
    app = web.Application()
    app[CONTEXT_KEY] = context
    app.router.add_get(HTTP_ROUTE_PREFIX, handle_health)
    app.router.add_post(f"{HTTP_ROUTE_PREFIX}/webhook/{{channel_id}}", handle_webhook)
    return app


async def serve(context: "Context") -> None:
    """Serve the application until the process ends."""
    http = context.config.http
    runner = web.AppRunner(create_app(context))
    await runner.setup()
    site = web.TCPSite(runner, http.host, http.port)
    await site.start()

    public = http.address_prefix or f"http://{http.host}:{http.port}"
    logger.info(f"HTTP listener on {http.host}:{http.port}")
    logger.info(f"Jira webhook URL: {public}{HTTP_ROUTE_PREFIX}/webhook/<discord channel id>")

    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


def start_http_server(context: "Context") -> None:
    """Launch the HTTP listener as a tracked task."""
    get_task_registry().spawn(serve(context), name="http-server")
