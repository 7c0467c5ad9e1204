"""
Discord bot client for the Jira bot.
"""

from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands

from .config import DiscordConfig
from .utils.logging import logger
from .utils.task_registry import get_task_registry

if TYPE_CHECKING:
    from .context import Context


class JiraBot(discord.Client):
    """Discord bot client with application commands support."""

    def __init__(self, guild_id: Optional[int] = None) -> None:
        intents = discord.Intents.default()
        super().__init__(intents=intents)
        self.tree = app_commands.CommandTree(self)
        self.guild_id = guild_id

    async def setup_hook(self) -> None:
        """Sync slash commands once the application id is known."""
        if self.guild_id is not None:
            guild = discord.Object(id=self.guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logger.info(f"Synced commands to guild {self.guild_id}")
        else:
            await self.tree.sync()
            logger.info("Synced global commands")

    async def on_ready(self) -> None:
        await on_ready_handler(self)


def create_bot(config: DiscordConfig) -> JiraBot:
    """Create a new bot instance."""
    return JiraBot(guild_id=config.guild_id)


async def on_ready_handler(bot: JiraBot) -> None:
    """Handle the on_ready event."""
    logger.info(f"Bot is ready! Logged in as {bot.user}")
    logger.info(f"Connected to {len(bot.guilds)} guild(s)")


def start_bot(context: "Context") -> None:
    """Launch the bot loop.

    Login already happened while the context was built, so this only opens
    the gateway connection. The connection runs as a tracked task; nothing
    waits for it.
    """
    logger.info("Starting Discord gateway connection...")
    get_task_registry().spawn(context.bot.connect(reconnect=True), name="bot")
