"""
Shared runtime context.

Built once at startup and handed to every subsystem.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .bot import JiraBot, create_bot
from .commands import setup_issue_commands
from .config import BotConfig
from .jira import JiraClient
from .utils.logging import logger


@dataclass
class Context:
    """Connections and caches shared by the HTTP listener, tasks and bot."""
    config: BotConfig
    jira: JiraClient
    bot: JiraBot
    projects: Dict[str, str] = field(default_factory=dict)
    scheduler: Optional[Any] = None


async def init(config: BotConfig) -> Context:
    """Build the shared runtime context.

    Verifies the Jira credentials, creates the Discord client with its
    commands and logs it in. Nothing here retries: a failure propagates to
    the caller after the Jira session is closed.

    Args:
        config: The validated bot configuration.

    Returns:
        The initialized Context.
    """
    jira = JiraClient(config.jira)
    bot: Optional[JiraBot] = None
    await jira.open()
    try:
        account = await jira.get_myself()
        logger.info(f"Jira: authenticated as {account.get('displayName', config.jira.email)} on {jira.site_url}")

        bot = create_bot(config.discord)
        context = Context(config=config, jira=jira, bot=bot)
        setup_issue_commands(bot, context)

        await bot.login(config.discord.token)
        logger.info("Discord: logged in")
    except Exception:
        if bot is not None:
            await bot.close()
        await jira.close()
        raise

    return context
