"""
Slash commands for working with Jira issues.

This module provides:
- /jirashow: Show a single issue
- /jirasearch: Run a JQL search
- /jiranew: Create an issue
- /jiracomment: Comment on an issue
"""

import asyncio
from typing import TYPE_CHECKING, Optional

import aiohttp
import discord
from discord import app_commands

from ..config import MAX_SEARCH_RESULTS
from ..jira import JiraError, normalize_issue_key
from ..utils.logging import logger
from ..utils.message_templates import MessageTemplates
from ..utils.text_utils import format_error_message, split_message

if TYPE_CHECKING:
    from ..context import Context

# Failures reported back to the user instead of raised
JIRA_ERRORS = (JiraError, aiohttp.ClientError, asyncio.TimeoutError)


async def _send_jira_error(interaction: discord.Interaction, action: str, error: Exception) -> None:
    logger.warning(f"{action} failed for {interaction.user}: {error}")
    if isinstance(error, JiraError):
        detail = error.message
    else:
        detail = "Jira could not be reached, try again later"
    await interaction.followup.send(format_error_message(action, detail), ephemeral=True)


async def _reject_issue_key(interaction: discord.Interaction, key: str) -> None:
    await interaction.response.send_message(
        MessageTemplates.INVALID_ISSUE_KEY.format(key=key.strip()),
        ephemeral=True
    )


def setup_issue_commands(bot, context: "Context") -> tuple:
    """Set up the issue commands on the bot.

    Returns:
        Tuple of (jirashow, jirasearch, jiranew, jiracomment) command functions.
    """
    jira = context.jira

    @bot.tree.command(name="jirashow", description="Show a Jira issue")
    @app_commands.describe(key="Issue key, e.g. ABC-123")
    async def jirashow(interaction: discord.Interaction, key: str) -> None:
        issue_key = normalize_issue_key(key)
        if issue_key is None:
            await _reject_issue_key(interaction, key)
            return

        await interaction.response.defer()
        try:
            issue = await jira.get_issue(issue_key)
        except JIRA_ERRORS as e:
            await _send_jira_error(interaction, f"Could not load {issue_key}", e)
            return
        await interaction.followup.send(MessageTemplates.format_issue_detail(issue))

    @bot.tree.command(name="jirasearch", description="Search Jira issues with JQL")
    @app_commands.describe(jql="JQL query, e.g. project = ABC AND status = Open")
    async def jirasearch(interaction: discord.Interaction, jql: str) -> None:
        await interaction.response.defer()
        try:
            issues = await jira.search(jql, max_results=MAX_SEARCH_RESULTS)
        except JIRA_ERRORS as e:
            await _send_jira_error(interaction, "Search failed", e)
            return
        for chunk in split_message(MessageTemplates.format_search_results(jql, issues)):
            await interaction.followup.send(chunk)

    @bot.tree.command(name="jiranew", description="Create a Jira issue")
    @app_commands.describe(
        project="Project key, e.g. ABC",
        summary="One-line summary",
        description="Optional: longer description"
    )
    async def jiranew(
        interaction: discord.Interaction,
        project: str,
        summary: str,
        description: Optional[str] = None
    ) -> None:
        project = project.strip().upper()
        # The cache is empty until the first refresh; let Jira decide then
        if context.projects and project not in context.projects:
            await interaction.response.send_message(
                MessageTemplates.format_unknown_project(project, list(context.projects)),
                ephemeral=True
            )
            return

        await interaction.response.defer()
        reporter = f"Reported from Discord by {interaction.user}"
        body = f"{description}\n\n{reporter}" if description else reporter
        try:
            key = await jira.create_issue(project, summary, body)
        except JIRA_ERRORS as e:
            await _send_jira_error(interaction, "Could not create issue", e)
            return

        await interaction.followup.send(MessageTemplates.ISSUE_CREATED.format(
            key=key, url=jira.issue_url(key), summary=summary
        ))

    @bot.tree.command(name="jiracomment", description="Comment on a Jira issue")
    @app_commands.describe(key="Issue key, e.g. ABC-123", text="Comment text")
    async def jiracomment(interaction: discord.Interaction, key: str, text: str) -> None:
        issue_key = normalize_issue_key(key)
        if issue_key is None:
            await _reject_issue_key(interaction, key)
            return

        await interaction.response.defer(ephemeral=True)
        try:
            await jira.add_comment(issue_key, f"{text}\n\nPosted by {interaction.user} via Discord")
        except JIRA_ERRORS as e:
            await _send_jira_error(interaction, f"Could not comment on {issue_key}", e)
            return
        await interaction.followup.send(
            MessageTemplates.COMMENT_ADDED.format(key=issue_key, url=jira.issue_url(issue_key)),
            ephemeral=True
        )

    return jirashow, jirasearch, jiranew, jiracomment
