"""
Tests for issue commands (jirashow, jirasearch, jiranew, jiracomment).
"""

import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock

from jirabot.commands.issues import setup_issue_commands
from jirabot.jira import Issue, JiraError


def make_issue(key: str = "ABC-1", summary: str = "Login button does nothing") -> Issue:
    return Issue(
        key=key,
        summary=summary,
        status="Open",
        issue_type="Bug",
        url=f"https://example.atlassian.net/browse/{key}",
        assignee=None,
    )


@pytest.fixture
def context():
    context = MagicMock()
    context.projects = {}
    context.jira = MagicMock()
    context.jira.issue_url = lambda key: f"https://example.atlassian.net/browse/{key}"
    return context


@pytest.fixture
def commands(context):
    """Register the commands on a mock bot and capture the handlers."""
    mock_bot = MagicMock()
    captured = {}

    def mock_command(*args, **kwargs):
        def decorator(func):
            captured[kwargs.get("name")] = func
            return func
        return decorator

    mock_bot.tree.command = mock_command
    setup_issue_commands(mock_bot, context)
    return captured


@pytest.fixture
def mock_interaction():
    """Create a mock Discord interaction."""
    interaction = AsyncMock()
    interaction.response = AsyncMock()
    interaction.followup = AsyncMock()
    interaction.user = MagicMock()
    interaction.user.__str__.return_value = "alice"
    return interaction


class TestSetupIssueCommands:
    """Tests for setup_issue_commands."""

    def test_registers_four_commands(self, commands):
        assert set(commands) == {"jirashow", "jirasearch", "jiranew", "jiracomment"}

    def test_returns_callables(self, context):
        mock_bot = MagicMock()
        mock_bot.tree.command = MagicMock(return_value=lambda f: f)

        handlers = setup_issue_commands(mock_bot, context)

        assert len(handlers) == 4
        assert all(callable(h) for h in handlers)


class TestJirashow:
    """Tests for the jirashow command."""

    @pytest.mark.asyncio
    async def test_shows_issue(self, commands, context, mock_interaction):
        context.jira.get_issue = AsyncMock(return_value=make_issue())

        await commands["jirashow"](mock_interaction, " abc-1 ")

        mock_interaction.response.defer.assert_awaited_once()
        context.jira.get_issue.assert_awaited_once_with("ABC-1")
        message = mock_interaction.followup.send.call_args[0][0]
        assert "ABC-1" in message
        assert "Unassigned" in message

    @pytest.mark.asyncio
    async def test_jira_error_reported(self, commands, context, mock_interaction):
        context.jira.get_issue = AsyncMock(side_effect=JiraError(404, "Issue does not exist"))

        await commands["jirashow"](mock_interaction, "ABC-404")

        args, kwargs = mock_interaction.followup.send.call_args
        assert "Issue does not exist" in args[0]
        assert kwargs["ephemeral"] is True

    @pytest.mark.asyncio
    async def test_network_error_reported(self, commands, context, mock_interaction):
        context.jira.get_issue = AsyncMock(side_effect=aiohttp.ClientConnectionError())

        await commands["jirashow"](mock_interaction, "ABC-1")

        assert "could not be reached" in mock_interaction.followup.send.call_args[0][0]

    @pytest.mark.asyncio
    async def test_malformed_key_rejected(self, commands, context, mock_interaction):
        context.jira.get_issue = AsyncMock()

        await commands["jirashow"](mock_interaction, "../../myself")

        context.jira.get_issue.assert_not_called()
        mock_interaction.response.defer.assert_not_called()
        args, kwargs = mock_interaction.response.send_message.call_args
        assert "../../myself" in args[0]
        assert "not an issue key" in args[0]
        assert kwargs["ephemeral"] is True


class TestJirasearch:
    """Tests for the jirasearch command."""

    @pytest.mark.asyncio
    async def test_lists_results(self, commands, context, mock_interaction):
        context.jira.search = AsyncMock(return_value=[make_issue("ABC-1"), make_issue("ABC-2")])

        await commands["jirasearch"](mock_interaction, "project = ABC")

        message = mock_interaction.followup.send.call_args[0][0]
        assert "2 issue(s)" in message
        assert "ABC-1" in message and "ABC-2" in message

    @pytest.mark.asyncio
    async def test_no_results(self, commands, context, mock_interaction):
        context.jira.search = AsyncMock(return_value=[])

        await commands["jirasearch"](mock_interaction, "project = NONE")

        assert "No issues" in mock_interaction.followup.send.call_args[0][0]


class TestJiranew:
    """Tests for the jiranew command."""

    @pytest.mark.asyncio
    async def test_creates_issue(self, commands, context, mock_interaction):
        context.jira.create_issue = AsyncMock(return_value="ABC-7")

        await commands["jiranew"](mock_interaction, "abc", "Add dark mode", "Please")

        project, summary, body = context.jira.create_issue.call_args[0]
        assert project == "ABC"
        assert summary == "Add dark mode"
        assert body.startswith("Please")
        assert "alice" in body
        assert "ABC-7" in mock_interaction.followup.send.call_args[0][0]

    @pytest.mark.asyncio
    async def test_unknown_project_rejected(self, commands, context, mock_interaction):
        context.projects = {"ABC": "Alpha"}
        context.jira.create_issue = AsyncMock()

        await commands["jiranew"](mock_interaction, "XYZ", "Something", None)

        context.jira.create_issue.assert_not_called()
        args, kwargs = mock_interaction.response.send_message.call_args
        assert "XYZ" in args[0]
        assert "`ABC`" in args[0]
        assert kwargs["ephemeral"] is True

    @pytest.mark.asyncio
    async def test_empty_cache_defers_to_jira(self, commands, context, mock_interaction):
        context.jira.create_issue = AsyncMock(side_effect=JiraError(400, "project: invalid"))

        await commands["jiranew"](mock_interaction, "XYZ", "Something", None)

        context.jira.create_issue.assert_awaited_once()
        assert "project: invalid" in mock_interaction.followup.send.call_args[0][0]


class TestJiracomment:
    """Tests for the jiracomment command."""

    @pytest.mark.asyncio
    async def test_adds_comment(self, commands, context, mock_interaction):
        context.jira.add_comment = AsyncMock()

        await commands["jiracomment"](mock_interaction, "abc-1", "Looks good")

        key, body = context.jira.add_comment.call_args[0]
        assert key == "ABC-1"
        assert body.startswith("Looks good")
        assert "alice" in body
        assert "ABC-1" in mock_interaction.followup.send.call_args[0][0]

    @pytest.mark.asyncio
    async def test_malformed_key_rejected(self, commands, context, mock_interaction):
        context.jira.add_comment = AsyncMock()

        await commands["jiracomment"](mock_interaction, "ABC 1", "Looks good")

        context.jira.add_comment.assert_not_called()
        args, kwargs = mock_interaction.response.send_message.call_args
        assert "`ABC 1`" in args[0]
        assert kwargs["ephemeral"] is True
