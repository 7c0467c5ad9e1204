"""
Message templates for Discord messages.

Keeps the wording of everything the bot posts in one place.
"""

from typing import Any, Dict, List, Optional

from ..config import ISSUE_SUMMARY_TRUNCATE_LENGTH
from .text_utils import truncate_text


# Jira webhook events the bot announces, mapped to their verb
WEBHOOK_EVENT_VERBS = {
    "jira:issue_created": "created",
    "jira:issue_updated": "updated",
    "jira:issue_deleted": "deleted",
    "comment_created": "commented on",
}


class MessageTemplates:
    """Centralized message templates for Discord messages."""

    ISSUE_LINE = "**[{key}]({url})** {summary} · *{status}*"

    ISSUE_DETAIL = (
        "🎫 **[{key}]({url})** {summary}\n"
        "Type: {issue_type} · Status: **{status}** · Assignee: {assignee}"
    )

    NO_RESULTS = "🔍 No issues match `{jql}`."

    SEARCH_HEADER = "🔍 **{count} issue(s)** for `{jql}`:"

    ISSUE_CREATED = "✅ Created **[{key}]({url})** {summary}"

    INVALID_ISSUE_KEY = "❌ `{key}` is not an issue key, expected something like `ABC-123`."

    COMMENT_ADDED = "💬 Comment added to **[{key}]({url})**"

    UNKNOWN_PROJECT = (
        "❌ Unknown project `{project}`.\n"
        "Known projects: {known}"
    )

    WEBHOOK_EVENT = "📣 {user} {verb} **[{key}]({url})** {summary}"

    WEBHOOK_COMMENT = "> {comment}"

    @staticmethod
    def format_issue_line(issue) -> str:
        return MessageTemplates.ISSUE_LINE.format(
            key=issue.key,
            url=issue.url,
            summary=truncate_text(issue.summary, ISSUE_SUMMARY_TRUNCATE_LENGTH),
            status=issue.status,
        )

    @staticmethod
    def format_issue_detail(issue) -> str:
        return MessageTemplates.ISSUE_DETAIL.format(
            key=issue.key,
            url=issue.url,
            summary=issue.summary,
            issue_type=issue.issue_type,
            status=issue.status,
            assignee=issue.assignee or "Unassigned",
        )

    @staticmethod
    def format_search_results(jql: str, issues: List) -> str:
        """Format a search result list."""
        if not issues:
            return MessageTemplates.NO_RESULTS.format(jql=jql)
        lines = [MessageTemplates.SEARCH_HEADER.format(count=len(issues), jql=jql)]
        lines.extend(f"• {MessageTemplates.format_issue_line(issue)}" for issue in issues)
        return "\n".join(lines)

    @staticmethod
    def format_unknown_project(project: str, known: List[str]) -> str:
        listed = ", ".join(f"`{key}`" for key in sorted(known)) or "none loaded yet"
        return MessageTemplates.UNKNOWN_PROJECT.format(project=project, known=listed)

    @staticmethod
    def format_webhook_event(payload: Dict[str, Any], site_url: str) -> Optional[str]:
        """Render a Jira webhook payload.

        Args:
            payload: Decoded webhook body.
            site_url: Jira site URL used to build issue links.

        Returns:
            The message to post, or None if the event is not announced.
        """
        verb = WEBHOOK_EVENT_VERBS.get(payload.get("webhookEvent", ""))
        issue = payload.get("issue")
        if verb is None or not isinstance(issue, dict) or "key" not in issue:
            return None

        fields = issue.get("fields") or {}
        user = (payload.get("user") or {}).get("displayName") or "Someone"
        message = MessageTemplates.WEBHOOK_EVENT.format(
            user=user,
            verb=verb,
            key=issue["key"],
            url=f"{site_url}/browse/{issue['key']}",
            summary=truncate_text(fields.get("summary") or "", ISSUE_SUMMARY_TRUNCATE_LENGTH),
        )

        comment = (payload.get("comment") or {}).get("body")
        if comment:
            quoted = truncate_text(comment.strip(), ISSUE_SUMMARY_TRUNCATE_LENGTH * 3)
            message += "\n" + MessageTemplates.WEBHOOK_COMMENT.format(
                comment=quoted.replace("\n", "\n> ")
            )
        return message
