"""
Discord bot commands for the Jira bot.
"""

from .issues import setup_issue_commands

__all__ = [
    "setup_issue_commands",
]
