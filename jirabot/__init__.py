"""
Discord bot for Jira: issue commands, webhook announcements and a
supervisor that starts it all.
"""

__version__ = "0.1.0"
