"""
Utility modules for the Jira bot.
"""

from .logging import get_logger, log_fatal
from .task_registry import TaskRegistry, get_task_registry

__all__ = [
    "get_logger",
    "log_fatal",
    "TaskRegistry",
    "get_task_registry",
]
