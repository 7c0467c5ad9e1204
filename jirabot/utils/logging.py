"""
Logging utilities for the Jira bot.
"""

import logging
from typing import Optional


_logger: Optional[logging.Logger] = None


def get_logger() -> logging.Logger:
    """Get the application logger, initializing if needed."""
    global _logger
    if _logger is None:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s | %(levelname)-8s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        _logger = logging.getLogger("jirabot")
    return _logger


logger = get_logger()


def flush_handlers() -> None:
    """Flush every handler between the application logger and the root."""
    current: Optional[logging.Logger] = logger
    while current is not None:
        for handler in current.handlers:
            handler.flush()
        if not current.propagate:
            break
        current = current.parent


def log_fatal(msg: str, **fields: Optional[str]) -> None:
    """Emit a single fatal-severity record and flush it out.

    The rendered message carries the fields for humans; the structured copy
    is attached to the record as ``fatal_event`` for handlers that want it.

    Args:
        msg: Fixed description of the failure category.
        **fields: Extra string fields (e.g. reason, operation). None values
            are left out of the record.
    """
    event = {"msg": msg}
    event.update({key: value for key, value in fields.items() if value is not None})

    details = " | ".join(f"{key}={value}" for key, value in event.items() if key != "msg")
    rendered = f"{msg} | {details}" if details else msg

    logger.critical(rendered, extra={"fatal_event": event})
    flush_handlers()
