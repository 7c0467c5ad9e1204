"""
Configuration settings for the Jira bot.

The whole bot configuration arrives as one YAML (or JSON) document in the
JIRABOT_CONFIG environment variable. Tunables that are not secret live here
as module constants.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .utils.logging import logger

# Load environment variables (safe - just reads .env file)
load_dotenv()

# Environment variable holding the bot configuration document
CONFIG_ENV_VAR = "JIRABOT_CONFIG"

# HTTP listener defaults
DEFAULT_HTTP_HOST = "0.0.0.0"
DEFAULT_HTTP_PORT = 8080
HTTP_ROUTE_PREFIX = "/jirabot"

# Background task defaults
DEFAULT_REFRESH_INTERVAL_SECONDS = 300

# Jira defaults
DEFAULT_ISSUE_TYPE = "Task"
JIRA_REQUEST_TIMEOUT_SECONDS = 30
MAX_SEARCH_RESULTS = 10

# Discord Message Configuration
MAX_MESSAGE_LENGTH = 2000  # Discord max for regular messages
ISSUE_SUMMARY_TRUNCATE_LENGTH = 120


@dataclass(frozen=True)
class DiscordConfig:
    """Discord credentials."""
    token: str
    guild_id: Optional[int] = None


@dataclass(frozen=True)
class JiraConfig:
    """Jira site and API credentials."""
    host: str
    email: str
    api_token: str
    default_issue_type: str = DEFAULT_ISSUE_TYPE

    @property
    def base_url(self) -> str:
        """Site URL with scheme, without trailing slash."""
        host = self.host.rstrip("/")
        if host.startswith(("http://", "https://")):
            return host
        return f"https://{host}"


@dataclass(frozen=True)
class HttpConfig:
    """HTTP listener settings."""
    host: str = DEFAULT_HTTP_HOST
    port: int = DEFAULT_HTTP_PORT
    address_prefix: str = ""
    webhook_secret: Optional[str] = None


@dataclass(frozen=True)
class TasksConfig:
    """Background task settings."""
    refresh_interval_seconds: int = DEFAULT_REFRESH_INTERVAL_SECONDS


@dataclass(frozen=True)
class BotConfig:
    """Validated bot configuration."""
    discord: DiscordConfig
    jira: JiraConfig
    http: HttpConfig = field(default_factory=HttpConfig)
    tasks: TasksConfig = field(default_factory=TasksConfig)


class ConfigError(ValueError):
    """Raised internally when the configuration document is invalid."""


def _section(document: Dict[str, Any], name: str, required: bool = True) -> Dict[str, Any]:
    value = document.get(name)
    if value is None:
        if required:
            raise ConfigError(f"missing section '{name}'")
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"section '{name}' must be a mapping")
    return value


def _string(section: Dict[str, Any], path: str, key: str, required: bool = True) -> Optional[str]:
    value = section.get(key)
    if value is None or value == "":
        if required:
            raise ConfigError(f"missing '{path}.{key}'")
        return None
    if not isinstance(value, str):
        raise ConfigError(f"'{path}.{key}' must be a string")
    return value


def _integer(section: Dict[str, Any], path: str, key: str, default: Optional[int]) -> Optional[int]:
    value = section.get(key)
    if value is None:
        return default
    # bool is an int subclass; "true" is never a valid port or id
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{path}.{key}' must be an integer")
    return value


def _build(document: Dict[str, Any]) -> BotConfig:
    discord_section = _section(document, "discord")
    jira_section = _section(document, "jira")
    http_section = _section(document, "http", required=False)
    tasks_section = _section(document, "tasks", required=False)

    discord = DiscordConfig(
        token=_string(discord_section, "discord", "token"),
        guild_id=_integer(discord_section, "discord", "guild_id", None),
    )

    jira = JiraConfig(
        host=_string(jira_section, "jira", "host"),
        email=_string(jira_section, "jira", "email"),
        api_token=_string(jira_section, "jira", "api_token"),
        default_issue_type=(
            _string(jira_section, "jira", "default_issue_type", required=False)
            or DEFAULT_ISSUE_TYPE
        ),
    )

    port = _integer(http_section, "http", "port", DEFAULT_HTTP_PORT)
    if not 1 <= port <= 65535:
        raise ConfigError(f"'http.port' out of range: {port}")
    http = HttpConfig(
        host=_string(http_section, "http", "host", required=False) or DEFAULT_HTTP_HOST,
        port=port,
        address_prefix=(_string(http_section, "http", "address_prefix", required=False) or "").rstrip("/"),
        webhook_secret=_string(http_section, "http", "webhook_secret", required=False),
    )

    interval = _integer(
        tasks_section, "tasks", "refresh_interval_seconds", DEFAULT_REFRESH_INTERVAL_SECONDS
    )
    if interval <= 0:
        raise ConfigError("'tasks.refresh_interval_seconds' must be positive")
    tasks = TasksConfig(refresh_interval_seconds=interval)

    return BotConfig(discord=discord, jira=jira, http=http, tasks=tasks)


def parse(raw: str) -> Optional[BotConfig]:
    """Parse the raw configuration document.

    Args:
        raw: YAML or JSON text, usually the value of JIRABOT_CONFIG.

    Returns:
        The validated BotConfig, or None if the document is empty or invalid.
    """
    if not raw or not raw.strip():
        logger.warning(f"{CONFIG_ENV_VAR} is empty")
        return None

    try:
        document = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        logger.warning(f"{CONFIG_ENV_VAR} is not valid YAML/JSON: {e}")
        return None

    if not isinstance(document, dict):
        logger.warning(f"{CONFIG_ENV_VAR} must be a mapping, got {type(document).__name__}")
        return None

    try:
        return _build(document)
    except ConfigError as e:
        logger.warning(f"{CONFIG_ENV_VAR} rejected: {e}")
        return None
