"""
Jira REST client.

This module provides functionality to:
- Verify credentials against the Jira site
- Look up, search, create and comment on issues
- List the projects visible to the bot account
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from .config import JiraConfig, JIRA_REQUEST_TIMEOUT_SECONDS, MAX_SEARCH_RESULTS
from .utils.logging import logger


API_PATH = "/rest/api/2"
SEARCH_FIELDS = ["summary", "status", "issuetype", "assignee"]
ISSUE_KEY_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]*-\d+$")


class JiraError(Exception):
    """Raised when Jira answers with an error status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"Jira returned {status}: {message}")
        self.status = status
        self.message = message


@dataclass
class Issue:
    """Flattened view of a Jira issue."""
    key: str
    summary: str
    status: str
    issue_type: str
    url: str
    assignee: Optional[str] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any], site_url: str) -> "Issue":
        """Build an Issue from a REST payload."""
        fields = data.get("fields") or {}
        assignee = fields.get("assignee") or {}
        return cls(
            key=data["key"],
            summary=fields.get("summary") or "",
            status=(fields.get("status") or {}).get("name", "Unknown"),
            issue_type=(fields.get("issuetype") or {}).get("name", "Issue"),
            url=f"{site_url}/browse/{data['key']}",
            assignee=assignee.get("displayName"),
        )


class JiraClient:
    """Minimal async client for the Jira REST API."""

    def __init__(
        self,
        config: JiraConfig,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """Initialize the client.

        Args:
            config: Jira site and credentials.
            session: Existing HTTP session. When omitted, open() creates one.
        """
        self.config = config
        self.site_url = config.base_url
        self._session = session

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("JiraClient is not open")
        return self._session

    async def open(self) -> None:
        """Create the HTTP session if none was injected."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=JIRA_REQUEST_TIMEOUT_SECONDS),
                headers={
                    "Accept": "application/json",
                    "Authorization": aiohttp.BasicAuth(self.config.email, self.config.api_token).encode(),
                },
            )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()

    def issue_url(self, key: str) -> str:
        return f"{self.site_url}/browse/{key}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.site_url}{API_PATH}{path}"
        async with self.session.request(method, url, **kwargs) as response:
            if response.status >= 400:
                text = await response.text()
                logger.warning(f"Jira {method} {path} failed with {response.status}")
                raise JiraError(response.status, _error_message(text))
            if response.status == 204:
                return None
            return await response.json()

    async def get_myself(self) -> Dict[str, Any]:
        """Return the account the credentials belong to."""
        return await self._request("GET", "/myself")

    async def get_issue(self, key: str) -> Issue:
        data = await self._request("GET", f"/issue/{key}", params={"fields": ",".join(SEARCH_FIELDS)})
        return Issue.from_json(data, self.site_url)

    async def search(self, jql: str, max_results: int = MAX_SEARCH_RESULTS) -> List[Issue]:
        """Run a JQL search and return at most max_results issues."""
        data = await self._request("POST", "/search", json={
            "jql": jql,
            "maxResults": max_results,
            "fields": SEARCH_FIELDS,
        })
        return [Issue.from_json(item, self.site_url) for item in data.get("issues", [])]

    async def create_issue(
        self,
        project: str,
        summary: str,
        description: str = "",
        issue_type: Optional[str] = None
    ) -> str:
        """Create an issue and return its key."""
        data = await self._request("POST", "/issue", json={
            "fields": {
                "project": {"key": project},
                "summary": summary,
                "description": description,
                "issuetype": {"name": issue_type or self.config.default_issue_type},
            }
        })
        logger.info(f"Created Jira issue {data['key']}")
        return data["key"]

    async def add_comment(self, key: str, body: str) -> None:
        await self._request("POST", f"/issue/{key}/comment", json={"body": body})

    async def list_projects(self) -> Dict[str, str]:
        """Return project keys mapped to project names."""
        data = await self._request("GET", "/project")
        return {project["key"]: project.get("name", project["key"]) for project in data}


def _error_message(text: str) -> str:
    """Pull the readable part out of a Jira error body."""
    try:
        payload = json.loads(text)
    except ValueError:
        return text.strip() or "no details"
    if not isinstance(payload, dict):
        return text.strip()
    messages = list(payload.get("errorMessages") or [])
    messages.extend(f"{field}: {msg}" for field, msg in (payload.get("errors") or {}).items())
    return "; ".join(messages) or text.strip()


def normalize_issue_key(key: str) -> Optional[str]:
    """Upper-case an issue key, or return None if it is not of the form ABC-123."""
    key = key.strip().upper()
    if not ISSUE_KEY_PATTERN.match(key):
        return None
    return key
