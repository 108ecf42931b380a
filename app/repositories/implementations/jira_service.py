from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
import structlog

from app.config.settings import Settings
from app.core.cache import TTLCache
from app.core.errors import ConfigurationError, IssueErrorKind
from app.models.schemas import IssueAttachment, IssueData, IssueResult
from app.repositories.interfaces.jira_service import IJiraService

logger = structlog.get_logger()


def extract_text_from_adf(node: Any) -> str:
    """Flatten an Atlassian Document Format tree to plain text.

    Block nodes (paragraphs, headings, list items) end with a newline; plain
    strings are returned as-is.
    """
    if node is None:
        return ""
    if isinstance(node, str):
        return node

    parts: List[str] = []
    block_types = {"paragraph", "heading", "listItem", "codeBlock", "blockquote", "tableRow"}

    def walk(current: Any) -> None:
        if isinstance(current, list):
            for child in current:
                walk(child)
            return
        if not isinstance(current, dict):
            return
        node_type = current.get("type")
        if node_type == "text":
            parts.append(current.get("text", ""))
        elif node_type == "hardBreak":
            parts.append("\n")
        elif node_type == "mention":
            parts.append(current.get("attrs", {}).get("text", ""))
        walk(current.get("content", []))
        if node_type in block_types:
            parts.append("\n")

    walk(node)
    lines = [line.strip() for line in "".join(parts).splitlines()]
    return "\n".join(line for line in lines if line)


def _classify_status(status_code: int) -> IssueErrorKind:
    if status_code in (401, 403):
        return IssueErrorKind.UNAUTHORIZED
    if status_code == 404:
        return IssueErrorKind.NOT_FOUND
    return IssueErrorKind.UNKNOWN


class AtlassianJiraService(IJiraService):
    """Atlassian JIRA Cloud implementation of JIRA service"""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cache: Optional[TTLCache] = None,
    ):
        if not (settings.jira_base_url and settings.jira_email and settings.jira_api_token):
            raise ConfigurationError("JIRA_BASE_URL, JIRA_EMAIL and JIRA_API_TOKEN are required")
        self.base_url = settings.jira_base_url.rstrip("/")
        self.auth = (settings.jira_email, settings.jira_api_token)
        self.transport = transport
        self.cache = cache if cache is not None else TTLCache(max_items=512)
        self.cache_ttl = settings.jira_cache_ttl_seconds

    async def get_issue(self, issue_key: str) -> IssueResult:
        """Get JIRA issue details; successful lookups are cached briefly."""
        cache_key = ("jira_issue", issue_key.upper())
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("JIRA issue cache hit", issue_key=issue_key)
            return IssueResult.ok(cached)

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=30.0) as client:
                response = await client.get(
                    f"{self.base_url}/rest/api/3/issue/{quote(issue_key, safe='')}",
                    auth=self.auth,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error("Error getting JIRA issue", issue_key=issue_key, error=str(e))
            return IssueResult.fail(f"Failed to reach JIRA: {e}")

        if response.status_code != 200:
            kind = _classify_status(response.status_code)
            logger.error(
                "Failed to get JIRA issue",
                issue_key=issue_key,
                status_code=response.status_code,
                kind=kind.value,
            )
            return IssueResult.fail(self._error_message(issue_key, response.status_code, kind), kind)

        issue = self._to_issue(response.json())
        self.cache.set(cache_key, issue, self.cache_ttl)
        return IssueResult.ok(issue)

    def _to_issue(self, payload: Dict[str, Any]) -> IssueData:
        fields = payload.get("fields") or {}
        return IssueData(
            key=payload.get("key", ""),
            summary=fields.get("summary") or "",
            description=extract_text_from_adf(fields.get("description")),
            issue_type=(fields.get("issuetype") or {}).get("name"),
            status=(fields.get("status") or {}).get("name"),
            attachments=[
                IssueAttachment(
                    filename=att.get("filename"),
                    mime_type=att.get("mimeType"),
                    url=att.get("content"),
                )
                for att in fields.get("attachment") or []
            ],
        )

    @staticmethod
    def _error_message(issue_key: str, status_code: int, kind: IssueErrorKind) -> str:
        if kind == IssueErrorKind.NOT_FOUND:
            return f"Issue {issue_key} not found"
        if kind == IssueErrorKind.UNAUTHORIZED:
            return "JIRA authentication failed or access forbidden"
        return f"JIRA request failed with status {status_code}"
