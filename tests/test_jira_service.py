from urllib.parse import quote

import httpx
import pytest

from app.config.settings import Settings
from app.core.cache import TTLCache
from app.core.errors import ConfigurationError, IssueErrorKind
from app.repositories.implementations.jira_service import AtlassianJiraService, extract_text_from_adf

ISSUE_PAYLOAD = {
    "key": "KAN-1",
    "fields": {
        "summary": "Login button misaligned",
        "description": {
            "type": "doc",
            "content": [
                {"type": "paragraph", "content": [{"type": "text", "text": "Button overlaps footer."}]},
                {
                    "type": "bulletList",
                    "content": [
                        {
                            "type": "listItem",
                            "content": [{"type": "paragraph", "content": [{"type": "text", "text": "Mobile only"}]}],
                        }
                    ],
                },
            ],
        },
        "issuetype": {"name": "Bug"},
        "status": {"name": "To Do"},
        "attachment": [
            {"filename": "screen.png", "mimeType": "image/png", "content": "https://jira/att/1"},
            {"filename": "notes.txt", "mimeType": "text/plain", "content": "https://jira/att/2"},
        ],
    },
}


def jira_settings(**overrides):
    values = {
        "jira_base_url": "https://example.atlassian.net/",
        "jira_email": "qa@example.com",
        "jira_api_token": "token",
        "jira_cache_ttl_seconds": 30,
    }
    values.update(overrides)
    return Settings(**values)


def make_service(handler, cache=None):
    requests = []

    def recording(request):
        requests.append(request)
        return handler(request)

    service = AtlassianJiraService(jira_settings(), transport=httpx.MockTransport(recording), cache=cache)
    return service, requests


def test_extract_text_from_adf():
    assert extract_text_from_adf(ISSUE_PAYLOAD["fields"]["description"]) == "Button overlaps footer.\nMobile only"
    assert extract_text_from_adf("plain text") == "plain text"
    assert extract_text_from_adf(None) == ""


async def test_get_issue_maps_fields():
    service, requests = make_service(lambda request: httpx.Response(200, json=ISSUE_PAYLOAD))

    result = await service.get_issue("KAN-1")

    assert result.success
    assert result.issue.summary == "Login button misaligned"
    assert result.issue.description == "Button overlaps footer.\nMobile only"
    assert result.issue.issue_type == "Bug"
    assert [a.mime_type for a in result.issue.attachments] == ["image/png", "text/plain"]
    assert str(requests[0].url) == "https://example.atlassian.net/rest/api/3/issue/KAN-1"
    assert requests[0].headers["Authorization"].startswith("Basic ")


@pytest.mark.parametrize(
    "status_code, kind, message",
    [
        (404, IssueErrorKind.NOT_FOUND, "Issue KAN-1 not found"),
        (401, IssueErrorKind.UNAUTHORIZED, "JIRA authentication failed or access forbidden"),
        (403, IssueErrorKind.UNAUTHORIZED, "JIRA authentication failed or access forbidden"),
        (502, IssueErrorKind.UNKNOWN, "JIRA request failed with status 502"),
    ],
)
async def test_get_issue_classifies_errors(status_code, kind, message):
    service, _ = make_service(lambda request: httpx.Response(status_code, json={}))

    result = await service.get_issue("KAN-1")

    assert not result.success
    assert result.error_kind == kind
    assert result.error == message


async def test_network_error_is_unknown():
    def broken(request):
        raise httpx.ConnectError("connection refused", request=request)

    service, _ = make_service(broken)

    result = await service.get_issue("KAN-1")

    assert not result.success
    assert result.error_kind == IssueErrorKind.UNKNOWN
    assert result.error.startswith("Failed to reach JIRA")


async def test_successful_lookup_is_cached():
    service, requests = make_service(lambda request: httpx.Response(200, json=ISSUE_PAYLOAD), cache=TTLCache())

    first = await service.get_issue("KAN-1")
    second = await service.get_issue("kan-1")

    assert first.issue == second.issue
    assert len(requests) == 1


async def test_failures_are_not_cached():
    service, requests = make_service(lambda request: httpx.Response(404, json={}))

    await service.get_issue("KAN-1")
    await service.get_issue("KAN-1")

    assert len(requests) == 2


def test_missing_credentials_fail_fast():
    with pytest.raises(ConfigurationError):
        AtlassianJiraService(jira_settings(jira_api_token=None))


async def test_issue_key_cannot_escape_issue_endpoint():
    service, requests = make_service(lambda request: httpx.Response(404, json={}))
    key = "KAN-1/../../search?jql=project=SECRET"

    await service.get_issue(key)

    assert requests[0].url.raw_path == b"/rest/api/3/issue/" + quote(key, safe="").encode()
    assert requests[0].url.query == b""
