import pytest

from app.config.settings import DEFAULT_JWT_SECRET, Settings
from app.core.dependencies import Container
from app.core.errors import ConfigurationError
from app.repositories.implementations.gemini_service import GeminiService
from app.repositories.implementations.openai_service import OpenAIService


def container_settings(**overrides):
    values = {
        "environment": "production",
        "jwt_secret": "a-real-secret",
        "jira_base_url": "https://example.atlassian.net",
        "jira_email": "qa@example.com",
        "jira_api_token": "token",
        "openai_api_key": "test-key",
    }
    values.update(overrides)
    return Settings(**values)


def test_default_jwt_secret_fails_startup_outside_development():
    container = Container(container_settings(jwt_secret=DEFAULT_JWT_SECRET))

    with pytest.raises(ConfigurationError, match="JWT_SECRET"):
        container.configure()
    with pytest.raises(ConfigurationError):
        container.jira_service()


def test_default_jwt_secret_is_allowed_in_development():
    container = Container(container_settings(environment="development", jwt_secret=DEFAULT_JWT_SECRET))

    container.configure()

    assert isinstance(container.ai_service(), OpenAIService)


def test_configure_builds_clients_once():
    container = Container(container_settings())

    container.configure()

    assert container.jira_service() is container.jira_service()
    assert container.ai_service().client.max_retries == 0


def test_missing_credentials_fail_startup():
    with pytest.raises(ConfigurationError):
        Container(container_settings(jira_api_token=None)).configure()
    with pytest.raises(ConfigurationError):
        Container(container_settings(openai_api_key=None)).configure()
    with pytest.raises(ConfigurationError, match="AI_PROVIDER"):
        Container(container_settings(ai_provider="claude")).configure()


def test_gemini_provider_is_selectable():
    container = Container(container_settings(ai_provider="gemini", gemini_api_key="test-key"))

    container.configure()

    assert isinstance(container.ai_service(), GeminiService)
