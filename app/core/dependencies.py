from typing import Optional

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.config.settings import DEFAULT_JWT_SECRET, Settings, settings
from app.core.database import get_database
from app.core.errors import ConfigurationError, UnauthorizedError
from app.core.security import ACCESS_TOKEN_TYPE, TokenIssuer
from app.models.schemas import CurrentUser
from app.repositories.interfaces.ai_service import IAIService
from app.repositories.interfaces.jira_service import IJiraService
from app.repositories.implementations.gemini_service import GeminiService
from app.repositories.implementations.jira_service import AtlassianJiraService
from app.repositories.implementations.openai_service import OpenAIService
from app.repositories.implementations.sql_generation_repository import SQLGenerationRepository
from app.repositories.implementations.sql_project_repository import SQLProjectRepository
from app.repositories.implementations.sql_user_repository import SQLUserRepository
from app.services.auth_service import AuthService
from app.services.generation_service import GenerationService
from app.services.project_service import ProjectService

logger = structlog.get_logger()


class Container:
    """Dependency injection container.

    The tracker and model clients are built once by ``configure`` at startup;
    a missing credential fails startup instead of the first request.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.token_issuer = TokenIssuer(settings)
        self._jira_service: Optional[IJiraService] = None
        self._ai_service: Optional[IAIService] = None

    def configure(self) -> None:
        if self.settings.jwt_secret == DEFAULT_JWT_SECRET and self.settings.environment != "development":
            raise ConfigurationError("JWT_SECRET must be set outside development")
        self._jira_service = AtlassianJiraService(self.settings)
        self._ai_service = self._build_ai_service()
        logger.info(
            "External clients configured",
            ai_provider=self.settings.ai_provider,
            jira_base_url=self.settings.jira_base_url,
        )

    def _build_ai_service(self) -> IAIService:
        provider = (self.settings.ai_provider or "openai").strip().lower()
        if provider == "gemini":
            return GeminiService(self.settings)
        if provider == "openai":
            return OpenAIService(self.settings)
        raise ConfigurationError(f"Unknown AI_PROVIDER: {self.settings.ai_provider}")

    def jira_service(self) -> IJiraService:
        if self._jira_service is None:
            raise ConfigurationError("JIRA client is not configured")
        return self._jira_service

    def ai_service(self) -> IAIService:
        if self._ai_service is None:
            raise ConfigurationError("AI client is not configured")
        return self._ai_service

    def generation_service(self, db: Session, jira_service: IJiraService, ai_service: IAIService) -> GenerationService:
        generation_repository = SQLGenerationRepository(db)
        return GenerationService(
            generation_repository=generation_repository,
            project_service=ProjectService(SQLProjectRepository(db), generation_repository),
            jira_service=jira_service,
            ai_service=ai_service,
        )

    def auth_service(self, db: Session) -> AuthService:
        return AuthService(SQLUserRepository(db), self.token_issuer)


# Global container instance
container = Container(settings)

bearer = HTTPBearer(auto_error=False)


# Dependency providers for FastAPI
def get_jira_service() -> IJiraService:
    """FastAPI dependency for JIRA service"""
    return container.jira_service()


def get_ai_service() -> IAIService:
    """FastAPI dependency for AI service"""
    return container.ai_service()


def get_generation_service(
    db: Session = Depends(get_database),
    jira_service: IJiraService = Depends(get_jira_service),
    ai_service: IAIService = Depends(get_ai_service),
) -> GenerationService:
    """FastAPI dependency for generation service"""
    return container.generation_service(db, jira_service, ai_service)


def get_auth_service(db: Session = Depends(get_database)) -> AuthService:
    """FastAPI dependency for auth service"""
    return container.auth_service(db)


def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> CurrentUser:
    """Resolve the bearer access token to the requesting user"""
    if not creds or creds.scheme.lower() != "bearer" or not creds.credentials:
        raise UnauthorizedError("Missing token")
    payload = container.token_issuer.decode(creds.credentials, ACCESS_TOKEN_TYPE)
    if not payload.get("email"):
        raise UnauthorizedError("Invalid token")
    return CurrentUser(id=payload["sub"], email=payload["email"], name=payload.get("name"))
