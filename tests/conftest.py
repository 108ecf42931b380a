import os

# Settings and the default engine are built at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

from typing import Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from app.core.database import get_database
from app.core.dependencies import get_ai_service, get_jira_service
from app.core.errors import IssueErrorKind
from app.models.database import Base
from app.models.schemas import (
    GenerationMode,
    IssueAttachment,
    IssueData,
    IssueResult,
    ModelCompletion,
    TokenUsage,
)
from app.repositories.interfaces.ai_service import IAIService
from app.repositories.interfaces.jira_service import IJiraService
from app.repositories.implementations.sql_generation_repository import SQLGenerationRepository
from app.repositories.implementations.sql_project_repository import SQLProjectRepository
from app.services.cost import usage_cost
from app.services.generation_service import GenerationService
from app.services.project_service import ProjectService


class FakeJiraService(IJiraService):
    """In-memory issue tracker"""

    def __init__(self):
        self.issues: Dict[str, IssueData] = {}
        self.failures: Dict[str, Tuple[str, IssueErrorKind]] = {}
        self.calls: List[str] = []
        self.raise_error: Optional[Exception] = None

    def add_issue(self, key: str, summary: str, description: str = "", attachments=None) -> IssueData:
        issue = IssueData(key=key, summary=summary, description=description, attachments=attachments or [])
        self.issues[key] = issue
        return issue

    def fail(self, key: str, message: str, kind: IssueErrorKind) -> None:
        self.failures[key] = (message, kind)

    async def get_issue(self, issue_key: str) -> IssueResult:
        self.calls.append(issue_key)
        if self.raise_error is not None:
            raise self.raise_error
        if issue_key in self.failures:
            message, kind = self.failures[issue_key]
            return IssueResult.fail(message, kind)
        if issue_key in self.issues:
            return IssueResult.ok(self.issues[issue_key])
        return IssueResult.fail(f"Issue {issue_key} not found", IssueErrorKind.NOT_FOUND)


class FakeAIService(IAIService):
    """Model stand-in returning a canned document"""

    def __init__(self, content: str = "# Test Cases\n\n## Functional Requirements\n\n- Case 1\n"):
        self.content = content
        self.usage = TokenUsage(prompt_tokens=1200, completion_tokens=3400, total_tokens=4600)
        self.error: Optional[Exception] = None
        self.calls: List[Tuple[str, str, GenerationMode]] = []

    async def generate_test_cases(self, context: str, issue_key: str, mode: GenerationMode) -> ModelCompletion:
        self.calls.append((context, issue_key, mode))
        if self.error is not None:
            raise self.error
        return ModelCompletion(
            content=self.content,
            token_usage=self.usage,
            cost=usage_cost(self.usage.prompt_tokens, self.usage.completion_tokens),
        )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def jira():
    fake = FakeJiraService()
    fake.add_issue("KAN-10", "Login button misaligned", "The login button overlaps the footer on mobile.")
    fake.add_issue(
        "KAN-11",
        "Avatar upload",
        "Users can upload a profile picture.",
        attachments=[
            IssueAttachment(filename="mock.png", mime_type="image/png"),
            IssueAttachment(filename="spec.pdf", mime_type="application/pdf"),
        ],
    )
    return fake


@pytest.fixture
def ai():
    return FakeAIService()


@pytest.fixture
def generation_repository(db_session):
    return SQLGenerationRepository(db_session)


@pytest.fixture
def project_repository(db_session):
    return SQLProjectRepository(db_session)


@pytest.fixture
def service(generation_repository, project_repository, jira, ai):
    return GenerationService(
        generation_repository=generation_repository,
        project_service=ProjectService(project_repository, generation_repository),
        jira_service=jira,
        ai_service=ai,
    )


@pytest.fixture
def client(session_factory, jira, ai):
    """API client wired to the in-memory database and fake collaborators"""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_database] = override_get_db
    app.dependency_overrides[get_jira_service] = lambda: jira
    app.dependency_overrides[get_ai_service] = lambda: ai
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client: TestClient, email: str, password: str = "s3cret-pass", name: str = "Tester") -> dict:
    response = client.post(
        "/api/v1/auth/register",
        json={"email": email, "name": name, "password": password},
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


def auth_headers(client: TestClient, email: str) -> dict:
    tokens = register(client, email)
    return {"Authorization": f"Bearer {tokens['accessToken']}"}


@pytest.fixture
def alice(client):
    return auth_headers(client, "alice@example.com")


@pytest.fixture
def bob(client):
    return auth_headers(client, "bob@example.com")
