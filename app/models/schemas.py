from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Generic, List, Optional, TypeVar
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from app.core.errors import IssueErrorKind


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class GenerationMode(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"


class GenerationStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class ListFilterMode(str, Enum):
    ALL = "all"
    MINE = "mine"
    PUBLISHED = "published"


# ---------------------------------------------------------------------------
# Domain values
# ---------------------------------------------------------------------------


class TokenUsage(CamelModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class MarkdownDocument(CamelModel):
    content: str = ""
    filename: str = "output.md"


class GenerationResult(CamelModel):
    markdown: Optional[MarkdownDocument] = None


class VersionSnapshot(CamelModel):
    model_config = ConfigDict(frozen=True)

    version: int
    content: str
    updated_at: datetime = Field(default_factory=utcnow)
    updated_by: str
    notes: Optional[str] = None


class Generation(CamelModel):
    """One test-case generation attempt and its editable artifact.

    Instances are immutable; every state change produces a new value through
    ``model_copy(update=...)`` which the repository persists in one write.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    issue_key: str
    email: str
    project: Optional[str] = None
    mode: GenerationMode = GenerationMode.MANUAL
    status: Optional[GenerationStatus] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    generation_time_seconds: Optional[float] = None
    cost: Optional[float] = None
    token_usage: Optional[TokenUsage] = None
    result: Optional[GenerationResult] = None
    error: Optional[str] = None
    published: bool = False
    published_at: Optional[datetime] = None
    published_by: Optional[str] = None
    version: List[VersionSnapshot] = Field(default_factory=list)
    current_version: int = 1

    @property
    def markdown(self) -> Optional[MarkdownDocument]:
        return self.result.markdown if self.result else None

    @property
    def content(self) -> str:
        return self.markdown.content if self.markdown else ""

    @property
    def is_completed(self) -> bool:
        return self.status == GenerationStatus.COMPLETED


class Project(CamelModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    project_key: str
    created_by: Optional[str] = None
    first_generated_at: Optional[datetime] = None
    last_generated_at: Optional[datetime] = None
    total_generations: int = 0


class User(CamelModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    email: str
    name: Optional[str] = None
    password_hash: Optional[str] = Field(default=None, exclude=True)
    created_at: datetime = Field(default_factory=utcnow)


class CurrentUser(CamelModel):
    id: str
    email: str
    name: Optional[str] = None


# ---------------------------------------------------------------------------
# Collaborator values
# ---------------------------------------------------------------------------


class IssueAttachment(CamelModel):
    filename: Optional[str] = None
    mime_type: Optional[str] = None
    url: Optional[str] = None


class IssueData(CamelModel):
    key: str
    summary: str = ""
    description: str = ""
    issue_type: Optional[str] = None
    status: Optional[str] = None
    attachments: List[IssueAttachment] = Field(default_factory=list)


class IssueResult(BaseModel):
    """Outcome of an issue lookup: either ``issue`` or ``error`` is set."""

    success: bool
    issue: Optional[IssueData] = None
    error: Optional[str] = None
    error_kind: Optional[IssueErrorKind] = None

    @classmethod
    def ok(cls, issue: IssueData) -> "IssueResult":
        return cls(success=True, issue=issue)

    @classmethod
    def fail(cls, error: str, kind: IssueErrorKind = IssueErrorKind.UNKNOWN) -> "IssueResult":
        return cls(success=False, error=error, error_kind=kind)


class ModelCompletion(BaseModel):
    content: str
    token_usage: TokenUsage
    cost: float


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class RegisterRequest(CamelModel):
    email: Optional[str] = None
    name: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class PreflightRequest(CamelModel):
    issue_key: Optional[str] = None


class GenerateTestCasesRequest(CamelModel):
    issue_key: Optional[str] = None
    mode: GenerationMode = GenerationMode.MANUAL


class UpdateContentRequest(CamelModel):
    # Validated by the route so a non-string yields a single readable error
    content: Any = None


class PublishRequest(CamelModel):
    published: Any = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

T = TypeVar("T")


class Envelope(CamelModel, Generic[T]):
    success: bool = True
    data: T


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class AuthTokens(CamelModel):
    access_token: str
    refresh_token: str
    user: CurrentUser


class PreflightEstimate(CamelModel):
    issue_key: str
    title: str
    description: str
    attachments: int
    image_attachments: int
    estimated_tokens: int
    estimated_cost: float


class GenerationCreated(CamelModel):
    generation_id: str
    issue_key: str
    markdown: MarkdownDocument
    generation_time_seconds: Optional[float] = None
    cost: Optional[float] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class GenerationPage(CamelModel):
    generations: List[Generation]
    pagination: Pagination


class GenerationView(CamelModel):
    email: str
    content: str
    filename: str
    format: str = "markdown"
    issue_key: str
    project_key: Optional[str] = None
    updated_at: Optional[datetime] = None
    published: bool = False
    published_at: Optional[datetime] = None
    published_by: Optional[str] = None
    current_version: int = 1
    version: List[VersionSnapshot] = Field(default_factory=list)
    last_updated_by: str
    last_updated_at: Optional[datetime] = None


class ContentUpdated(CamelModel):
    content: str
    current_version: int


class PublicationState(CamelModel):
    published: bool
    published_at: Optional[datetime] = None
    published_by: Optional[str] = None
