import re
import time
from typing import List, Optional, Tuple

import structlog

from app.core.errors import (
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    IssueErrorKind,
    NotFoundError,
    UpstreamError,
    error_message,
)
from app.models.schemas import (
    Generation,
    GenerationMode,
    GenerationResult,
    GenerationStatus,
    GenerationView,
    IssueData,
    IssueResult,
    ListFilterMode,
    MarkdownDocument,
    ModelCompletion,
    Pagination,
    PreflightEstimate,
    utcnow,
)
from app.repositories.interfaces.ai_service import IAIService
from app.repositories.interfaces.generation_repository import IGenerationRepository
from app.repositories.interfaces.jira_service import IJiraService
from app.services import cost
from app.services.access import can_view, is_owner
from app.services.listing import build_filter, page_request
from app.services.project_service import ProjectService, extract_project_key
from app.services.versioning import apply_content_edit, apply_publication, latest_snapshot

logger = structlog.get_logger()

_ISSUE_KEY_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*-\d+$")


def build_context(issue: IssueData) -> str:
    return f"Title: {issue.summary}\nDescription: {issue.description}"


def ensure_title(content: str, issue_key: str, summary: str) -> str:
    """Prefix a heading when the model did not start with one"""
    if content.startswith("#"):
        return content
    return f"# Test Cases for {issue_key}: {summary or 'Untitled'}\n\n{content}"


def markdown_filename(issue_key: str, generation_id: str) -> str:
    return f"{issue_key}_testcases_{generation_id}.md"


class GenerationService:
    """Business logic for the generation lifecycle and its artifact"""

    def __init__(
        self,
        generation_repository: IGenerationRepository,
        project_service: ProjectService,
        jira_service: IJiraService,
        ai_service: IAIService,
    ):
        self.generation_repository = generation_repository
        self.project_service = project_service
        self.jira_service = jira_service
        self.ai_service = ai_service

    # ------------------------------------------------------------------
    # Generation engine
    # ------------------------------------------------------------------

    async def preflight(self, issue_key: Optional[str]) -> PreflightEstimate:
        """Estimate tokens and cost for an issue without generating anything"""
        issue_key = self._require_issue_key(issue_key)
        issue = await self._fetch_issue_or_raise(issue_key)

        image_count = cost.count_image_attachments(issue.attachments)
        estimated_tokens = cost.estimate_tokens(f"{issue.summary} {issue.description}", image_count)
        estimate = PreflightEstimate(
            issue_key=issue_key,
            title=issue.summary or "N/A",
            description=issue.description,
            attachments=len(issue.attachments),
            image_attachments=image_count,
            estimated_tokens=estimated_tokens,
            estimated_cost=round(cost.estimate_cost(estimated_tokens), 6),
        )
        logger.info(
            "Preflight estimate",
            issue_key=issue_key,
            attachments=estimate.attachments,
            estimated_tokens=estimated_tokens,
            estimated_cost=estimate.estimated_cost,
        )
        return estimate

    async def create_generation(
        self,
        issue_key: Optional[str],
        owner_email: str,
        mode: GenerationMode = GenerationMode.MANUAL,
    ) -> Generation:
        """Fetch the issue, generate test cases and persist the outcome.

        The generation row is written before any upstream call so a failed
        attempt stays auditable. Upstream failures are recorded on the row
        (``status=failed``) and then raised as ``UpstreamError``.
        """
        issue_key = self._require_issue_key(issue_key)
        project_id = await self._link_project(issue_key, owner_email)

        generation = await self.generation_repository.create(
            Generation(
                issue_key=issue_key,
                email=owner_email,
                project=project_id,
                mode=mode,
                started_at=utcnow(),
            )
        )
        start_time = time.monotonic()
        logger.info(
            "Generation started",
            generation_id=generation.id,
            issue_key=issue_key,
            mode=mode.value,
        )

        if project_id:
            try:
                await self.project_service.refresh_total(project_id)
            except Exception as e:
                logger.warning("Failed to refresh project total", project_id=project_id, error=str(e))

        issue_result = await self._fetch_issue(issue_key)
        if not issue_result.success:
            message = issue_result.error or "Failed to fetch JIRA issue"
            await self._mark_failed(generation, message)
            raise UpstreamError(message, issue_result.error_kind or IssueErrorKind.UNKNOWN)
        issue = issue_result.issue

        try:
            completion = await self.ai_service.generate_test_cases(build_context(issue), issue_key, mode)
        except Exception as e:
            message = error_message(e)
            logger.error("Model generation failed", generation_id=generation.id, error=message)
            await self._mark_failed(generation, message)
            raise UpstreamError(message) from e

        completed = await self._mark_completed(
            generation,
            issue,
            completion,
            generation_time_seconds=round(time.monotonic() - start_time, 2),
        )
        logger.info(
            "Generation completed",
            generation_id=completed.id,
            issue_key=issue_key,
            generation_time_seconds=completed.generation_time_seconds,
            cost=completed.cost,
        )
        return completed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_generations(
        self,
        requester_email: str,
        filter_mode: ListFilterMode = ListFilterMode.ALL,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[Generation], Pagination]:
        """Get the generations visible to the requester, newest first"""
        paging = page_request(page, limit)
        items, total = await self.generation_repository.list(build_filter(filter_mode, requester_email), paging)
        return items, Pagination(
            page=paging.page,
            limit=paging.limit,
            total=total,
            pages=paging.pages_for(total),
        )

    async def get_viewable(self, generation_id: str, requester_email: str) -> Generation:
        generation = await self.generation_repository.get_by_id(generation_id)
        if generation is None or not can_view(generation, requester_email):
            raise NotFoundError("Not found")
        return generation

    async def view(self, generation_id: str, requester_email: str) -> GenerationView:
        generation = await self.get_viewable(generation_id, requester_email)
        markdown = generation.markdown
        latest = latest_snapshot(generation)
        return GenerationView(
            email=generation.email,
            content=markdown.content if markdown else "",
            filename=markdown.filename if markdown else "output.md",
            issue_key=generation.issue_key,
            project_key=extract_project_key(generation.issue_key),
            updated_at=generation.updated_at,
            published=generation.published,
            published_at=generation.published_at,
            published_by=generation.published_by,
            current_version=generation.current_version or 1,
            version=generation.version,
            last_updated_by=latest.updated_by if latest else generation.email,
            last_updated_at=(latest.updated_at if latest else None) or generation.updated_at or generation.created_at,
        )

    async def download(self, generation_id: str, requester_email: str) -> MarkdownDocument:
        generation = await self.get_viewable(generation_id, requester_email)
        if not generation.is_completed:
            raise InvalidStateError("Not completed")
        return generation.markdown or MarkdownDocument()

    # ------------------------------------------------------------------
    # Owner-only mutations
    # ------------------------------------------------------------------

    async def update_content(self, generation_id: str, requester_email: str, new_content: str) -> Generation:
        """Replace the document body, snapshotting the previous version"""
        generation = await self._get_owned_completed(
            generation_id, requester_email, "Can only update completed generations"
        )
        updated = apply_content_edit(generation, new_content, requester_email)
        saved = await self.generation_repository.save(updated)
        if saved.current_version != generation.current_version:
            logger.info(
                "Generation content versioned",
                generation_id=generation_id,
                previous_version=generation.current_version,
                current_version=saved.current_version,
            )
        return saved

    async def set_published(self, generation_id: str, requester_email: str, published: bool) -> Generation:
        generation = await self._get_owned_completed(
            generation_id, requester_email, "Can only publish completed generations"
        )
        saved = await self.generation_repository.save(apply_publication(generation, published, requester_email))
        logger.info(
            "Generation published" if published else "Generation unpublished",
            generation_id=generation_id,
            by=requester_email,
        )
        return saved

    async def delete(self, generation_id: str, requester_email: str) -> None:
        generation = await self.generation_repository.get_by_id(generation_id)
        if generation is None:
            raise NotFoundError("Generation not found")
        if not is_owner(generation, requester_email):
            raise ForbiddenError("You can only delete your own generations")
        if generation.published:
            logger.warning("Deleting published generation", generation_id=generation_id, by=requester_email)

        await self.generation_repository.delete(generation_id)
        logger.info("Generation deleted", generation_id=generation_id, by=requester_email)

        if generation.project:
            try:
                await self.project_service.refresh_total(generation.project)
            except Exception as e:
                logger.warning("Failed to refresh project total", project_id=generation.project, error=str(e))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_issue_key(issue_key: Optional[str]) -> str:
        if not isinstance(issue_key, str) or not issue_key.strip():
            raise InvalidInputError("issueKey required")
        issue_key = issue_key.strip()
        if not _ISSUE_KEY_PATTERN.match(issue_key):
            raise InvalidInputError("Invalid issueKey")
        return issue_key

    async def _link_project(self, issue_key: str, owner_email: str) -> Optional[str]:
        """Project linkage is optional metadata; failures never block generation"""
        project_key = extract_project_key(issue_key)
        if not project_key:
            return None
        try:
            project = await self.project_service.touch(project_key, owner_email)
            logger.info("Associated generation with project", project_key=project_key)
            return project.id
        except Exception as e:
            logger.warning(
                "Failed to find/create project, continuing without project",
                project_key=project_key,
                error=str(e),
            )
            return None

    async def _fetch_issue(self, issue_key: str) -> IssueResult:
        try:
            return await self.jira_service.get_issue(issue_key)
        except Exception as e:
            logger.error("JIRA lookup raised", issue_key=issue_key, error=str(e))
            return IssueResult.fail(error_message(e))

    async def _fetch_issue_or_raise(self, issue_key: str) -> IssueData:
        result = await self._fetch_issue(issue_key)
        if not result.success:
            raise UpstreamError(
                result.error or "Issue not found in JIRA",
                result.error_kind or IssueErrorKind.UNKNOWN,
            )
        return result.issue

    async def _get_owned_completed(self, generation_id: str, requester_email: str, state_error: str) -> Generation:
        generation = await self.generation_repository.get_by_id(generation_id)
        # Non-owners get the same answer as for a missing id
        if generation is None or not is_owner(generation, requester_email):
            raise NotFoundError("Not found")
        if not generation.is_completed:
            raise InvalidStateError(state_error)
        return generation

    async def _mark_failed(self, generation: Generation, message: str) -> Generation:
        now = utcnow()
        return await self.generation_repository.save(
            generation.model_copy(
                update={
                    "status": GenerationStatus.FAILED,
                    "error": message,
                    "completed_at": now,
                    "updated_at": now,
                    "result": None,
                }
            )
        )

    async def _mark_completed(
        self,
        generation: Generation,
        issue: IssueData,
        completion: ModelCompletion,
        generation_time_seconds: float,
    ) -> Generation:
        content = ensure_title(completion.content, generation.issue_key, issue.summary)
        now = utcnow()
        return await self.generation_repository.save(
            generation.model_copy(
                update={
                    "status": GenerationStatus.COMPLETED,
                    "completed_at": now,
                    "updated_at": now,
                    "generation_time_seconds": generation_time_seconds,
                    "cost": completion.cost,
                    "token_usage": completion.token_usage,
                    "result": GenerationResult(
                        markdown=MarkdownDocument(
                            content=content,
                            filename=markdown_filename(generation.issue_key, generation.id),
                        )
                    ),
                    "error": None,
                    "current_version": 1,
                    "version": [],
                }
            )
        )
