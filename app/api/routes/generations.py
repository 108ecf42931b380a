from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.core.dependencies import get_current_user, get_generation_service
from app.core.errors import InvalidInputError
from app.models.schemas import (
    ContentUpdated,
    CurrentUser,
    Envelope,
    GenerateTestCasesRequest,
    GenerationCreated,
    GenerationPage,
    GenerationView,
    MessageResponse,
    PreflightEstimate,
    PreflightRequest,
    PublicationState,
    PublishRequest,
    UpdateContentRequest,
)
from app.services.generation_service import GenerationService
from app.services.listing import parse_filter_mode

logger = structlog.get_logger()

router = APIRouter(prefix="/generations", tags=["generations"])


@router.post("/preflight", response_model=Envelope[PreflightEstimate])
async def preflight(
    request: PreflightRequest,
    user: CurrentUser = Depends(get_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    """Estimate tokens and cost for an issue before generating"""
    estimate = await service.preflight(request.issue_key)
    return Envelope(data=estimate)


@router.get("", response_model=Envelope[GenerationPage])
async def list_generations(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    filter_mode: Optional[str] = Query(None, alias="filter", description="all | mine | published"),
    user: CurrentUser = Depends(get_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    """Get the user's own generations and published ones, newest first"""
    generations, pagination = await service.list_generations(
        user.email, parse_filter_mode(filter_mode), page=page, limit=limit
    )
    return Envelope(data=GenerationPage(generations=generations, pagination=pagination))


@router.post("/testcases", response_model=Envelope[GenerationCreated])
async def generate_test_cases(
    request: GenerateTestCasesRequest,
    user: CurrentUser = Depends(get_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    """Fetch the JIRA issue and generate test cases synchronously"""
    logger.info("Generating test cases", issue_key=request.issue_key, mode=request.mode.value)
    generation = await service.create_generation(request.issue_key, user.email, request.mode)
    return Envelope(
        data=GenerationCreated(
            generation_id=generation.id,
            issue_key=generation.issue_key,
            markdown=generation.markdown,
            generation_time_seconds=generation.generation_time_seconds,
            cost=generation.cost,
        )
    )


@router.get("/{generation_id}/view", response_model=Envelope[GenerationView])
async def view_generation(
    generation_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    """Get a generation with its version history"""
    return Envelope(data=await service.view(generation_id, user.email))


@router.put("/{generation_id}/content", response_model=Envelope[ContentUpdated])
async def update_content(
    generation_id: str,
    request: UpdateContentRequest,
    user: CurrentUser = Depends(get_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    """Edit the markdown content (owner only, completed generations only)"""
    if not isinstance(request.content, str):
        raise InvalidInputError("content must be a string")
    generation = await service.update_content(generation_id, user.email, request.content)
    return Envelope(data=ContentUpdated(content=generation.content, current_version=generation.current_version))


@router.put("/{generation_id}/publish", response_model=Envelope[PublicationState])
async def publish_generation(
    generation_id: str,
    request: PublishRequest,
    user: CurrentUser = Depends(get_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    """Publish or unpublish a generation (owner only, completed generations only)"""
    if not isinstance(request.published, bool):
        raise InvalidInputError("Published must be a boolean")
    generation = await service.set_published(generation_id, user.email, request.published)
    return Envelope(
        data=PublicationState(
            published=generation.published,
            published_at=generation.published_at,
            published_by=generation.published_by,
        )
    )


@router.get("/{generation_id}/download")
async def download_generation(
    generation_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    """Download the markdown document as a file"""
    markdown = await service.download(generation_id, user.email)
    return Response(
        content=markdown.content,
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{markdown.filename}"'},
    )


@router.delete("/{generation_id}", response_model=MessageResponse)
async def delete_generation(
    generation_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: GenerationService = Depends(get_generation_service),
):
    """Delete a generation (owner only)"""
    await service.delete(generation_id, user.email)
    return MessageResponse(message="Generation deleted successfully")
