from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import and_, func, or_
from app.repositories.interfaces.generation_repository import IGenerationRepository
from app.models.database import GenerationModel
from app.models.schemas import (
    Generation,
    GenerationResult,
    GenerationStatus,
    TokenUsage,
    VersionSnapshot,
)
from app.services.listing import AllFilter, GenerationFilter, MineFilter, PageRequest, PublishedFilter


def _published_and_completed():
    return and_(
        GenerationModel.published.is_(True),
        GenerationModel.status == GenerationStatus.COMPLETED,
    )


def _filter_clause(generation_filter: GenerationFilter):
    if isinstance(generation_filter, MineFilter):
        return GenerationModel.email == generation_filter.email
    if isinstance(generation_filter, PublishedFilter):
        return _published_and_completed()
    if isinstance(generation_filter, AllFilter):
        return or_(GenerationModel.email == generation_filter.email, _published_and_completed())
    raise TypeError(f"Unsupported generation filter: {generation_filter!r}")


def _to_row_values(generation: Generation) -> dict:
    """Column values for a generation, nested parts in their camelCase JSON layout"""
    values = {
        "issue_key": generation.issue_key,
        "email": generation.email,
        "project_id": generation.project,
        "mode": generation.mode,
        "status": generation.status,
        "created_at": generation.created_at,
        "started_at": generation.started_at,
        "completed_at": generation.completed_at,
        "generation_time_seconds": generation.generation_time_seconds,
        "cost": generation.cost,
        "token_usage": generation.token_usage.model_dump(by_alias=True) if generation.token_usage else None,
        "result": generation.result.model_dump(by_alias=True, exclude_none=True) if generation.result else None,
        "error": generation.error,
        "published": generation.published,
        "published_at": generation.published_at,
        "published_by": generation.published_by,
        "version": [snapshot.model_dump(by_alias=True, mode="json") for snapshot in generation.version],
        "current_version": generation.current_version,
    }
    # Unset means the column default or onupdate applies
    if generation.updated_at is not None:
        values["updated_at"] = generation.updated_at
    return values


def _to_domain(row: GenerationModel) -> Generation:
    return Generation(
        id=row.id,
        issue_key=row.issue_key,
        email=row.email,
        project=row.project_id,
        mode=row.mode,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
        started_at=row.started_at,
        completed_at=row.completed_at,
        generation_time_seconds=row.generation_time_seconds,
        cost=row.cost,
        token_usage=TokenUsage.model_validate(row.token_usage) if row.token_usage else None,
        result=GenerationResult.model_validate(row.result) if row.result else None,
        error=row.error,
        published=bool(row.published),
        published_at=row.published_at,
        published_by=row.published_by,
        version=[VersionSnapshot.model_validate(item) for item in (row.version or [])],
        current_version=row.current_version or 1,
    )


class SQLGenerationRepository(IGenerationRepository):
    """SQLAlchemy implementation of generation repository"""

    def __init__(self, db: Session):
        self.db = db

    async def create(self, generation: Generation) -> Generation:
        """Insert a new generation row"""
        row = GenerationModel(id=generation.id, **_to_row_values(generation))
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return _to_domain(row)

    async def get_by_id(self, generation_id: str) -> Optional[Generation]:
        row = self.db.get(GenerationModel, generation_id)
        return _to_domain(row) if row else None

    async def save(self, generation: Generation) -> Generation:
        """Overwrite every column of an existing row with the given state"""
        row = self.db.get(GenerationModel, generation.id)
        if row is None:
            return await self.create(generation)
        for field, value in _to_row_values(generation).items():
            setattr(row, field, value)
        self.db.commit()
        self.db.refresh(row)
        return _to_domain(row)

    async def delete(self, generation_id: str) -> bool:
        row = self.db.get(GenerationModel, generation_id)
        if not row:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    async def list(self, generation_filter: GenerationFilter, page: PageRequest) -> Tuple[List[Generation], int]:
        """Get one page of generations, newest first, with the total count"""
        clause = _filter_clause(generation_filter)
        rows = (
            self.db.query(GenerationModel)
            .filter(clause)
            .order_by(GenerationModel.created_at.desc())
            .offset(page.skip)
            .limit(page.limit)
            .all()
        )
        total = self.db.query(func.count(GenerationModel.id)).filter(clause).scalar() or 0
        return [_to_domain(row) for row in rows], total

    async def count_for_project(self, project_id: str) -> int:
        return (
            self.db.query(func.count(GenerationModel.id))
            .filter(GenerationModel.project_id == project_id)
            .scalar()
            or 0
        )
