from datetime import datetime
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.repositories.interfaces.project_repository import IProjectRepository, ProjectExistsError
from app.models.database import ProjectModel
from app.models.schemas import Project


class SQLProjectRepository(IProjectRepository):
    """SQLAlchemy implementation of project repository"""

    def __init__(self, db: Session):
        self.db = db

    async def get_by_key(self, project_key: str) -> Optional[Project]:
        row = self.db.query(ProjectModel).filter(ProjectModel.project_key == project_key).first()
        return Project.model_validate(row) if row else None

    async def create(self, project: Project) -> Project:
        row = ProjectModel(**project.model_dump())
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ProjectExistsError(project.project_key) from e
        self.db.refresh(row)
        return Project.model_validate(row)

    async def touch(self, project_id: str, generated_at: datetime) -> Optional[Project]:
        return await self._update(project_id, last_generated_at=generated_at)

    async def set_total(self, project_id: str, total: int) -> Optional[Project]:
        return await self._update(project_id, total_generations=total)

    async def _update(self, project_id: str, **values) -> Optional[Project]:
        row = self.db.get(ProjectModel, project_id)
        if not row:
            return None
        for field, value in values.items():
            setattr(row, field, value)
        self.db.commit()
        self.db.refresh(row)
        return Project.model_validate(row)
