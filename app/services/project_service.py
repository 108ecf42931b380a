import re
from typing import Optional

import structlog

from app.models.schemas import Project, utcnow
from app.repositories.interfaces.generation_repository import IGenerationRepository
from app.repositories.interfaces.project_repository import IProjectRepository, ProjectExistsError

logger = structlog.get_logger()

_PROJECT_KEY_PATTERN = re.compile(r"^([A-Z0-9]+)-", re.IGNORECASE)


def extract_project_key(issue_key: object) -> Optional[str]:
    """Project prefix of an issue key, upper-cased ("sdet-45" -> "SDET")."""
    if not issue_key or not isinstance(issue_key, str):
        return None
    match = _PROJECT_KEY_PATTERN.match(issue_key)
    return match.group(1).upper() if match else None


class ProjectService:
    """Maintains the per-project aggregate shared by every generation for that key"""

    def __init__(self, project_repository: IProjectRepository, generation_repository: IGenerationRepository):
        self.project_repository = project_repository
        self.generation_repository = generation_repository

    async def touch(self, project_key: str, owner_email: str) -> Project:
        """Find or create the project and stamp its last generation time"""
        if not project_key:
            raise ValueError("Project key is required")
        key = project_key.upper()
        now = utcnow()

        project = await self.project_repository.get_by_key(key)
        if project is None:
            try:
                project = await self.project_repository.create(
                    Project(
                        project_key=key,
                        created_by=owner_email,
                        first_generated_at=now,
                        last_generated_at=now,
                        total_generations=0,
                    )
                )
                logger.info("Project created", project_key=key, created_by=owner_email)
                return project
            except ProjectExistsError:
                # Lost a create race; the winner's row is the project
                project = await self.project_repository.get_by_key(key)
                if project is None:
                    raise

        touched = await self.project_repository.touch(project.id, now)
        return touched or project

    async def refresh_total(self, project_id: str) -> int:
        """Recount generations for the project instead of incrementing"""
        total = await self.generation_repository.count_for_project(project_id)
        await self.project_repository.set_total(project_id, total)
        return total
