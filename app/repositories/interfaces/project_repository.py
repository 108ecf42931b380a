from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from app.models.schemas import Project


class IProjectRepository(ABC):
    """Interface for project aggregate persistence"""

    @abstractmethod
    async def get_by_key(self, project_key: str) -> Optional[Project]:
        pass

    @abstractmethod
    async def create(self, project: Project) -> Project:
        """Insert a project; raises ProjectExistsError if the key is taken"""
        pass

    @abstractmethod
    async def touch(self, project_id: str, generated_at: datetime) -> Optional[Project]:
        """Set last_generated_at"""
        pass

    @abstractmethod
    async def set_total(self, project_id: str, total: int) -> Optional[Project]:
        pass


class ProjectExistsError(Exception):
    """Raised when a project with the same key was created concurrently"""
