from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from app.models.schemas import Generation
from app.services.listing import GenerationFilter, PageRequest


class IGenerationRepository(ABC):
    """Interface for generation persistence"""

    @abstractmethod
    async def create(self, generation: Generation) -> Generation:
        pass

    @abstractmethod
    async def get_by_id(self, generation_id: str) -> Optional[Generation]:
        pass

    @abstractmethod
    async def save(self, generation: Generation) -> Generation:
        """Persist the full state of an existing generation in one write"""
        pass

    @abstractmethod
    async def delete(self, generation_id: str) -> bool:
        pass

    @abstractmethod
    async def list(self, generation_filter: GenerationFilter, page: PageRequest) -> Tuple[List[Generation], int]:
        """Return one page, newest first, and the total matching count"""
        pass

    @abstractmethod
    async def count_for_project(self, project_id: str) -> int:
        pass
