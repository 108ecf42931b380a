from abc import ABC, abstractmethod
from typing import Optional
from app.models.schemas import User


class IUserRepository(ABC):
    """Interface for user persistence"""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    async def create(self, user: User) -> User:
        pass
