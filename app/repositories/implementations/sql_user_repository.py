from typing import Optional
from sqlalchemy.orm import Session
from app.repositories.interfaces.user_repository import IUserRepository
from app.models.database import UserModel
from app.models.schemas import User


class SQLUserRepository(IUserRepository):
    """SQLAlchemy implementation of user repository"""

    def __init__(self, db: Session):
        self.db = db

    async def get_by_email(self, email: str) -> Optional[User]:
        row = self.db.query(UserModel).filter(UserModel.email == email.lower()).first()
        return User.model_validate(row) if row else None

    async def get_by_id(self, user_id: str) -> Optional[User]:
        row = self.db.get(UserModel, user_id)
        return User.model_validate(row) if row else None

    async def create(self, user: User) -> User:
        row = UserModel(
            id=user.id,
            email=user.email.lower(),
            name=user.name,
            password_hash=user.password_hash,
            created_at=user.created_at,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return User.model_validate(row)
