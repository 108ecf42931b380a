from typing import Optional

import structlog

from app.core.errors import InvalidInputError, UnauthorizedError
from app.core.security import REFRESH_TOKEN_TYPE, TokenIssuer, hash_password, verify_password
from app.models.schemas import AuthTokens, CurrentUser, User
from app.repositories.interfaces.user_repository import IUserRepository

logger = structlog.get_logger()


class AuthService:
    """User registration, login and token refresh"""

    def __init__(self, user_repository: IUserRepository, token_issuer: TokenIssuer):
        self.user_repository = user_repository
        self.token_issuer = token_issuer

    async def register(self, email: Optional[str], name: Optional[str], password: Optional[str]) -> AuthTokens:
        if not email or not password:
            raise InvalidInputError("Email and password are required")
        email = email.strip().lower()

        if await self.user_repository.get_by_email(email):
            raise InvalidInputError("Email already registered")

        user = await self.user_repository.create(
            User(email=email, name=name, password_hash=hash_password(password))
        )
        logger.info("User registered", user_id=user.id)
        return self._tokens_for(user)

    async def login(self, email: Optional[str], password: Optional[str]) -> AuthTokens:
        if not email or not password:
            raise InvalidInputError("Email & Password are required!")

        user = await self.user_repository.get_by_email(email.strip().lower())
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Login rejected")
            raise UnauthorizedError("Invalid credentials")
        return self._tokens_for(user)

    async def refresh(self, refresh_token: Optional[str]) -> AuthTokens:
        if not refresh_token:
            raise InvalidInputError("refreshToken required")
        payload = self.token_issuer.decode(refresh_token, REFRESH_TOKEN_TYPE)
        user = await self.user_repository.get_by_id(payload["sub"])
        if user is None:
            raise UnauthorizedError("Invalid token")
        return self._tokens_for(user)

    def _tokens_for(self, user: User) -> AuthTokens:
        return AuthTokens(
            access_token=self.token_issuer.issue_access_token(user),
            refresh_token=self.token_issuer.issue_refresh_token(user),
            user=CurrentUser(id=user.id, email=user.email, name=user.name),
        )
