from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from app.config.settings import Settings
from app.core.errors import UnauthorizedError
from app.models.schemas import User

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=10)).decode()


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    return bcrypt.checkpw(plain.encode(), hashed.encode())


class TokenIssuer:
    """Signs and verifies the access/refresh JWT pair"""

    def __init__(self, settings: Settings):
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.access_ttl = timedelta(seconds=settings.jwt_access_ttl_seconds)
        self.refresh_ttl = timedelta(seconds=settings.jwt_refresh_ttl_seconds)

    def issue_access_token(self, user: User) -> str:
        payload = {
            "sub": user.id,
            "email": user.email,
            "name": user.name,
            "type": ACCESS_TOKEN_TYPE,
            "exp": datetime.now(timezone.utc) + self.access_ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def issue_refresh_token(self, user: User) -> str:
        payload = {
            "sub": user.id,
            "type": REFRESH_TOKEN_TYPE,
            "exp": datetime.now(timezone.utc) + self.refresh_ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str, expected_type: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError:
            raise UnauthorizedError("Invalid token")
        if payload.get("type") != expected_type or not payload.get("sub"):
            raise UnauthorizedError("Invalid token")
        return payload
