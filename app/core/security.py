"""
Security utilities for authentication and authorization
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from uuid import UUID
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import time

from app.config import settings
from app.core.database import get_session
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token scheme; missing credentials are reported by get_current_user
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CallerIdentity:
    """
    Authenticated caller as seen by the booking core
    """
    id: UUID
    role: UserRole
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def can_act_for(self, owner_id: UUID) -> bool:
        return self.is_admin or self.id == owner_id

    @classmethod
    def from_user(cls, user: User) -> "CallerIdentity":
        return cls(id=user.id, role=user.role, is_active=user.is_active)


class SecurityManager:
    """
    Security manager for authentication and authorization
    """

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def hash_password(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(
        data: Dict[str, Any],
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Create a JWT access token
        """
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        to_encode.update({
            "exp": expire,
            "type": "access",
            "iat": int(time.time()),
        })
        return jwt.encode(
            to_encode,
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM
        )

    @staticmethod
    def decode_token(token: str) -> Dict[str, Any]:
        """
        Decode and verify a JWT token
        """
        try:
            return jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM]
            )
        except JWTError as e:
            logger.info(f"JWT decode error: {e}")
            raise AuthenticationError("Could not validate credentials")

    @staticmethod
    def verify_token_type(payload: Dict[str, Any], expected_type: str):
        if payload.get("type") != expected_type:
            raise AuthenticationError(f"Invalid token type. Expected {expected_type}")


# Create global security manager
security_manager = SecurityManager()

get_password_hash = security_manager.hash_password
verify_password = security_manager.verify_password


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create access token helper function
    """
    return security_manager.create_access_token(data, expires_delta)


def create_token_for_user(user: User) -> str:
    return create_access_token({"sub": str(user.id), "role": user.role.value})


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_session)
) -> CallerIdentity:
    """
    Resolve the bearer token into the caller's identity
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated")

    payload = security_manager.decode_token(credentials.credentials)
    security_manager.verify_token_type(payload, "access")

    subject = payload.get("sub")
    try:
        user_id = UUID(str(subject))
    except ValueError:
        raise AuthenticationError("Could not validate credentials")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    caller = CallerIdentity.from_user(user) if user else None
    # Leave the request session clean for the service's own transaction
    await db.rollback()

    if caller is None:
        raise AuthenticationError("User not found")
    if not caller.is_active:
        raise AuthorizationError("Account is disabled")

    return caller


async def require_admin(current_user: CallerIdentity = Depends(get_current_user)) -> CallerIdentity:
    """
    Require admin role for endpoint
    """
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user
