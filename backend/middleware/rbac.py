"""
Role-Based Access Control (RBAC) for the remiss network API
Provides JWT authentication and the admin role check used by compute jobs
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, List
from enum import Enum
import logging

import asyncpg

from backend.config import settings
from backend.db_pool import get_asyncpg_pool
from cooccurrence.errors import AuthorizationError

logger = logging.getLogger(__name__)


# Security scheme; missing credentials are answered with our own 401
security = HTTPBearer(auto_error=False)


class UserRole(str, Enum):
    """Roles stored in user_roles.role"""
    ADMIN = "admin"
    MODERATOR = "moderator"
    USER = "user"


@dataclass
class CurrentUser:
    """Authenticated caller resolved from a bearer token"""
    user_id: str
    email: Optional[str] = None
    roles: List[str] = field(default_factory=list)

    def has_role(self, role: UserRole) -> bool:
        return role.value in self.roles


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ============================================================================
# JWT TOKEN UTILITIES
# ============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create JWT access token

    Args:
        data: Payload data to encode (at least "sub")
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.get_secret_key(), algorithm=settings.JWT_ALGORITHM)


def _verification_key() -> str:
    try:
        return settings.get_secret_key()
    except RuntimeError as e:
        logger.error(f"Cannot verify bearer tokens: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication is not configured",
        )


def decode_token(token: str) -> dict:
    """
    Decode and validate JWT token

    Raises:
        HTTPException: 401 if token is invalid or expired, 500 if no SECRET_KEY is set
    """
    key = _verification_key()
    try:
        return jwt.decode(token, key, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise _unauthorized("Could not validate credentials")


# ============================================================================
# ROLE LOOKUP
# ============================================================================

class RoleRepository:
    """Reads role assignments from user_roles."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def roles_for(self, user_id: str) -> List[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT role FROM user_roles WHERE user_id::text = $1",
                user_id,
            )
        return [row["role"] for row in rows]


async def get_role_repository() -> RoleRepository:
    pool = await get_asyncpg_pool()
    return RoleRepository(pool)


# ============================================================================
# USER AUTHENTICATION DEPENDENCIES
# ============================================================================

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    roles: RoleRepository = Depends(get_role_repository),
) -> CurrentUser:
    """
    Extract and validate current user from JWT token

    Raises:
        HTTPException: 401 if the header is missing or the token is invalid
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")

    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if user_id is None:
        raise _unauthorized("Invalid token payload")

    if payload.get("exp") is None:
        raise _unauthorized("Token has no expiry")

    return CurrentUser(
        user_id=str(user_id),
        email=payload.get("email"),
        roles=await roles.roles_for(str(user_id)),
    )


# ============================================================================
# ADMIN-ONLY DEPENDENCY
# ============================================================================

def check_admin(user: CurrentUser) -> CurrentUser:
    """Raises AuthorizationError unless the user holds the admin role."""
    if not user.has_role(UserRole.ADMIN):
        raise AuthorizationError("Admin access required")
    return user


async def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """
    Dependency to require admin role

    Raises:
        HTTPException: 403 if user is not admin
    """
    try:
        return check_admin(current_user)
    except AuthorizationError as e:
        logger.warning(f"Admin access denied for user {current_user.user_id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )
