"""
Authentication dependencies for FastAPI.
Turns the bearer token into the acting user handed to the use cases.
"""

from typing import Optional, Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from timeledger.infrastructure.auth.jwt_handler import JWTHandler
from timeledger.domain.models.base import ValidationError
from timeledger.domain.models.user import ActingUser


# Security scheme; a missing header is reported as 401 below
security = HTTPBearer(auto_error=False)

# Global instances
jwt_handler = JWTHandler()


def get_jwt_handler() -> JWTHandler:
    """Dependency to get JWT handler."""
    return jwt_handler


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    jwt_handler: Annotated[JWTHandler, Depends(get_jwt_handler)]
) -> ActingUser:
    """
    FastAPI dependency to get the current authenticated user.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Authentication required")
    try:
        return jwt_handler.get_acting_user(credentials.credentials)
    except ValidationError as e:
        raise _unauthorized(e.message)


async def get_current_user_id(
    user: Annotated[ActingUser, Depends(get_current_user)]
) -> str:
    """FastAPI dependency to get current authenticated user ID."""
    return user.user_id


CurrentUser = Annotated[ActingUser, Depends(get_current_user)]
