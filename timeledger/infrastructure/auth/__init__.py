"""
Bearer token authentication for the HTTP layer.
"""

from .jwt_handler import JWTHandler
from .dependencies import CurrentUser, get_current_user, get_current_user_id, get_jwt_handler, security

__all__ = [
    "JWTHandler",
    "CurrentUser",
    "get_current_user",
    "get_current_user_id",
    "get_jwt_handler",
    "security",
]
