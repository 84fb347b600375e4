"""
JWT token handler.
Validates bearer tokens and extracts the acting user from their claims.
"""

from typing import Optional, Dict, Any
from datetime import timedelta, timezone
from jose import JWTError, jwt as jose_jwt

from timeledger.config import get_settings
from timeledger.domain.models.base import ValidationError, utcnow
from timeledger.domain.models.user import ActingUser, UserRole


class JWTHandler:
    """Handles JWT token validation and user extraction."""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None):
        self.settings = get_settings()
        self.jwt_secret = secret or self.settings.jwt_secret_key
        self.jwt_algorithm = algorithm or self.settings.jwt_algorithm

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode a JWT token.

        Args:
            token: JWT token string, with or without the "Bearer " prefix

        Returns:
            Dict containing token payload

        Raises:
            ValidationError: If token is invalid or expired
        """
        try:
            # Remove 'Bearer ' prefix if present
            if token.startswith('Bearer '):
                token = token[7:]

            # Decode and verify the token
            payload = jose_jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.jwt_algorithm],
                options={"verify_exp": True, "verify_aud": False}
            )
        except JWTError as e:
            raise ValidationError(f"Invalid JWT token: {str(e)}", code="INVALID_TOKEN")

        # Validate required claims
        if 'sub' not in payload:
            raise ValidationError("Token missing user ID (sub claim)", code="INVALID_TOKEN")

        if 'exp' not in payload:
            raise ValidationError("Token missing expiration (exp claim)", code="INVALID_TOKEN")

        return payload

    def get_user_id(self, token: str) -> str:
        """Extract user ID from JWT token."""
        payload = self.verify_token(token)
        return payload['sub']

    def get_user_role(self, token: str) -> UserRole:
        """
        Extract user role from JWT token.
        Tokens without a role claim act as employees.
        """
        payload = self.verify_token(token)
        return self._role_from_claim(payload.get('role'))

    def get_acting_user(self, token: str) -> ActingUser:
        """The authenticated caller: ``sub`` claim as user id plus the ``role`` claim."""
        payload = self.verify_token(token)
        return ActingUser(user_id=payload['sub'], role=self._role_from_claim(payload.get('role')))

    def generate_test_token(
        self,
        user_id: str,
        email: str = "test@example.com",
        role: str = "employee",
        expires_minutes: int = 60
    ) -> str:
        """
        Generate a JWT token for development and testing.

        Args:
            user_id: User ID to include in token
            email: User email (default: test@example.com)
            role: User role (default: employee)
            expires_minutes: Token expiration in minutes, negative for an expired token

        Returns:
            JWT token string
        """
        now = utcnow()
        expire = now + timedelta(minutes=expires_minutes)
        payload = {
            "sub": user_id,  # Subject (user ID)
            "email": email,
            "role": role,
            "iat": int(now.replace(tzinfo=timezone.utc).timestamp()),  # Issued at
            "exp": int(expire.replace(tzinfo=timezone.utc).timestamp()),  # Expires at
        }

        return jose_jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    @staticmethod
    def _role_from_claim(role: Optional[str]) -> UserRole:
        if not role:
            return UserRole.EMPLOYEE
        try:
            return UserRole(str(role).lower())
        except ValueError:
            raise ValidationError(f"Unknown role in token: {role}", "role", code="INVALID_TOKEN")
