"""
Pulseboard - Session Token Service

Issues and verifies signed, time-limited bearer tokens with:
- User ID (sub)
- Optional email hint
- Unique token ID (jti), so two logins never share a token
- Issued-at / expiry

Verification is a pure function of the secret and the token: an invalid
token is a normal outcome reported as None, never an exception. Whether the
token is still *authorized* (not logged out) is decided by the session store.
"""

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID

from jose import JWTError, jwt
from pydantic import BaseModel, Field, ValidationError


class TokenClaims(BaseModel):
    """
    Decoded token payload.

    Attributes:
        sub: Subject (user ID)
        email: Email hint supplied at issue time
        jti: Unique token ID for audit correlation
        exp: Expiration timestamp
        iat: Issued-at timestamp
    """
    sub: UUID = Field(..., description="User ID")
    email: Optional[str] = Field(None, description="Email hint")
    jti: str = Field(..., description="Token ID")
    exp: datetime = Field(..., description="Expiration time")
    iat: datetime = Field(..., description="Issued at time")

    @property
    def user_id(self) -> UUID:
        return self.sub


class TokenService:
    """
    Signs and verifies session tokens with a server secret.

    Example:
        >>> tokens = TokenService("secret")
        >>> token, expires_at = tokens.issue(user_id, "ops@example.com")
        >>> tokens.verify(token).user_id == user_id
        True
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(hours=24),
    ):
        if not secret_key:
            raise ValueError("Token secret key must not be empty")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.lifetime = lifetime

    def issue(self, user_id: UUID, email: Optional[str] = None) -> Tuple[str, datetime]:
        """
        Create a new signed token.

        Returns:
            Tuple of (encoded token, expiry timestamp)
        """
        now = datetime.utcnow()
        expires_at = now + self.lifetime

        payload = {
            "sub": str(user_id),
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": expires_at,
        }
        if email:
            payload["email"] = email

        token = jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
        return token, expires_at

    def verify(self, token: Optional[str]) -> Optional[TokenClaims]:
        """
        Decode a token and check its signature and expiry.

        Returns:
            TokenClaims, or None for any invalid, expired or malformed token
        """
        if not token or not isinstance(token, str):
            return None
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
            return TokenClaims(**payload)
        except (JWTError, ValidationError, ValueError, TypeError):
            return None


def hash_token(token: str) -> str:
    """SHA-256 digest used to store and look up tokens server-side."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
