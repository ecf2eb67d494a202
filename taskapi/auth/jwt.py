# =============================================================================
# JWT Authentication Implementation
# =============================================================================
#
# This module provides:
#   - Password hashing
#   - Token creation (access + refresh)
#   - Token validation
#
# The signing key lives on a TokenSigner built from Settings and handed to
# whoever needs it; nothing here reads configuration at import time.
#
# =============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import hashlib
import secrets

from pydantic import BaseModel
import jwt

from taskapi.config import Settings
from taskapi.core.utils import generate_id, utc_now


ACCESS = "access"
REFRESH = "refresh"


# =============================================================================
# Models
# =============================================================================

class TokenPayload(BaseModel):
    """JWT token payload."""
    sub: str  # user_id
    exp: datetime
    iat: datetime
    type: str  # "access" or "refresh"
    jti: str  # unique token ID


class TokenPair(BaseModel):
    """Access and refresh token pair."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until access token expires


# =============================================================================
# Password Hashing
# =============================================================================

def hash_password(password: str, iterations: int = 100_000) -> str:
    """
    Hash a password using PBKDF2-SHA256.

    Returns: salt:hash format string
    """
    salt = secrets.token_hex(32)
    hash_bytes = hashlib.pbkdf2_hmac(
        'sha256',
        password.encode('utf-8'),
        salt.encode('utf-8'),
        iterations=iterations,
    )
    return f"{salt}:{hash_bytes.hex()}"


def verify_password(password: str, password_hash: str, iterations: int = 100_000) -> bool:
    """Verify a password against its hash."""
    try:
        salt, stored_hash = password_hash.split(':')
        hash_bytes = hashlib.pbkdf2_hmac(
            'sha256',
            password.encode('utf-8'),
            salt.encode('utf-8'),
            iterations=iterations,
        )
        return secrets.compare_digest(hash_bytes.hex(), stored_hash)
    except (ValueError, AttributeError):
        return False


# =============================================================================
# Token Errors
# =============================================================================

class TokenError(Exception):
    """Base exception for token errors."""
    pass


class TokenExpiredError(TokenError):
    """Token has expired."""
    pass


class TokenInvalidError(TokenError):
    """Token is invalid or malformed."""
    pass


# =============================================================================
# Token Signer
# =============================================================================

class TokenSigner:
    """Issues and verifies signed, time-bounded identity tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=30),
        refresh_ttl: timedelta = timedelta(days=7),
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenSigner:
        return cls(
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(minutes=settings.jwt_access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.jwt_refresh_token_expire_days),
        )

    def _encode(self, user_id: str, token_type: str, ttl: timedelta) -> str:
        now = utc_now()
        payload = {
            "sub": user_id,
            "exp": now + ttl,
            "iat": now,
            "type": token_type,
            "jti": generate_id("tok" if token_type == ACCESS else "rtok"),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def create_access_token(self, user_id: str) -> str:
        """Create a JWT access token."""
        return self._encode(user_id, ACCESS, self.access_ttl)

    def create_refresh_token(self, user_id: str) -> str:
        """Create a JWT refresh token (longer-lived)."""
        return self._encode(user_id, REFRESH, self.refresh_ttl)

    def create_token_pair(self, user_id: str) -> TokenPair:
        """Create both access and refresh tokens."""
        return TokenPair(
            access_token=self.create_access_token(user_id),
            refresh_token=self.create_refresh_token(user_id),
            expires_in=int(self.access_ttl.total_seconds()),
        )

    def decode(self, token: str, expected_type: str = ACCESS) -> TokenPayload:
        """
        Decode and validate a JWT token.

        Args:
            token: The JWT string
            expected_type: "access" or "refresh"

        Returns:
            TokenPayload with validated claims

        Raises:
            TokenExpiredError: Token has expired
            TokenInvalidError: Token is invalid
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(f"Invalid token: {e}")

        if payload.get("type") != expected_type:
            raise TokenInvalidError(f"Expected {expected_type} token, got {payload.get('type')}")

        return TokenPayload(
            sub=payload["sub"],
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            type=payload["type"],
            jti=payload.get("jti", ""),
        )
