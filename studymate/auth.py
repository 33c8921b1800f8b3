"""
Auth Tokens: JWT access/refresh token issue and verification.

Reads settings from the environment:
    JWT_SECRET = <string, at least 32 characters>
    REFRESH_TOKEN_SECRET = <string, at least 32 characters>
    JWT_EXPIRES_IN = <n><d|h|m|s>            (default 7d)
    REFRESH_TOKEN_EXPIRES_IN = <n><d|h|m|s>  (default 30d)

Security Note:
    Never log tokens or secrets. Only log user IDs.
"""
import os
import re
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from pydantic import BaseModel, ValidationError, field_validator

from .exceptions import ConfigurationError, InvalidTokenError, TokenExpiredError

logger = logging.getLogger("studymate.auth")

ISSUER = "studymate-backend"
AUDIENCE = "studymate-frontend"
ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32

_DURATION_PATTERN = re.compile(r"^(\d+)([dhms])$")
_DURATION_UNITS = {"d": "days", "h": "hours", "m": "minutes", "s": "seconds"}


def parse_duration(value: str) -> timedelta:
    """Parse a ``<n><d|h|m|s>`` duration such as ``7d`` or ``15m``.

    Raises:
        ConfigurationError: If the value is not in that format.
    """
    match = _DURATION_PATTERN.match(value)
    if not match:
        raise ConfigurationError(f"Invalid token expiration format: {value!r}")
    return timedelta(**{_DURATION_UNITS[match.group(2)]: int(match.group(1))})


class AuthUser(BaseModel):
    id: str
    email: str
    name: str
    google_id: Optional[str] = None


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


class AuthConfig(BaseModel):
    """Validated token settings."""

    jwt_secret: str
    refresh_token_secret: str
    jwt_expires_in: str = "7d"
    refresh_token_expires_in: str = "30d"

    model_config = {"frozen": True}

    @field_validator("jwt_secret", "refresh_token_secret")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        if len(v) < MIN_SECRET_LENGTH:
            raise ValueError(f"secret must be at least {MIN_SECRET_LENGTH} characters")
        return v

    @field_validator("jwt_expires_in", "refresh_token_expires_in")
    @classmethod
    def validate_duration(cls, v: str) -> str:
        if not _DURATION_PATTERN.match(v):
            raise ValueError(f"expected <n><d|h|m|s>, got {v!r}")
        return v

    def __repr__(self) -> str:
        return (
            f"AuthConfig(jwt_expires_in={self.jwt_expires_in!r}, "
            f"refresh_token_expires_in={self.refresh_token_expires_in!r})"
        )

    __str__ = __repr__

    @classmethod
    def from_env(cls) -> "AuthConfig":
        """Create AuthConfig from environment variables.

        Raises:
            ConfigurationError: If a secret is missing or invalid.
        """
        values = {
            "jwt_secret": os.environ.get("JWT_SECRET"),
            "refresh_token_secret": os.environ.get("REFRESH_TOKEN_SECRET"),
            "jwt_expires_in": os.environ.get("JWT_EXPIRES_IN", "7d"),
            "refresh_token_expires_in": os.environ.get("REFRESH_TOKEN_EXPIRES_IN", "30d"),
        }
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise ConfigurationError(
                f"Missing auth configuration: {', '.join(sorted(missing))}"
            )
        try:
            return cls(**values)
        except ValidationError as err:
            fields = sorted({str(e["loc"][0]) for e in err.errors()})
            raise ConfigurationError(
                f"Invalid auth configuration: {', '.join(fields)}"
            ) from err


class TokenService:
    """Issues and verifies StudyMate JWTs."""

    def __init__(self, config: AuthConfig):
        self._config = config
        self._access_ttl = parse_duration(config.jwt_expires_in)
        self._refresh_ttl = parse_duration(config.refresh_token_expires_in)

    def _encode(self, claims: dict, secret: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iat": now,
            "exp": now + ttl,
            "iss": ISSUER,
            "aud": AUDIENCE,
        }
        return jwt.encode(payload, secret, algorithm=ALGORITHM)

    def _decode(self, token: str, secret: str) -> dict[str, Any]:
        return jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            audience=AUDIENCE,
            issuer=ISSUER,
        )

    def generate_access_token(self, user: AuthUser) -> str:
        return self._encode(
            {"sub": user.id, "email": user.email, "name": user.name},
            self._config.jwt_secret,
            self._access_ttl,
        )

    def generate_refresh_token(self, user_id: str) -> str:
        return self._encode(
            {"sub": user_id, "type": "refresh"},
            self._config.refresh_token_secret,
            self._refresh_ttl,
        )

    def generate_tokens(self, user: AuthUser) -> TokenPair:
        logger.debug("Issuing token pair for user=%s", user.id)
        return TokenPair(
            access_token=self.generate_access_token(user),
            refresh_token=self.generate_refresh_token(user.id),
        )

    def verify_access_token(self, token: str) -> dict[str, Any]:
        """Decode and validate an access token.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is malformed or forged.
        """
        try:
            return self._decode(token, self._config.jwt_secret)
        except jwt.ExpiredSignatureError as err:
            raise TokenExpiredError("Token expired") from err
        except jwt.InvalidTokenError as err:
            raise InvalidTokenError("Invalid token") from err

    def verify_refresh_token(self, token: str) -> dict[str, Any]:
        """Decode and validate a refresh token.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is malformed, forged, or not a refresh token.
        """
        try:
            payload = self._decode(token, self._config.refresh_token_secret)
        except jwt.ExpiredSignatureError as err:
            raise TokenExpiredError("Refresh token expired") from err
        except jwt.InvalidTokenError as err:
            raise InvalidTokenError("Invalid refresh token") from err
        if payload.get("type") != "refresh":
            raise InvalidTokenError("Invalid token type")
        return payload

    def refresh_token_expiration(self, now: Optional[datetime] = None) -> datetime:
        """Expiry timestamp for a refresh token issued at ``now``."""
        return (now or datetime.now(timezone.utc)) + self._refresh_ttl

    @staticmethod
    def extract_token_from_header(auth_header: Optional[str]) -> Optional[str]:
        """Return the token from ``Bearer <token>``, or None."""
        if not auth_header:
            return None
        parts = auth_header.split(" ")
        if len(parts) != 2 or parts[0] != "Bearer":
            return None
        return parts[1]
