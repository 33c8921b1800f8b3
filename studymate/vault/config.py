"""
Vault Configuration: Master secret loading and validated settings.

Reads the master secret from the environment:
    ENCRYPTION_KEY = <string, at least 32 characters>

A missing or short secret is a startup failure; there is no default.

Security Note:
    Never log key material. Only log its presence and length checks.
"""
import os
import secrets
import logging

from pydantic import BaseModel, ValidationError, field_validator

from ..exceptions import ConfigurationError

logger = logging.getLogger("studymate.vault")

ENCRYPTION_KEY_ENV = "ENCRYPTION_KEY"
MIN_SECRET_LENGTH = 32


def check_master_secret(secret: str | None) -> str:
    """Validate a master secret.

    Raises:
        ConfigurationError: If the secret is missing or shorter than 32 characters.
    """
    if not secret:
        raise ConfigurationError(
            f"{ENCRYPTION_KEY_ENV} is not set. "
            f"Provide a secret of at least {MIN_SECRET_LENGTH} characters"
        )
    if len(secret) < MIN_SECRET_LENGTH:
        raise ConfigurationError(
            f"Encryption key must be at least {MIN_SECRET_LENGTH} characters long"
        )
    return secret


def load_master_secret() -> str:
    """Read and validate ENCRYPTION_KEY from the environment.

    Returns:
        The master secret string.

    Raises:
        ConfigurationError: If ENCRYPTION_KEY is missing or too short.
    """
    secret = check_master_secret(os.environ.get(ENCRYPTION_KEY_ENV))
    logger.debug("Loaded vault master secret from %s", ENCRYPTION_KEY_ENV)
    return secret


def generate_master_secret() -> str:
    """Generate a random master secret suitable for ENCRYPTION_KEY.

    This is a utility for operators to generate new secrets.

    Returns:
        64-character hex string.
    """
    return secrets.token_hex(32)


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    master_secret: str

    model_config = {"frozen": True}

    @field_validator("master_secret")
    @classmethod
    def validate_master_secret(cls, v: str) -> str:
        if len(v) < MIN_SECRET_LENGTH:
            raise ValueError(
                f"master_secret must be at least {MIN_SECRET_LENGTH} characters"
            )
        return v

    def __repr__(self) -> str:
        return "VaultConfig(master_secret='***')"

    __str__ = __repr__

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Raises:
            ConfigurationError: If the environment does not hold a usable secret.
        """
        master_secret = load_master_secret()
        try:
            return cls(master_secret=master_secret)
        except ValidationError as err:
            raise ConfigurationError("Invalid vault configuration") from err
