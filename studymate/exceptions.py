"""
StudyMate exception hierarchy.

Messages carried by these exceptions are safe to show to end users.
Underlying library errors are chained with ``raise ... from`` and
only ever reach the logs.
"""


class StudyMateError(Exception):
    """Base class for all StudyMate errors."""

    def __init__(self, message: str = "", **kwargs):
        super().__init__(message)
        self.message = message
        self.details = kwargs

    def __str__(self) -> str:
        return self.message


class ConfigurationError(StudyMateError):
    """Required configuration is missing or invalid. Fatal at startup."""


# ---------------------------------------------------------------------------
# Vault
# ---------------------------------------------------------------------------

class VaultError(StudyMateError):
    """Base class for credential vault failures."""


class DecryptionError(VaultError):
    """Envelope authentication failed (wrong secret, corruption or tampering)."""

    def __init__(self, message: str = "Decryption failed", **kwargs):
        super().__init__(message, **kwargs)


class FormatError(VaultError):
    """Envelope is not valid base64 or is shorter than its fixed header."""


# ---------------------------------------------------------------------------
# API key records
# ---------------------------------------------------------------------------

class CredentialError(StudyMateError):
    """A stored API key could not be processed."""


class APIKeyNotFoundError(CredentialError):
    """No API key record matches the request."""


class DuplicateAPIKeyError(CredentialError):
    """The user already has an API key for this provider."""


class InvalidAPIKeyError(CredentialError):
    """The API key does not match its provider's format."""


# ---------------------------------------------------------------------------
# AI providers
# ---------------------------------------------------------------------------

class AIProviderError(StudyMateError):
    """An AI provider call failed."""

    def __init__(self, message: str = "", provider: str = None, **kwargs):
        super().__init__(message, **kwargs)
        self.provider = provider


class UnsupportedProviderError(AIProviderError):
    """The requested provider has no implementation."""


class ProviderAuthenticationError(AIProviderError):
    """The provider rejected the API key."""


class ProviderResponseError(AIProviderError):
    """The provider returned an empty or unparsable response."""


# ---------------------------------------------------------------------------
# Auth tokens
# ---------------------------------------------------------------------------

class AuthError(StudyMateError):
    """Base class for token failures."""


class TokenExpiredError(AuthError):
    """The token signature is valid but it has expired."""


class InvalidTokenError(AuthError):
    """The token is malformed, forged, or of the wrong type."""
