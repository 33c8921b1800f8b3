"""
Data models for API key records.

The encrypted envelope never leaves :mod:`studymate.credentials`; these
models are what callers (and the HTTP layer) get back.
"""
from enum import Enum
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class Provider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


class APIKeyCreate(BaseModel):
    """Payload for registering a provider API key."""

    provider: Provider
    api_key: str = Field(min_length=10)
    name: str = Field(min_length=1, max_length=100)

    model_config = {"str_strip_whitespace": True}

    def __repr__(self) -> str:
        return f"APIKeyCreate(provider={self.provider.value!r}, name={self.name!r})"


class APIKeyUpdate(BaseModel):
    """Payload for changing an API key's name and/or value."""

    api_key: Optional[str] = Field(default=None, min_length=10)
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)

    model_config = {"str_strip_whitespace": True}

    def __repr__(self) -> str:
        return f"APIKeyUpdate(name={self.name!r}, api_key={'***' if self.api_key else None})"


class APIKeyInfo(BaseModel):
    """Public view of a stored API key."""

    id: UUID
    provider: Provider
    name: str
    created_at: datetime
    last_used: Optional[datetime] = None


class APIKeyPreview(APIKeyInfo):
    masked_key: str


class APIKeyTestResult(BaseModel):
    provider: Provider
    valid: bool
    error: Optional[str] = None
