"""
APIKeyService: Per-user storage of encrypted AI provider API keys.

Provides the public API behind the ``/api-keys`` endpoints:
- ``list_keys(user_id)``: metadata for every stored key, newest first
- ``add_key(user_id, payload)``: validate, encrypt and store a key
- ``update_key(user_id, key_id, payload)``: rename and/or replace a key
- ``delete_key(user_id, key_id)``: remove a key
- ``test_key(user_id, key_id)``: decrypt and check a key, stamp last_used
- ``preview_key(user_id, key_id)``: masked key for display
- ``get_api_key(user_id, provider)``: plaintext key for a single AI call

A user holds at most one key per provider.

Security Note:
    Never log plaintext keys or envelopes. Only log user IDs, key IDs,
    providers and operations. Vault failures are reported to callers as a
    generic ``CredentialError``.

    Envelope operations derive a PBKDF2 key per call, so they run in a worker
    thread to keep the event loop responsive.
"""
import asyncio
import logging
from typing import Any
from uuid import UUID

from .exceptions import (
    APIKeyNotFoundError,
    CredentialError,
    DuplicateAPIKeyError,
    InvalidAPIKeyError,
    UnsupportedProviderError,
    VaultError,
)
from .models import (
    APIKeyCreate,
    APIKeyInfo,
    APIKeyPreview,
    APIKeyTestResult,
    APIKeyUpdate,
    Provider,
)
from .vault import CredentialVault, mask_api_key

logger = logging.getLogger("studymate.credentials")

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SELECT_ALL = """
SELECT id, provider, name, created_at, last_used
FROM studymate.api_keys
WHERE user_id = $1
ORDER BY created_at DESC
"""

_SELECT_BY_PROVIDER = """
SELECT id, provider, encrypted_key, name, created_at, last_used
FROM studymate.api_keys
WHERE user_id = $1 AND provider = $2
"""

_SELECT_BY_ID = """
SELECT id, provider, encrypted_key, name, created_at, last_used
FROM studymate.api_keys
WHERE id = $1 AND user_id = $2
"""

_INSERT_KEY = """
INSERT INTO studymate.api_keys (user_id, provider, encrypted_key, name)
VALUES ($1, $2, $3, $4)
RETURNING id, provider, name, created_at, last_used
"""

_UPDATE_KEY = """
UPDATE studymate.api_keys
SET name = COALESCE($3, name),
    encrypted_key = COALESCE($4, encrypted_key)
WHERE id = $1 AND user_id = $2
RETURNING id, provider, name, created_at, last_used
"""

_DELETE_KEY = """
DELETE FROM studymate.api_keys
WHERE id = $1 AND user_id = $2
"""

_TOUCH_LAST_USED = """
UPDATE studymate.api_keys
SET last_used = NOW()
WHERE id = $1
"""


# ---------------------------------------------------------------------------
# Provider key formats
# ---------------------------------------------------------------------------

def validate_api_key_format(provider: Provider | str, api_key: str) -> str | None:
    """Check an API key against its provider's format.

    Returns:
        None if the key looks valid, otherwise a user-facing error message.
    """
    try:
        provider = Provider(provider)
    except ValueError:
        return "Unsupported provider"

    if provider is Provider.OPENAI:
        if not api_key.startswith("sk-"):
            return 'OpenAI API keys must start with "sk-"'
        if len(api_key) < 20:
            return "OpenAI API key is too short"
    elif provider is Provider.ANTHROPIC:
        if not api_key.startswith("sk-ant-"):
            return 'Anthropic API keys must start with "sk-ant-"'
    elif provider is Provider.GOOGLE:
        if len(api_key) < 20:
            return "Google AI API key is too short"
    return None


def _to_info(row: Any) -> APIKeyInfo:
    return APIKeyInfo(
        id=row["id"],
        provider=row["provider"],
        name=row["name"],
        created_at=row["created_at"],
        last_used=row["last_used"],
    )


class APIKeyService:
    """Encrypted API key records backed by an asyncpg-compatible pool.

    The vault is injected so that every service instance in a process
    shares the composition root's master secret.
    """

    def __init__(self, db_pool: Any, vault: CredentialVault):
        self._db = db_pool
        self._vault = vault

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fetch_owned(self, conn: Any, user_id: Any, key_id: UUID) -> Any:
        row = await conn.fetchrow(_SELECT_BY_ID, key_id, user_id)
        if row is None:
            raise APIKeyNotFoundError("API key not found")
        return row

    def _check_format(self, provider: Provider | str, api_key: str) -> None:
        error = validate_api_key_format(provider, api_key)
        if error is not None:
            raise InvalidAPIKeyError(error)

    async def _seal(self, api_key: str) -> str:
        return await asyncio.to_thread(self._vault.encrypt, api_key)

    async def _open(self, row: Any) -> str:
        """Decrypt a row's envelope, hiding vault details from the caller."""
        try:
            return await asyncio.to_thread(
                self._vault.decrypt, row["encrypted_key"],
            )
        except VaultError as err:
            logger.error(
                "Failed to decrypt API key id=%s provider=%s: %s",
                row["id"], row["provider"], type(err).__name__,
            )
            raise CredentialError("Failed to process API key") from err

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def list_keys(self, user_id: Any) -> list[APIKeyInfo]:
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_ALL, user_id)
        return [_to_info(row) for row in rows]

    async def add_key(self, user_id: Any, payload: APIKeyCreate) -> APIKeyInfo:
        """Validate, encrypt and store a new provider key.

        Raises:
            DuplicateAPIKeyError: If the user already has a key for the provider.
            InvalidAPIKeyError: If the key does not match the provider format.
        """
        provider = payload.provider
        async with self._db.acquire() as conn:
            existing = await conn.fetchrow(
                _SELECT_BY_PROVIDER, user_id, provider.value,
            )
            if existing is not None:
                raise DuplicateAPIKeyError(
                    f"API key for {provider.value} already exists. "
                    "Please update or delete the existing key first."
                )
            self._check_format(provider, payload.api_key)
            encrypted_key = await self._seal(payload.api_key)
            row = await conn.fetchrow(
                _INSERT_KEY, user_id, provider.value, encrypted_key, payload.name,
            )

        logger.info(
            "API key added for provider %s by user %s", provider.value, user_id,
        )
        return _to_info(row)

    async def update_key(
        self, user_id: Any, key_id: UUID, payload: APIKeyUpdate,
    ) -> APIKeyInfo:
        """Rename and/or replace a stored key.

        Raises:
            APIKeyNotFoundError: If the key does not exist for this user.
            InvalidAPIKeyError: If the new key does not match the provider format.
        """
        async with self._db.acquire() as conn:
            existing = await self._fetch_owned(conn, user_id, key_id)
            encrypted_key = None
            if payload.api_key:
                self._check_format(existing["provider"], payload.api_key)
                encrypted_key = await self._seal(payload.api_key)
            row = await conn.fetchrow(
                _UPDATE_KEY, key_id, user_id, payload.name or None, encrypted_key,
            )

        logger.info("API key updated: %s by user %s", key_id, user_id)
        return _to_info(row)

    async def delete_key(self, user_id: Any, key_id: UUID) -> None:
        async with self._db.acquire() as conn:
            await self._fetch_owned(conn, user_id, key_id)
            await conn.execute(_DELETE_KEY, key_id, user_id)

        logger.info("API key deleted: %s by user %s", key_id, user_id)

    async def test_key(self, user_id: Any, key_id: UUID) -> APIKeyTestResult:
        """Decrypt a stored key and check it against its provider format.

        ``last_used`` is stamped only when the key passes.
        """
        async with self._db.acquire() as conn:
            row = await self._fetch_owned(conn, user_id, key_id)
            api_key = await self._open(row)
            error = validate_api_key_format(row["provider"], api_key)
            if error is None:
                await conn.execute(_TOUCH_LAST_USED, key_id)

        logger.debug(
            "API key test: id=%s provider=%s valid=%s",
            key_id, row["provider"], error is None,
        )
        return APIKeyTestResult(
            provider=row["provider"], valid=error is None, error=error,
        )

    async def preview_key(self, user_id: Any, key_id: UUID) -> APIKeyPreview:
        async with self._db.acquire() as conn:
            row = await self._fetch_owned(conn, user_id, key_id)
        masked = mask_api_key(await self._open(row))
        return APIKeyPreview(**_to_info(row).model_dump(), masked_key=masked)

    async def get_api_key(self, user_id: Any, provider: Provider | str) -> str:
        """Return the plaintext key for one AI call.

        Raises:
            APIKeyNotFoundError: If the user has no key for the provider.
            CredentialError: If the stored envelope cannot be opened.
            UnsupportedProviderError: If ``provider`` is not a known provider.
        """
        try:
            provider = Provider(provider)
        except ValueError:
            raise UnsupportedProviderError(
                f"Unsupported provider: {provider}", provider=str(provider),
            ) from None
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_BY_PROVIDER, user_id, provider.value)
        if row is None:
            raise APIKeyNotFoundError(f"No API key found for {provider.value}")
        return await self._open(row)
