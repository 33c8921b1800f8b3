"""
Tests for APIKeyService.

Tests cover:
- Provider key format validation
- Adding keys (encryption at rest, one key per provider)
- Listing, updating, deleting with ownership checks
- Testing and previewing stored keys
- Resolving plaintext keys and failing closed on vault errors
"""
import asyncio
import threading
import time
import uuid

import pytest
from pydantic import ValidationError

from studymate import credentials
from studymate.credentials import APIKeyService, validate_api_key_format
from studymate.exceptions import (
    APIKeyNotFoundError,
    CredentialError,
    DuplicateAPIKeyError,
    InvalidAPIKeyError,
    UnsupportedProviderError,
)
from studymate.models import APIKeyCreate, APIKeyUpdate, Provider
from studymate.vault import CredentialVault

from .conftest import TEST_SECRET

OPENAI_KEY = "sk-test1234567890abcdef"
ANTHROPIC_KEY = "sk-ant-api03-abcdefghij"
GOOGLE_KEY = "AIzaSyA1234567890abcdefg"


@pytest.fixture
def service(db_pool, vault):
    return APIKeyService(db_pool, vault)


def _create(provider=Provider.OPENAI, api_key=OPENAI_KEY, name="My key"):
    return APIKeyCreate(provider=provider, api_key=api_key, name=name)


# --- Test Format Validation ---

class TestKeyFormat:
    """Tests for validate_api_key_format."""

    @pytest.mark.parametrize("provider,key", [
        ("openai", OPENAI_KEY),
        ("anthropic", ANTHROPIC_KEY),
        ("google", GOOGLE_KEY),
    ])
    def test_valid_keys(self, provider, key):
        assert validate_api_key_format(provider, key) is None

    @pytest.mark.parametrize("provider,key,message", [
        ("openai", "pk-1234567890abcdefghij", 'OpenAI API keys must start with "sk-"'),
        ("openai", "sk-short12", "OpenAI API key is too short"),
        ("anthropic", OPENAI_KEY, 'Anthropic API keys must start with "sk-ant-"'),
        ("google", "AIza123456", "Google AI API key is too short"),
        ("mistral", OPENAI_KEY, "Unsupported provider"),
    ])
    def test_invalid_keys(self, provider, key, message):
        assert validate_api_key_format(provider, key) == message


# --- Test Payload Models ---

class TestPayloads:
    """Tests for request payload validation."""

    def test_strips_whitespace(self):
        payload = _create(api_key=f"  {OPENAI_KEY}  ", name="  Work  ")
        assert payload.api_key == OPENAI_KEY
        assert payload.name == "Work"

    def test_short_key_rejected(self):
        with pytest.raises(ValidationError):
            _create(api_key="sk-123")

    def test_long_name_rejected(self):
        with pytest.raises(ValidationError):
            _create(name="n" * 101)

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            APIKeyCreate(provider="mistral", api_key=OPENAI_KEY, name="x")

    def test_repr_hides_key(self):
        assert OPENAI_KEY not in repr(_create())
        assert OPENAI_KEY not in repr(APIKeyUpdate(api_key=OPENAI_KEY))


# --- Test Adding Keys ---

class TestAddKey:
    """Tests for APIKeyService.add_key."""

    @pytest.mark.asyncio
    async def test_add_key_encrypts(self, service, db_pool, vault):
        """The stored value is an envelope, never the plaintext."""
        info = await service.add_key("user-1", _create())
        assert info.provider is Provider.OPENAI
        assert info.name == "My key"
        assert info.last_used is None

        stored = db_pool.rows[0]["encrypted_key"]
        assert stored != OPENAI_KEY
        assert OPENAI_KEY not in stored
        assert vault.decrypt(stored) == OPENAI_KEY

    @pytest.mark.asyncio
    async def test_duplicate_provider_rejected(self, service):
        await service.add_key("user-1", _create())
        with pytest.raises(DuplicateAPIKeyError):
            await service.add_key("user-1", _create(name="Second"))

    @pytest.mark.asyncio
    async def test_same_provider_other_user(self, service, db_pool):
        await service.add_key("user-1", _create())
        await service.add_key("user-2", _create())
        assert len(db_pool.rows) == 2

    @pytest.mark.asyncio
    async def test_invalid_format_not_stored(self, service, db_pool):
        with pytest.raises(InvalidAPIKeyError) as exc_info:
            await service.add_key(
                "user-1", _create(Provider.ANTHROPIC, api_key=OPENAI_KEY),
            )
        assert "sk-ant-" in str(exc_info.value)
        assert db_pool.rows == []


# --- Test Listing, Updating, Deleting ---

class TestManageKeys:
    """Tests for list/update/delete."""

    @pytest.mark.asyncio
    async def test_list_keys(self, service):
        await service.add_key("user-1", _create())
        await service.add_key("user-1", _create(Provider.GOOGLE, GOOGLE_KEY, "Gemini"))
        await service.add_key("user-2", _create())

        keys = await service.list_keys("user-1")
        assert {k.provider for k in keys} == {Provider.OPENAI, Provider.GOOGLE}
        assert all(not hasattr(k, "encrypted_key") for k in keys)

    @pytest.mark.asyncio
    async def test_update_name_keeps_key(self, service, db_pool, vault):
        info = await service.add_key("user-1", _create())
        before = db_pool.rows[0]["encrypted_key"]

        updated = await service.update_key("user-1", info.id, APIKeyUpdate(name="Renamed"))
        assert updated.name == "Renamed"
        assert db_pool.rows[0]["encrypted_key"] == before

    @pytest.mark.asyncio
    async def test_update_key_reencrypts(self, service, db_pool, vault):
        info = await service.add_key("user-1", _create())
        new_key = "sk-replacement-0987654321"

        await service.update_key("user-1", info.id, APIKeyUpdate(api_key=new_key))
        assert vault.decrypt(db_pool.rows[0]["encrypted_key"]) == new_key
        assert db_pool.rows[0]["name"] == "My key"

    @pytest.mark.asyncio
    async def test_update_validates_against_stored_provider(self, service):
        info = await service.add_key("user-1", _create())
        with pytest.raises(InvalidAPIKeyError):
            await service.update_key(
                "user-1", info.id, APIKeyUpdate(api_key="pk-not-openai-123456"),
            )

    @pytest.mark.asyncio
    async def test_update_other_users_key(self, service):
        info = await service.add_key("user-1", _create())
        with pytest.raises(APIKeyNotFoundError):
            await service.update_key("user-2", info.id, APIKeyUpdate(name="Mine"))

    @pytest.mark.asyncio
    async def test_delete_key(self, service, db_pool):
        info = await service.add_key("user-1", _create())
        await service.delete_key("user-1", info.id)
        assert db_pool.rows == []

    @pytest.mark.asyncio
    async def test_delete_missing_key(self, service):
        with pytest.raises(APIKeyNotFoundError):
            await service.delete_key("user-1", uuid.uuid4())


# --- Test Testing and Preview ---

class TestKeyChecks:
    """Tests for test_key and preview_key."""

    @pytest.mark.asyncio
    async def test_valid_key_stamps_last_used(self, service, db_pool):
        info = await service.add_key("user-1", _create())
        result = await service.test_key("user-1", info.id)

        assert result.valid is True
        assert result.error is None
        assert result.provider is Provider.OPENAI
        assert db_pool.rows[0]["last_used"] is not None

    @pytest.mark.asyncio
    async def test_invalid_stored_key(self, service, db_pool, vault):
        info = await service.add_key("user-1", _create())
        db_pool.rows[0]["encrypted_key"] = vault.encrypt("pk-legacy-format-123456")

        result = await service.test_key("user-1", info.id)
        assert result.valid is False
        assert result.error == 'OpenAI API keys must start with "sk-"'
        assert db_pool.rows[0]["last_used"] is None
        assert credentials._TOUCH_LAST_USED not in db_pool.conn.executed

    @pytest.mark.asyncio
    async def test_preview_masks_key(self, service):
        info = await service.add_key("user-1", _create())
        preview = await service.preview_key("user-1", info.id)

        assert preview.id == info.id
        assert preview.masked_key.endswith(OPENAI_KEY[-4:])
        assert set(preview.masked_key[:-4]) == {"*"}
        assert OPENAI_KEY not in preview.model_dump_json()


# --- Test Plaintext Resolution ---

class TestGetApiKey:
    """Tests for get_api_key."""

    @pytest.mark.asyncio
    async def test_returns_plaintext(self, service):
        await service.add_key("user-1", _create())
        assert await service.get_api_key("user-1", Provider.OPENAI) == OPENAI_KEY
        assert await service.get_api_key("user-1", "openai") == OPENAI_KEY

    @pytest.mark.asyncio
    async def test_missing_provider(self, service):
        await service.add_key("user-1", _create())
        with pytest.raises(APIKeyNotFoundError):
            await service.get_api_key("user-1", Provider.ANTHROPIC)

    @pytest.mark.asyncio
    async def test_wrong_secret_is_not_not_found(self, db_pool, vault, other_vault):
        """A key sealed under another secret is a CredentialError, not missing."""
        await APIKeyService(db_pool, other_vault).add_key("user-1", _create())
        service = APIKeyService(db_pool, vault)

        with pytest.raises(CredentialError) as exc_info:
            await service.get_api_key("user-1", Provider.OPENAI)
        assert not isinstance(exc_info.value, APIKeyNotFoundError)
        assert str(exc_info.value) == "Failed to process API key"

    @pytest.mark.asyncio
    async def test_corrupt_envelope(self, service, db_pool):
        await service.add_key("user-1", _create())
        db_pool.rows[0]["encrypted_key"] = "not-an-envelope"
        with pytest.raises(CredentialError):
            await service.get_api_key("user-1", Provider.OPENAI)

    @pytest.mark.asyncio
    async def test_unknown_provider(self, service):
        with pytest.raises(UnsupportedProviderError) as exc_info:
            await service.get_api_key("user-1", "mistral")
        assert exc_info.value.provider == "mistral"


# --- Test Event Loop Responsiveness ---

class SlowVault(CredentialVault):
    """Vault whose decrypt takes a fixed wall-clock time and records its thread."""

    __slots__ = ("delay", "threads")

    def __init__(self, master_secret: str, delay: float):
        super().__init__(master_secret)
        self.delay = delay
        self.threads = set()

    def decrypt(self, envelope: str) -> str:
        self.threads.add(threading.get_ident())
        time.sleep(self.delay)
        return super().decrypt(envelope)


class TestEventLoop:
    """Vault work must not stall other tasks on the loop."""

    @pytest.mark.asyncio
    async def test_key_resolution_does_not_block_loop(self, db_pool):
        slow_vault = SlowVault(TEST_SECRET, delay=0.2)
        service = APIKeyService(db_pool, slow_vault)
        await service.add_key("user-1", _create())

        loop = asyncio.get_running_loop()
        done = asyncio.Event()
        max_gap = 0.0

        async def ticker():
            nonlocal max_gap
            last = loop.time()
            while not done.is_set():
                await asyncio.sleep(0.001)
                now = loop.time()
                max_gap = max(max_gap, now - last)
                last = now

        ticking = asyncio.create_task(ticker())
        try:
            keys = await asyncio.gather(
                *(service.get_api_key("user-1", Provider.OPENAI) for _ in range(5))
            )
        finally:
            done.set()
            await ticking

        assert keys == [OPENAI_KEY] * 5
        assert threading.get_ident() not in slow_vault.threads
        assert max_gap < 0.1
