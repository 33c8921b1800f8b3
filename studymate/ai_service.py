"""
AIService: Study material generation and chat with the user's own API key.

Each call resolves the plaintext key for the requested provider, builds the
provider, runs one capability and drops the key. Provider failures reach
callers as generic ``AIProviderError`` messages; the cause is logged.
"""
import logging
from typing import Any, Callable

from .credentials import APIKeyService
from .exceptions import AIProviderError, UnsupportedProviderError
from .providers import AIProvider, get_provider
from .providers.models import (
    ChatCompletionOptions,
    ChatCompletionResult,
    ChatMessage,
    ContentGenerationOptions,
    Flashcard,
    GeneratedTest,
    StudyGuide,
)

logger = logging.getLogger("studymate.ai")


class AIService:
    def __init__(
        self,
        api_keys: APIKeyService,
        provider_factory: Callable[[Any, str], AIProvider] = get_provider,
    ):
        self._api_keys = api_keys
        self._provider_factory = provider_factory

    async def _provider_for(self, user_id: Any, provider: Any) -> AIProvider:
        api_key = await self._api_keys.get_api_key(user_id, provider)
        return self._provider_factory(provider, api_key)

    async def _run(self, action: str, failure: str, user_id: Any, provider: Any, call):
        client = await self._provider_for(user_id, provider)
        try:
            return await call(client)
        except UnsupportedProviderError:
            raise
        except Exception as err:
            logger.error(
                "%s failed for user=%s provider=%s: %s",
                action, user_id, getattr(provider, "value", provider), err,
            )
            raise AIProviderError(
                failure, provider=getattr(provider, "value", provider),
            ) from err

    async def generate_flashcards(
        self, user_id: Any, content: str, options: ContentGenerationOptions,
    ) -> list[Flashcard]:
        return await self._run(
            "Flashcard generation", "Failed to generate flashcards",
            user_id, options.provider,
            lambda client: client.generate_flashcards(content, options),
        )

    async def generate_study_guide(
        self, user_id: Any, content: str, options: ContentGenerationOptions,
    ) -> StudyGuide:
        return await self._run(
            "Study guide generation", "Failed to generate study guide",
            user_id, options.provider,
            lambda client: client.generate_study_guide(content, options),
        )

    async def generate_test(
        self, user_id: Any, content: str, options: ContentGenerationOptions,
    ) -> GeneratedTest:
        return await self._run(
            "Test generation", "Failed to generate test",
            user_id, options.provider,
            lambda client: client.generate_test(content, options),
        )

    async def chat_completion(
        self,
        user_id: Any,
        messages: list[ChatMessage],
        options: ChatCompletionOptions,
    ) -> ChatCompletionResult:
        return await self._run(
            "Chat completion", "Chat completion failed",
            user_id, options.provider,
            lambda client: client.chat_completion(messages, options),
        )
