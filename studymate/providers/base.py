"""
Base AI Provider
================

Capability interface shared by every AI backend StudyMate can call.
"""
from abc import ABC, abstractmethod

from ..exceptions import UnsupportedProviderError
from ..models import Provider
from .models import (
    ChatCompletionOptions,
    ChatCompletionResult,
    ChatMessage,
    ContentGenerationOptions,
    Flashcard,
    GeneratedTest,
    StudyGuide,
)


class AIProvider(ABC):
    """Generates study material and chat replies with one user's API key."""

    name: Provider

    def __init__(self, api_key: str):
        self._api_key = api_key

    def __repr__(self) -> str:
        return f"<{type(self).__name__} provider={self.name.value}>"

    @abstractmethod
    async def generate_flashcards(
        self, content: str, options: ContentGenerationOptions,
    ) -> list[Flashcard]:
        ...

    @abstractmethod
    async def generate_study_guide(
        self, content: str, options: ContentGenerationOptions,
    ) -> StudyGuide:
        ...

    @abstractmethod
    async def generate_test(
        self, content: str, options: ContentGenerationOptions,
    ) -> GeneratedTest:
        ...

    @abstractmethod
    async def chat_completion(
        self, messages: list[ChatMessage], options: ChatCompletionOptions,
    ) -> ChatCompletionResult:
        ...


class UnimplementedProvider(AIProvider):
    """A known provider with no integration yet; every call is refused."""

    def _unsupported(self):
        raise UnsupportedProviderError(
            f"{self.name.value} integration is not implemented",
            provider=self.name.value,
        )

    async def generate_flashcards(self, content, options):
        self._unsupported()

    async def generate_study_guide(self, content, options):
        self._unsupported()

    async def generate_test(self, content, options):
        self._unsupported()

    async def chat_completion(self, messages, options):
        self._unsupported()


class AnthropicProvider(UnimplementedProvider):
    name = Provider.ANTHROPIC


class GoogleProvider(UnimplementedProvider):
    name = Provider.GOOGLE
