"""
OpenAI AI Provider
==================

OpenAI implementation of AIProvider.
Uses official openai SDK with async support.
"""
import logging
from typing import Any, Optional

import orjson
from openai import (
    AsyncOpenAI,
    APIError,
    AuthenticationError as OpenAIAuthError,
)
from pydantic import TypeAdapter, ValidationError

from ..exceptions import (
    AIProviderError,
    ProviderAuthenticationError,
    ProviderResponseError,
)
from ..models import Provider
from .base import AIProvider
from .models import (
    ChatCompletionOptions,
    ChatCompletionResult,
    ChatMessage,
    ChatUsage,
    ContentGenerationOptions,
    Flashcard,
    GeneratedTest,
    StudyGuide,
)

logger = logging.getLogger("studymate.ai")

DEFAULT_MODEL = "gpt-4"
DEFAULT_COUNT = 10
DEFAULT_DIFFICULTY = "medium"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_CHAT_MAX_TOKENS = 1000

_FLASHCARDS = TypeAdapter(list[Flashcard])

_FLASHCARDS_PROMPT = """Generate {count} flashcards from the following content. \
Each flashcard should have a front (question) and back (answer). Format as JSON array \
with objects containing "front", "back", "difficulty", and "tags" fields.

Content:
{content}

Difficulty level: {difficulty}
Focus areas: {focus_areas}

Return only the JSON array, no additional text."""

_STUDY_GUIDE_PROMPT = """Create a comprehensive study guide from the following content. \
Include a title, overview, and organized sections. Format as JSON with "title", \
"content", and "sections" fields.

Content:
{content}

Difficulty level: {difficulty}
Focus areas: {focus_areas}

Return only the JSON object, no additional text."""

_TEST_PROMPT = """Generate a test with {count} questions from the following content. \
Include multiple choice, short answer, and essay questions. Format as JSON with \
"title" and "questions" array.

Content:
{content}

Difficulty level: {difficulty}
Focus areas: {focus_areas}

Each question should have: type, prompt, options (for multiple choice), \
correctAnswer, and points.

Return only the JSON object, no additional text."""

_CONTEXT_PREAMBLE = "Use the following study materials to answer the user:\n\n"


def _render(template: str, content: str, options: ContentGenerationOptions) -> str:
    return template.format(
        count=options.count or DEFAULT_COUNT,
        content=content,
        difficulty=options.difficulty or DEFAULT_DIFFICULTY,
        focus_areas=", ".join(options.focus_areas) or "general",
    )


class OpenAIProvider(AIProvider):
    """
    OpenAI provider using official SDK.

    Content generation asks the model for bare JSON and validates it into
    the study-material models; chat returns text plus token usage.
    """

    name = Provider.OPENAI

    def __init__(self, api_key: str, model: Optional[str] = None):
        super().__init__(api_key)
        self.client = AsyncOpenAI(api_key=api_key)
        self.model_name = model or DEFAULT_MODEL

    async def _complete(
        self,
        messages: list[dict],
        temperature: float,
        max_tokens: int,
    ) -> Any:
        try:
            return await self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except OpenAIAuthError as e:
            raise ProviderAuthenticationError(
                "OpenAI API key is invalid.",
                provider=self.name.value,
            ) from e
        except APIError as e:
            raise AIProviderError(
                f"OpenAI API error: {e}",
                provider=self.name.value,
            ) from e

    def _text(self, response: Any) -> str:
        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise ProviderResponseError(
                "No response from OpenAI", provider=self.name.value,
            )
        return text

    async def _generate_json(self, prompt: str, max_tokens: int) -> Any:
        response = await self._complete(
            [{"role": "user", "content": prompt}],
            temperature=DEFAULT_TEMPERATURE,
            max_tokens=max_tokens,
        )
        text = self._text(response)
        try:
            return orjson.loads(text)
        except orjson.JSONDecodeError as e:
            logger.error("Failed to parse OpenAI response (%d chars)", len(text))
            raise ProviderResponseError(
                "Invalid response format from OpenAI", provider=self.name.value,
            ) from e

    def _validate(self, validator, data: Any):
        try:
            return validator(data)
        except ValidationError as e:
            logger.error("OpenAI response did not match schema: %s", e.error_count())
            raise ProviderResponseError(
                "Invalid response format from OpenAI", provider=self.name.value,
            ) from e

    async def generate_flashcards(
        self, content: str, options: ContentGenerationOptions,
    ) -> list[Flashcard]:
        data = await self._generate_json(
            _render(_FLASHCARDS_PROMPT, content, options), max_tokens=2000,
        )
        return self._validate(_FLASHCARDS.validate_python, data)

    async def generate_study_guide(
        self, content: str, options: ContentGenerationOptions,
    ) -> StudyGuide:
        data = await self._generate_json(
            _render(_STUDY_GUIDE_PROMPT, content, options), max_tokens=3000,
        )
        return self._validate(StudyGuide.model_validate, data)

    async def generate_test(
        self, content: str, options: ContentGenerationOptions,
    ) -> GeneratedTest:
        data = await self._generate_json(
            _render(_TEST_PROMPT, content, options), max_tokens=3000,
        )
        return self._validate(GeneratedTest.model_validate, data)

    async def chat_completion(
        self, messages: list[ChatMessage], options: ChatCompletionOptions,
    ) -> ChatCompletionResult:
        payload = [m.model_dump() for m in messages]
        if options.context:
            payload.insert(0, {
                "role": "system",
                "content": _CONTEXT_PREAMBLE + "\n\n".join(options.context),
            })
        response = await self._complete(
            payload,
            temperature=(
                options.temperature if options.temperature is not None
                else DEFAULT_TEMPERATURE
            ),
            max_tokens=options.max_tokens or DEFAULT_CHAT_MAX_TOKENS,
        )
        usage = response.usage
        return ChatCompletionResult(
            content=self._text(response),
            usage=ChatUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
                total_tokens=getattr(usage, "total_tokens", 0) or 0,
            ),
        )
