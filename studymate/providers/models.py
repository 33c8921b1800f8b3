"""
Request options and generated-content models for AI providers.
"""
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..models import Provider

Difficulty = Literal["easy", "medium", "hard"]
QuestionType = Literal["multiple_choice", "short_answer", "essay", "true_false"]


class ContentGenerationOptions(BaseModel):
    provider: Provider
    difficulty: Optional[Difficulty] = None
    count: Optional[int] = Field(default=None, ge=1, le=100)
    focus_areas: list[str] = Field(default_factory=list)


class ChatCompletionOptions(BaseModel):
    provider: Provider
    context: list[str] = Field(default_factory=list)
    max_tokens: Optional[int] = Field(default=None, ge=1)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class Flashcard(BaseModel):
    front: str
    back: str
    difficulty: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class StudyGuideSection(BaseModel):
    title: str
    content: str


class StudyGuide(BaseModel):
    title: str
    content: str
    sections: list[StudyGuideSection] = Field(default_factory=list)


class Question(BaseModel):
    type: QuestionType
    prompt: str
    options: Optional[list[str]] = None
    correct_answer: Optional[str] = Field(default=None, alias="correctAnswer")
    points: int = 1

    model_config = {"populate_by_name": True}


class GeneratedTest(BaseModel):
    title: str
    questions: list[Question] = Field(default_factory=list)


class ChatUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResult(BaseModel):
    content: str
    usage: Optional[ChatUsage] = None
