"""Pydantic schemas for challenge generation, evaluation and history."""
import uuid
from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from assessor.core.config import get_settings
from assessor.schemas.base import CamelSchema

QuestionType = Literal["adaptive", "multiple-choice", "general"]

# Labels older clients send for the same three types
TYPE_ALIASES = {
    "multi": "multiple-choice",
    "mcq": "multiple-choice",
    "multiple_choice": "multiple-choice",
    "multiplechoice": "multiple-choice",
    "scenario": "adaptive",
}


def normalize_type(value):
    if isinstance(value, str):
        key = value.strip().lower()
        return TYPE_ALIASES.get(key, key)
    return value


def _new_session_id() -> str:
    return uuid.uuid4().hex


class _TypedRequest(CamelSchema):
    type: QuestionType = "general"
    difficulty: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _alias_type(cls, value):
        return normalize_type(value)


class GenerateRequestSchema(_TypedRequest):
    domains: list[str] = Field(default_factory=lambda: ["general"], min_length=1)
    limit: int = Field(default=1, ge=1)
    previous: list[str] = Field(default_factory=list)

    @field_validator("limit")
    @classmethod
    def _within_max_questions(cls, value: int) -> int:
        max_questions = get_settings().max_questions
        if value > max_questions:
            raise ValueError(f"limit must be at most {max_questions}")
        return value


class ChallengeSchema(CamelSchema):
    challenge: str
    options: list[str] | None = None
    image_keywords: str | None = None


class GenerateOutSchema(CamelSchema):
    questions: list[ChallengeSchema]


class AnswerSchema(CamelSchema):
    challenge: str = Field(min_length=1)
    answer: str = ""
    domain: str | None = None


class EvaluateBatchSchema(_TypedRequest):
    user_id: int | None = None
    username: str | None = None
    answers: list[AnswerSchema] = Field(default_factory=list)
    domains: list[str] = Field(default_factory=lambda: ["general"])
    session_id: str = Field(default_factory=_new_session_id, min_length=1, max_length=64)


class EvaluationResultSchema(CamelSchema):
    score: float
    feedback: str


class EvaluateBatchOutSchema(CamelSchema):
    results: list[EvaluationResultSchema]


class EvaluateSchema(CamelSchema):
    user_id: int | None = None
    challenge: str = Field(min_length=1)
    answer: str = ""
    domain: str = "general"
    session_id: str = Field(default_factory=_new_session_id, min_length=1, max_length=64)
    type: QuestionType = "adaptive"
    difficulty: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _alias_type(cls, value):
        return normalize_type(value)


class EvaluateOutSchema(CamelSchema):
    score: float
    logic: float | None = None
    tone: float | None = None
    feedback: str
    next_level: Literal["easy", "hard"]


class EvaluateAndGenerateSchema(CamelSchema):
    user_id: int | None = None
    username: str | None = None
    current_scenario: str = Field(min_length=1)
    user_answer: str = ""
    domain: str = "general"
    session_id: str = Field(default_factory=_new_session_id, min_length=1, max_length=64)
    difficulty: str | None = None


class EvaluateAndGenerateOutSchema(EvaluateOutSchema):
    next_scenario: str


class AssessmentRecordOutSchema(CamelSchema):
    id: int
    user_id: int
    domain: str
    challenge: str
    answer: str
    score: float
    feedback: str
    logic: float | None = None
    tone: float | None = None
    session_id: str
    type: str
    difficulty: str
    created_at: datetime
