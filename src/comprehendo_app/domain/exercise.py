"""Domain contracts for generated reading-comprehension exercises."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from comprehendo_app.domain.language import is_learning_language, language_name


class CEFRLevel(StrEnum):
    """Six ordered proficiency tiers used to calibrate difficulty."""

    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"

    @property
    def rank(self) -> int:
        """Return zero-based position from A1 (lowest) to C2 (highest)."""
        return list(CEFRLevel).index(self)


class OptionKey(StrEnum):
    """Answer option keys of a multiple-choice question."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"


@dataclass(frozen=True)
class ExerciseGenerationRequest:
    """Pedagogical parameters for one exercise generation call."""

    topic: str
    passage_language: str
    question_language: str
    passage_language_name: str
    question_language_name: str
    level: CEFRLevel
    grammar_guidance: str
    vocabulary_guidance: str

    def __post_init__(self) -> None:
        if not self.topic.strip():
            raise ValueError("topic must not be empty")

    @classmethod
    def from_codes(
        cls,
        *,
        topic: str,
        passage_language: str,
        question_language: str,
        level: CEFRLevel,
        grammar_guidance: str,
        vocabulary_guidance: str,
    ) -> ExerciseGenerationRequest:
        """Build request resolving language display names from codes."""
        passage_language_name = language_name(passage_language)
        question_language_name = language_name(question_language)
        if not is_learning_language(passage_language):
            raise ValueError(f"Passages are not generated in language: {passage_language}")
        return cls(
            topic=topic,
            passage_language=passage_language,
            question_language=question_language,
            passage_language_name=passage_language_name,
            question_language_name=question_language_name,
            level=level,
            grammar_guidance=grammar_guidance,
            vocabulary_guidance=vocabulary_guidance,
        )


def _reject_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


NonEmptyText = Annotated[str, Field(min_length=1), AfterValidator(_reject_blank)]


class AnswerOptions(BaseModel):
    """Exactly four texts keyed by A-D."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    A: NonEmptyText
    B: NonEmptyText
    C: NonEmptyText
    D: NonEmptyText

    def get(self, key: OptionKey) -> str:
        return str(getattr(self, key.value))

    def as_dict(self) -> dict[str, str]:
        return {key.value: self.get(key) for key in OptionKey}


class ExerciseContent(BaseModel):
    """Strict schema for a generated exercise payload."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    paragraph: NonEmptyText
    topic: NonEmptyText
    question: NonEmptyText
    options: AnswerOptions
    correct_answer: OptionKey = Field(alias="correctAnswer")
    all_explanations: AnswerOptions = Field(alias="allExplanations")
    relevant_text: NonEmptyText = Field(alias="relevantText")

    def to_wire(self) -> dict[str, object]:
        """Return camelCase JSON-compatible mapping."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class QualityMetrics:
    """Measurements and flags computed from one candidate exercise."""

    question_length: int
    option_lengths: Mapping[str, int]
    explanation_lengths: Mapping[str, int]
    relevant_text_length: int
    paragraph_length: int
    all_explanations_present: bool
    relevant_text_in_paragraph: bool
    question_long_enough: bool
    explanations_long_enough: bool
    options_long_enough: bool
    correct_answer_in_options: bool
    correct_explanation_distinct: bool
    question_option_related: bool


@dataclass(frozen=True)
class ValidationVerdict:
    """Pass/fail outcome of the quality gate for one attempt."""

    is_valid: bool
    reason: str
    metrics: QualityMetrics
