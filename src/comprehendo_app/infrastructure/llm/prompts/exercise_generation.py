"""Prompt governance spec for reading-comprehension exercise generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel

from comprehendo_app.domain.exercise import ExerciseContent, ExerciseGenerationRequest

TSchema = TypeVar("TSchema", bound=BaseModel)


@dataclass(frozen=True)
class PromptSpec(Generic[TSchema]):
    """Governed prompt definition with schema and version metadata."""

    prompt_id: str
    purpose: str
    version: str
    expected_schema: type[TSchema]


EXERCISE_GENERATION_PROMPT = PromptSpec[ExerciseContent](
    prompt_id="exercise_generation",
    purpose=(
        "Generate one reading passage with a four-option comprehension question "
        "and per-option explanations for a language learner."
    ),
    version="v1",
    expected_schema=ExerciseContent,
)

_EXAMPLE_JSON = """{
  "paragraph": "...",
  "topic": "...",
  "question": "...",
  "options": { "A": "...", "B": "...", "C": "...", "D": "..." },
  "correctAnswer": "B",
  "allExplanations": {
    "A": "Why A is wrong, quoting the passage...",
    "B": "Why B is right, quoting the passage...",
    "C": "Why C is wrong, quoting the passage...",
    "D": "Why D is wrong, quoting the passage..."
  },
  "relevantText": "..."
}"""


def build_exercise_prompt(request: ExerciseGenerationRequest) -> str:
    """Build the generation prompt; same request always yields the same text."""
    passage = f"{request.passage_language_name} ({request.passage_language})"
    questions = f"{request.question_language_name} ({request.question_language})"
    level = request.level.value

    return (
        "Create a reading comprehension exercise with these parameters:\n"
        f"- Topic: {request.topic}\n"
        f"- Passage language: {passage}\n"
        f"- Question language: {questions}\n"
        f"- CEFR level: {level}\n"
        f"- Grammar guidance: {request.grammar_guidance}\n"
        f"- Vocabulary guidance: {request.vocabulary_guidance}\n\n"
        "Requirements:\n"
        f"1. Write a short paragraph of 3-6 sentences in {passage} about "
        f'"{request.topic}", suitable for a {level} learner and following the grammar '
        "and vocabulary guidance above.\n"
        f"2. Write exactly one multiple-choice question in {questions}. It must test "
        "one comprehension skill: main idea, specific detail, inference, or vocabulary "
        "in context.\n"
        f"3. Give four answer options A, B, C and D in {questions}. Exactly one is "
        "correct.\n"
        "4. Wrong options must relate to the topic but be contradicted or unsupported "
        "by the paragraph. Do not use options that rely on outside knowledge.\n"
        "5. HARD REQUIREMENT: the question must be impossible to answer without "
        "reading the paragraph. The answer must depend only on what the paragraph "
        "states or implies, never on general knowledge or common sense.\n"
        "6. Name the key of the correct option (A, B, C or D).\n"
        f"7. Explain every option A, B, C and D in {questions}. Say why the correct "
        "option is right and why each other option is wrong. Every explanation must "
        "point to the part of the paragraph that supports or contradicts the option.\n"
        f"8. Copy, word for word from the paragraph in {passage}, the sentence or "
        "phrase that proves the correct answer. It must appear in the paragraph "
        "exactly as written.\n\n"
        "Output format: respond ONLY with one valid JSON object with these keys:\n"
        f'- "paragraph": string, the paragraph in {passage}.\n'
        f'- "topic": string, exactly "{request.topic}".\n'
        f'- "question": string, the question in {questions}.\n'
        '- "options": object with keys "A", "B", "C", "D"; each value is an option '
        f"in {questions}.\n"
        '- "correctAnswer": string, one of "A", "B", "C", "D".\n'
        '- "allExplanations": object with keys "A", "B", "C", "D"; each value '
        f"explains that option in {questions} and references the paragraph.\n"
        '- "relevantText": string, the exact quote from the paragraph that supports '
        "the correct answer.\n\n"
        "Example structure:\n"
        f"{_EXAMPLE_JSON}\n\n"
        "Return the JSON object only, with no surrounding text and no markdown.\n"
    )
