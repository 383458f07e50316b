"""Governed prompt specifications."""

from comprehendo_app.infrastructure.llm.prompts.exercise_generation import (
    EXERCISE_GENERATION_PROMPT,
    PromptSpec,
    build_exercise_prompt,
)

__all__ = [
    "EXERCISE_GENERATION_PROMPT",
    "PromptSpec",
    "build_exercise_prompt",
]
