"""Factory helpers for default exercise generator wiring."""

from __future__ import annotations

from comprehendo_app.application.exercise_generation import ExerciseGenerator
from comprehendo_app.infrastructure.llm.config import LLMSettings, load_llm_settings
from comprehendo_app.infrastructure.llm.gateway import LazyProviderRegistry, ProviderGateway
from comprehendo_app.infrastructure.llm.prompts import (
    EXERCISE_GENERATION_PROMPT,
    build_exercise_prompt,
)


def create_default_exercise_generator(
    *,
    gateway: ProviderGateway | None = None,
    registry: LazyProviderRegistry | None = None,
    settings: LLMSettings | None = None,
) -> ExerciseGenerator:
    """Construct generator with env-driven gateway, prompt builder, and thresholds."""
    resolved_settings = settings or load_llm_settings()
    return ExerciseGenerator(
        gateway or ProviderGateway(registry=registry),
        build_prompt=build_exercise_prompt,
        quality_thresholds=resolved_settings.quality_thresholds,
        default_max_attempts=resolved_settings.max_attempts,
        prompt_id=EXERCISE_GENERATION_PROMPT.prompt_id,
        prompt_version=EXERCISE_GENERATION_PROMPT.version,
    )
