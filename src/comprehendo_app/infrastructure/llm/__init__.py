"""LLM infrastructure package."""

from comprehendo_app.infrastructure.llm.clients import GoogleAIClient, TogetherAIClient
from comprehendo_app.infrastructure.llm.config import (
    LLMSettings,
    SamplingParameters,
    load_llm_settings,
)
from comprehendo_app.infrastructure.llm.factory import create_default_exercise_generator
from comprehendo_app.infrastructure.llm.gateway import LazyProviderRegistry, ProviderGateway

__all__ = [
    "GoogleAIClient",
    "LLMSettings",
    "LazyProviderRegistry",
    "ProviderGateway",
    "SamplingParameters",
    "TogetherAIClient",
    "create_default_exercise_generator",
    "load_llm_settings",
]
