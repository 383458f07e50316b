"""Environment configuration for provider selection, credentials, and limits."""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass

from comprehendo_app.application.llm import LLMServiceProvider
from comprehendo_app.application.quality import QualityThresholds
from comprehendo_app.infrastructure.llm.errors import (
    InvalidSettingError,
    MissingApiKeyError,
    UnknownProviderError,
)

PROVIDER_ENV_VAR = "COMPREHENDO_LLM_PROVIDER"
GOOGLE_API_KEY_ENV_VAR = "GOOGLE_AI_API_KEY"
GOOGLE_MODEL_ENV_VAR = "GOOGLE_AI_GENERATION_MODEL"
TOGETHER_API_KEY_ENV_VAR = "TOGETHER_AI_API_KEY"
TOGETHER_MODEL_ENV_VAR = "TOGETHER_AI_MODEL"
MAX_ATTEMPTS_ENV_VAR = "COMPREHENDO_LLM_MAX_ATTEMPTS"
TIMEOUT_ENV_VAR = "COMPREHENDO_LLM_TIMEOUT_SECONDS"
MAX_OUTPUT_TOKENS_ENV_VAR = "COMPREHENDO_LLM_MAX_OUTPUT_TOKENS"
MIN_QUESTION_LENGTH_ENV_VAR = "COMPREHENDO_QUALITY_MIN_QUESTION_LENGTH"
MIN_EXPLANATION_LENGTH_ENV_VAR = "COMPREHENDO_QUALITY_MIN_EXPLANATION_LENGTH"

DEFAULT_PROVIDER = LLMServiceProvider.GOOGLE
DEFAULT_GOOGLE_MODEL = "gemini-2.5-flash"
DEFAULT_TOGETHER_MODEL = "Qwen/Qwen2.5-7B-Instruct-Turbo"
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_OUTPUT_TOKENS = 1024


@dataclass(frozen=True)
class SamplingParameters:
    """Generation parameters shared by both providers."""

    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    temperature: float = 0.7
    top_p: float = 0.9
    top_k: int = 40


@dataclass(frozen=True)
class ProviderTarget:
    """Resolved provider, model, and credential for one call."""

    provider: LLMServiceProvider
    model: str
    api_key: str


@dataclass(frozen=True)
class LLMSettings:
    """Snapshot of LLM configuration read from the environment."""

    provider: LLMServiceProvider = DEFAULT_PROVIDER
    models: Mapping[LLMServiceProvider, str] | None = None
    api_keys: Mapping[LLMServiceProvider, str] | None = None
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    sampling: SamplingParameters = SamplingParameters()
    quality_thresholds: QualityThresholds = QualityThresholds()

    def model_for(self, provider: LLMServiceProvider) -> str:
        """Return configured model or the documented default for provider."""
        configured = (self.models or {}).get(provider)
        if configured:
            return configured
        if provider is LLMServiceProvider.TOGETHER:
            return DEFAULT_TOGETHER_MODEL
        return DEFAULT_GOOGLE_MODEL

    def active_target(self) -> ProviderTarget:
        """Resolve selected provider; fails fast when its credential is missing."""
        api_key = (self.api_keys or {}).get(self.provider)
        if not api_key:
            raise MissingApiKeyError(f"Missing API key for provider {self.provider.value}.")
        return ProviderTarget(
            provider=self.provider,
            model=self.model_for(self.provider),
            api_key=api_key,
        )


def load_llm_settings(environ: Mapping[str, str] | None = None) -> LLMSettings:
    """Read LLM settings from environment; blank values count as unset."""
    env = os.environ if environ is None else environ
    return LLMSettings(
        provider=_resolve_provider(env),
        models={
            LLMServiceProvider.GOOGLE: _resolve_text(
                env,
                env_var=GOOGLE_MODEL_ENV_VAR,
                fallback=DEFAULT_GOOGLE_MODEL,
            ),
            LLMServiceProvider.TOGETHER: _resolve_text(
                env,
                env_var=TOGETHER_MODEL_ENV_VAR,
                fallback=DEFAULT_TOGETHER_MODEL,
            ),
        },
        api_keys={
            LLMServiceProvider.GOOGLE: _resolve_text(
                env,
                env_var=GOOGLE_API_KEY_ENV_VAR,
                fallback="",
            ),
            LLMServiceProvider.TOGETHER: _resolve_text(
                env,
                env_var=TOGETHER_API_KEY_ENV_VAR,
                fallback="",
            ),
        },
        max_attempts=_resolve_int(
            env,
            env_var=MAX_ATTEMPTS_ENV_VAR,
            fallback=DEFAULT_MAX_ATTEMPTS,
            minimum=1,
        ),
        timeout_seconds=_resolve_float(
            env,
            env_var=TIMEOUT_ENV_VAR,
            fallback=DEFAULT_TIMEOUT_SECONDS,
        ),
        sampling=SamplingParameters(
            max_output_tokens=_resolve_int(
                env,
                env_var=MAX_OUTPUT_TOKENS_ENV_VAR,
                fallback=DEFAULT_MAX_OUTPUT_TOKENS,
                minimum=1,
            ),
        ),
        quality_thresholds=QualityThresholds(
            min_question_length=_resolve_int(
                env,
                env_var=MIN_QUESTION_LENGTH_ENV_VAR,
                fallback=QualityThresholds.min_question_length,
                minimum=0,
            ),
            min_explanation_length=_resolve_int(
                env,
                env_var=MIN_EXPLANATION_LENGTH_ENV_VAR,
                fallback=QualityThresholds.min_explanation_length,
                minimum=0,
            ),
        ),
    )


def _resolve_provider(env: Mapping[str, str]) -> LLMServiceProvider:
    raw_value = _resolve_text(env, env_var=PROVIDER_ENV_VAR, fallback=DEFAULT_PROVIDER.value)
    try:
        return LLMServiceProvider(raw_value.lower())
    except ValueError:
        supported = ", ".join(provider.value for provider in LLMServiceProvider)
        raise UnknownProviderError(
            f"Unsupported {PROVIDER_ENV_VAR}={raw_value!r}; expected one of: {supported}."
        ) from None


def _resolve_text(env: Mapping[str, str], *, env_var: str, fallback: str) -> str:
    raw_value = env.get(env_var, "")
    resolved = raw_value.strip()
    return resolved if resolved else fallback


def _resolve_int(
    env: Mapping[str, str],
    *,
    env_var: str,
    fallback: int,
    minimum: int,
) -> int:
    raw_value = env.get(env_var, "").strip()
    if not raw_value:
        return fallback
    try:
        value = int(raw_value)
    except ValueError:
        raise InvalidSettingError(f"{env_var} must be an integer, got {raw_value!r}.") from None
    if value < minimum:
        raise InvalidSettingError(f"{env_var} must be >= {minimum}, got {value}.")
    return value


def _resolve_float(env: Mapping[str, str], *, env_var: str, fallback: float) -> float:
    raw_value = env.get(env_var, "").strip()
    if not raw_value:
        return fallback
    try:
        value = float(raw_value)
    except ValueError:
        raise InvalidSettingError(f"{env_var} must be a number, got {raw_value!r}.") from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidSettingError(f"{env_var} must be a finite number > 0, got {value}.")
    return value
