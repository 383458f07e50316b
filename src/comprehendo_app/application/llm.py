"""Application-level contracts and error taxonomy for LLM exercise generation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from comprehendo_app.domain.exercise import ValidationVerdict


class LLMServiceProvider(StrEnum):
    """Supported LLM providers."""

    GOOGLE = "google"
    TOGETHER = "together"


class GenerationStage(StrEnum):
    """Stages of one generation attempt."""

    PROMPTING = "prompting"
    CALLING = "calling"
    EXTRACTING = "extracting"
    SCHEMA_CHECKING = "schema_checking"
    QUALITY_CHECKING = "quality_checking"


@dataclass(frozen=True)
class ProviderCallRequest:
    """Provider-agnostic DTO for concrete provider clients."""

    model: str
    api_key: str
    prompt: str
    max_output_tokens: int
    temperature: float
    top_p: float
    top_k: int
    timeout_seconds: float
    candidate_count: int = 1
    response_format: str = "json"


@dataclass(frozen=True)
class ProviderCallResponse:
    """Provider-agnostic DTO for normalized provider responses."""

    output_text: str
    input_tokens: int | None
    output_tokens: int | None


class LLMProvider(Protocol):
    """Provider protocol implemented by infrastructure HTTP clients."""

    @property
    def provider(self) -> LLMServiceProvider:
        """Return provider identity."""
        ...

    async def generate(self, request: ProviderCallRequest) -> ProviderCallResponse:
        """Call provider and return provider-agnostic response DTO."""
        ...

    async def aclose(self) -> None:
        """Release owned network resources."""
        ...


class TextGenerationPort(Protocol):
    """Capability used by the orchestrator: prompt in, raw model text out."""

    async def call(self, prompt: str) -> str:
        """Return free-form provider text for prompt."""
        ...


class ExerciseGenerationError(RuntimeError):
    """Base error for every failure inside the generation pipeline."""


class LLMConfigurationError(ExerciseGenerationError):
    """Raised when provider configuration is unusable; never retried."""


class ProviderCallError(ExerciseGenerationError):
    """Normalized provider failure, whichever backend was used."""

    def __init__(
        self,
        message: str,
        *,
        provider: LLMServiceProvider | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider


class SafetyBlockedError(ProviderCallError):
    """Provider refused to generate because of its content-safety policy."""


class FormatError(ExerciseGenerationError):
    """Raised when no JSON payload can be recovered from model text."""

    def __init__(self, message: str, *, fragment: str = "") -> None:
        super().__init__(message)
        self.fragment = fragment


@dataclass(frozen=True)
class SchemaViolation:
    """One structural problem found in model JSON."""

    location: str
    message: str
    error_type: str

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"


class SchemaError(ExerciseGenerationError):
    """Raised when JSON is present but structurally wrong."""

    def __init__(self, message: str, *, violations: tuple[SchemaViolation, ...]) -> None:
        super().__init__(message)
        self.violations = violations


class QualityError(ExerciseGenerationError):
    """Raised when a structurally valid exercise fails the quality gate."""

    def __init__(self, verdict: ValidationVerdict) -> None:
        super().__init__(f"Quality validation failed: {verdict.reason}")
        self.verdict = verdict


class GenerationError(ExerciseGenerationError):
    """Terminal failure after the attempt budget is spent."""

    user_message = "Couldn't generate an exercise right now. Please try again."

    def __init__(
        self,
        *,
        stage: GenerationStage,
        cause: ExerciseGenerationError,
        attempts: int,
    ) -> None:
        super().__init__(
            f"Exercise generation failed after {attempts} attempt(s) "
            f"at stage {stage.value}: {cause}"
        )
        self.stage = stage
        self.cause = cause
        self.attempts = attempts
