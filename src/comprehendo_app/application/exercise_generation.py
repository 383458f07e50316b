"""Exercise generation use-case with bounded regenerate loop and quality gate."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar, Union
from uuid import uuid4

from comprehendo_app.application.llm import (
    ExerciseGenerationError,
    GenerationError,
    GenerationStage,
    LLMConfigurationError,
    QualityError,
    SafetyBlockedError,
    SchemaError,
    TextGenerationPort,
)
from comprehendo_app.application.quality import (
    DEFAULT_QUALITY_THRESHOLDS,
    QualityThresholds,
    describe_validation_failure,
    log_quality_metrics,
    validate_quality,
)
from comprehendo_app.application.response_parsing import extract_json, validate_schema
from comprehendo_app.domain.exercise import ExerciseContent, ExerciseGenerationRequest

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3

TValue = TypeVar("TValue")
TInput = TypeVar("TInput")

ExercisePromptBuilder = Callable[[ExerciseGenerationRequest], str]


@dataclass(frozen=True)
class StageSuccess(Generic[TValue]):
    """Value produced by a stage that completed."""

    value: TValue


@dataclass(frozen=True)
class StageFailure:
    """Stage that failed together with its cause."""

    stage: GenerationStage
    cause: ExerciseGenerationError


StageResult = Union[StageSuccess[TValue], StageFailure]


class ExerciseGenerator:
    """Generate one exercise, retrying the whole cycle until it passes validation."""

    def __init__(
        self,
        gateway: TextGenerationPort,
        *,
        build_prompt: ExercisePromptBuilder,
        quality_thresholds: QualityThresholds = DEFAULT_QUALITY_THRESHOLDS,
        default_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        prompt_id: str = "-",
        prompt_version: str = "-",
    ) -> None:
        if default_max_attempts < 1:
            raise ValueError("default_max_attempts must be >= 1")

        self._gateway = gateway
        self._build_prompt = build_prompt
        self._quality_thresholds = quality_thresholds
        self._default_max_attempts = default_max_attempts
        self._prompt_id = prompt_id
        self._prompt_version = prompt_version

    async def generate_and_validate(
        self,
        request: ExerciseGenerationRequest,
        max_attempts: int | None = None,
        *,
        correlation_id: str | None = None,
    ) -> ExerciseContent:
        """Return the first exercise that passes schema and quality checks."""
        resolved_attempts = self._default_max_attempts if max_attempts is None else max_attempts
        if resolved_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        resolved_correlation_id = correlation_id or str(uuid4())
        LOGGER.info(
            (
                "event=exercise_generation_started correlation_id=%s level=%s "
                "passage_language=%s question_language=%s max_attempts=%s "
                "prompt_id=%s prompt_version=%s"
            ),
            resolved_correlation_id,
            request.level.value,
            request.passage_language,
            request.question_language,
            resolved_attempts,
            self._prompt_id,
            self._prompt_version,
        )

        last_failure: StageFailure | None = None
        attempt_number = 0
        for attempt_index in range(resolved_attempts):
            attempt_number = attempt_index + 1
            result = await self._run_attempt(
                request,
                correlation_id=resolved_correlation_id,
            )
            if isinstance(result, StageSuccess):
                LOGGER.info(
                    (
                        "event=exercise_generation_completed correlation_id=%s "
                        "attempt=%s/%s"
                    ),
                    resolved_correlation_id,
                    attempt_number,
                    resolved_attempts,
                )
                return result.value

            last_failure = result
            self._log_failure(
                result,
                correlation_id=resolved_correlation_id,
                attempt_number=attempt_number,
                max_attempts=resolved_attempts,
            )
            if isinstance(result.cause, LLMConfigurationError):
                break

        if last_failure is None:
            raise AssertionError("Unreachable exercise generation loop termination")

        LOGGER.error(
            (
                "event=exercise_generation_failed correlation_id=%s attempts=%s "
                "stage=%s error_type=%s"
            ),
            resolved_correlation_id,
            attempt_number,
            last_failure.stage.value,
            last_failure.cause.__class__.__name__,
        )
        raise GenerationError(
            stage=last_failure.stage,
            cause=last_failure.cause,
            attempts=attempt_number,
        ) from last_failure.cause

    async def _run_attempt(
        self,
        request: ExerciseGenerationRequest,
        *,
        correlation_id: str,
    ) -> StageResult[ExerciseContent]:
        prompt = self._build_prompt(request)

        called = await self._call_provider(prompt)
        if isinstance(called, StageFailure):
            return called

        extracted = _run_stage(GenerationStage.EXTRACTING, extract_json, called.value)
        if isinstance(extracted, StageFailure):
            LOGGER.info(
                "event=exercise_generation_unparseable_output correlation_id=%s "
                "output_length=%s output_hash=%s",
                correlation_id,
                len(called.value),
                hashlib.sha256(called.value.encode("utf-8")).hexdigest()[:16],
            )
            return extracted

        validated = _run_stage(GenerationStage.SCHEMA_CHECKING, validate_schema, extracted.value)
        if isinstance(validated, StageFailure):
            return validated

        return self._check_quality(validated.value, request, correlation_id=correlation_id)

    async def _call_provider(self, prompt: str) -> StageResult[str]:
        try:
            return StageSuccess(await self._gateway.call(prompt))
        except ExerciseGenerationError as exc:
            return StageFailure(stage=GenerationStage.CALLING, cause=exc)

    def _check_quality(
        self,
        exercise: ExerciseContent,
        request: ExerciseGenerationRequest,
        *,
        correlation_id: str,
    ) -> StageResult[ExerciseContent]:
        verdict = validate_quality(exercise, request.level, self._quality_thresholds)
        log_quality_metrics(
            verdict.metrics,
            request.level,
            request.passage_language,
            correlation_id=correlation_id,
        )
        if verdict.is_valid:
            return StageSuccess(exercise)

        describe_validation_failure(exercise, verdict.reason, correlation_id=correlation_id)
        return StageFailure(stage=GenerationStage.QUALITY_CHECKING, cause=QualityError(verdict))

    @staticmethod
    def _log_failure(
        failure: StageFailure,
        *,
        correlation_id: str,
        attempt_number: int,
        max_attempts: int,
    ) -> None:
        cause = failure.cause
        if isinstance(cause, SafetyBlockedError):
            event = "exercise_generation_safety_blocked"
        elif isinstance(cause, LLMConfigurationError):
            event = "exercise_generation_misconfigured"
        else:
            event = "exercise_generation_attempt_failed"

        detail = str(cause)
        if isinstance(cause, SchemaError):
            detail = "; ".join(str(violation) for violation in cause.violations)

        LOGGER.warning(
            (
                "event=%s correlation_id=%s attempt=%s/%s stage=%s "
                "error_type=%s detail=%s"
            ),
            event,
            correlation_id,
            attempt_number,
            max_attempts,
            failure.stage.value,
            cause.__class__.__name__,
            detail,
        )


def _run_stage(
    stage: GenerationStage,
    operation: Callable[[TInput], TValue],
    value: TInput,
) -> StageResult[TValue]:
    try:
        return StageSuccess(operation(value))
    except ExerciseGenerationError as exc:
        return StageFailure(stage=stage, cause=exc)
