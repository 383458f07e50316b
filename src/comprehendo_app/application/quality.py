"""Content-quality heuristics applied after structural validation."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass

from comprehendo_app.domain.exercise import (
    CEFRLevel,
    ExerciseContent,
    OptionKey,
    QualityMetrics,
    ValidationVerdict,
)

LOGGER = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)
_MIN_CONTENT_TOKEN_LENGTH = 3

PASSED_REASON = "Question quality passed validation."


@dataclass(frozen=True)
class QualityThresholds:
    """Numeric constants of the quality gate."""

    min_question_length: int = 10
    min_explanation_length: int = 20
    min_option_length: int = 3
    max_explanation_similarity: float = 0.9


DEFAULT_QUALITY_THRESHOLDS = QualityThresholds()


def compute_quality_metrics(
    exercise: ExerciseContent,
    thresholds: QualityThresholds = DEFAULT_QUALITY_THRESHOLDS,
) -> QualityMetrics:
    """Measure one exercise; does not decide validity."""
    options = exercise.options.as_dict()
    explanations = exercise.all_explanations.as_dict()
    option_lengths = {key: len(text) for key, text in options.items()}
    explanation_lengths = {key: len(text) for key, text in explanations.items()}
    correct_key = exercise.correct_answer.value

    return QualityMetrics(
        question_length=len(exercise.question),
        option_lengths=option_lengths,
        explanation_lengths=explanation_lengths,
        relevant_text_length=len(exercise.relevant_text),
        paragraph_length=len(exercise.paragraph),
        all_explanations_present=(
            set(explanations) == {key.value for key in OptionKey}
            and all(text.strip() for text in explanations.values())
        ),
        relevant_text_in_paragraph=exercise.relevant_text in exercise.paragraph,
        question_long_enough=len(exercise.question) >= thresholds.min_question_length,
        explanations_long_enough=all(
            length >= thresholds.min_explanation_length
            for length in explanation_lengths.values()
        ),
        options_long_enough=all(
            length >= thresholds.min_option_length for length in option_lengths.values()
        ),
        correct_answer_in_options=correct_key in options,
        correct_explanation_distinct=_is_correct_explanation_distinct(
            explanations,
            correct_key=correct_key,
            max_similarity=thresholds.max_explanation_similarity,
        ),
        question_option_related=_is_question_option_related(
            question=exercise.question,
            correct_option=options.get(correct_key, ""),
            correct_explanation=explanations.get(correct_key, ""),
        ),
    )


def validate_quality(
    exercise: ExerciseContent,
    level: CEFRLevel,
    thresholds: QualityThresholds = DEFAULT_QUALITY_THRESHOLDS,
) -> ValidationVerdict:
    """Run hard quality gates in order; soft signals are only logged."""
    metrics = compute_quality_metrics(exercise, thresholds)
    _warn_on_soft_signals(metrics, level)

    if not metrics.all_explanations_present:
        return _reject("Not all explanations are present or are empty.", metrics)
    if not metrics.relevant_text_in_paragraph:
        return _reject("Relevant text is not found in the paragraph.", metrics)
    if not metrics.question_long_enough:
        return _reject(f"Question is too short ({metrics.question_length} chars).", metrics)
    if not metrics.explanations_long_enough:
        lengths = ", ".join(
            f"{key}={length}" for key, length in sorted(metrics.explanation_lengths.items())
        )
        return _reject(f"Explanations are too short ({lengths} chars).", metrics)

    return ValidationVerdict(is_valid=True, reason=PASSED_REASON, metrics=metrics)


def log_quality_metrics(
    metrics: QualityMetrics,
    level: CEFRLevel,
    language: str,
    *,
    correlation_id: str = "-",
) -> None:
    """Write one structured line with all metrics of an attempt."""
    LOGGER.info(
        (
            "event=exercise_quality_metrics correlation_id=%s level=%s language=%s "
            "question_length=%s option_lengths=%s explanation_lengths=%s "
            "relevant_text_length=%s paragraph_length=%s all_explanations_present=%s "
            "relevant_text_in_paragraph=%s correct_answer_in_options=%s "
            "correct_explanation_distinct=%s question_option_related=%s"
        ),
        correlation_id,
        level.value,
        language,
        metrics.question_length,
        _format_lengths(metrics.option_lengths),
        _format_lengths(metrics.explanation_lengths),
        metrics.relevant_text_length,
        metrics.paragraph_length,
        metrics.all_explanations_present,
        metrics.relevant_text_in_paragraph,
        metrics.correct_answer_in_options,
        metrics.correct_explanation_distinct,
        metrics.question_option_related,
    )


def describe_validation_failure(
    exercise: ExerciseContent,
    reason: str,
    *,
    correlation_id: str = "-",
) -> None:
    """Log the fields that explain a quality failure at debug level."""
    LOGGER.debug(
        (
            "event=exercise_quality_failure_detail correlation_id=%s reason=%r "
            "question=%r correct_answer=%s relevant_text=%r paragraph=%r"
        ),
        correlation_id,
        reason,
        exercise.question,
        exercise.correct_answer.value,
        exercise.relevant_text,
        exercise.paragraph,
    )


def _reject(reason: str, metrics: QualityMetrics) -> ValidationVerdict:
    return ValidationVerdict(is_valid=False, reason=reason, metrics=metrics)


def _warn_on_soft_signals(metrics: QualityMetrics, level: CEFRLevel) -> None:
    soft_flags = {
        "correct_answer_in_options": metrics.correct_answer_in_options,
        "correct_explanation_distinct": metrics.correct_explanation_distinct,
        "question_option_related": metrics.question_option_related,
        "options_long_enough": metrics.options_long_enough,
    }
    for signal, passed in soft_flags.items():
        if not passed:
            LOGGER.warning(
                "event=exercise_quality_soft_signal signal=%s level=%s",
                signal,
                level.value,
            )


def _is_correct_explanation_distinct(
    explanations: dict[str, str],
    *,
    correct_key: str,
    max_similarity: float,
) -> bool:
    correct_text = explanations.get(correct_key)
    if correct_text is None:
        return False

    correct_normalized = correct_text.casefold().strip()
    correct_tokens = _content_tokens(correct_text)
    for key, text in explanations.items():
        if key == correct_key:
            continue
        if text.casefold().strip() == correct_normalized:
            return False
        if _jaccard(correct_tokens, _content_tokens(text)) >= max_similarity:
            return False
    return True


def _is_question_option_related(
    *,
    question: str,
    correct_option: str,
    correct_explanation: str,
) -> bool:
    option_tokens = _content_tokens(correct_option)
    context_tokens = _content_tokens(question) | _content_tokens(correct_explanation)
    # Scripts without word separators yield no comparable tokens.
    if not option_tokens or not context_tokens:
        return True
    return not option_tokens.isdisjoint(context_tokens)


def _content_tokens(text: str) -> set[str]:
    return {
        token
        for token in _TOKEN_PATTERN.findall(text.casefold())
        if len(token) >= _MIN_CONTENT_TOKEN_LENGTH
    }


def _jaccard(left: set[str], right: set[str]) -> float:
    if not left or not right:
        return 0.0
    return len(left & right) / len(left | right)


def _format_lengths(lengths: Mapping[str, int]) -> str:
    return ",".join(f"{key}:{value}" for key, value in sorted(lengths.items()))
