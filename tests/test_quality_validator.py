from __future__ import annotations

import copy
import logging

import pytest

from comprehendo_app.application.quality import (
    PASSED_REASON,
    QualityThresholds,
    compute_quality_metrics,
    describe_validation_failure,
    log_quality_metrics,
    validate_quality,
)
from comprehendo_app.domain.exercise import AnswerOptions, CEFRLevel, ExerciseContent
from tests.exercise_fixtures import VALID_PAYLOAD, valid_payload

QUALITY_LOGGER = "comprehendo_app.application.quality"


def _exercise(**overrides: object) -> ExerciseContent:
    return ExerciseContent.model_validate(valid_payload(**overrides))


def _with_explanations(**explanations: str) -> ExerciseContent:
    merged = copy.deepcopy(VALID_PAYLOAD["allExplanations"])
    assert isinstance(merged, dict)
    merged.update(explanations)
    return _exercise(allExplanations=merged)


def _with_options(**options: str) -> ExerciseContent:
    merged = copy.deepcopy(VALID_PAYLOAD["options"])
    assert isinstance(merged, dict)
    merged.update(options)
    return _exercise(options=merged)


def _soft_signals(caplog: pytest.LogCaptureFixture) -> list[str]:
    return [
        record.getMessage()
        for record in caplog.records
        if "event=exercise_quality_soft_signal" in record.getMessage()
    ]


def test_valid_exercise_passes_quality_gate(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger=QUALITY_LOGGER):
        verdict = validate_quality(_exercise(), CEFRLevel.A2)

    assert verdict.is_valid is True
    assert verdict.reason == PASSED_REASON
    assert _soft_signals(caplog) == []


def test_metrics_measure_exercise_fields() -> None:
    exercise = _exercise()

    metrics = compute_quality_metrics(exercise)

    assert metrics.question_length == len(exercise.question)
    assert metrics.paragraph_length == len(exercise.paragraph)
    assert metrics.relevant_text_length == len(exercise.relevant_text)
    assert metrics.option_lengths["B"] == len("She takes the bus to the office.")
    assert set(metrics.explanation_lengths) == {"A", "B", "C", "D"}
    assert metrics.all_explanations_present is True
    assert metrics.relevant_text_in_paragraph is True
    assert metrics.correct_answer_in_options is True
    assert metrics.correct_explanation_distinct is True
    assert metrics.question_option_related is True


def test_blank_explanation_is_rejected_first() -> None:
    base = _exercise()
    exercise = base.model_copy(
        update={
            "all_explanations": AnswerOptions.model_construct(A="  ", B="x", C="y", D="z"),
            "relevant_text": "Nowhere in the passage.",
        }
    )

    verdict = validate_quality(exercise, CEFRLevel.A2)

    assert verdict.is_valid is False
    assert verdict.reason == "Not all explanations are present or are empty."


def test_relevant_text_must_be_exact_substring() -> None:
    verdict = validate_quality(
        _exercise(relevantText="ensuite, elle prend le bus pour aller au bureau."),
        CEFRLevel.B1,
    )

    assert verdict.is_valid is False
    assert verdict.reason == "Relevant text is not found in the paragraph."
    assert verdict.metrics.relevant_text_in_paragraph is False


def test_relevant_text_failure_is_reported_before_short_question() -> None:
    verdict = validate_quality(
        _exercise(question="Why?", relevantText="Claire takes a taxi."),
        CEFRLevel.A1,
    )

    assert verdict.reason == "Relevant text is not found in the paragraph."


def test_short_question_is_rejected_with_length() -> None:
    verdict = validate_quality(_exercise(question="Why?"), CEFRLevel.A1)

    assert verdict.is_valid is False
    assert verdict.reason == "Question is too short (4 chars)."


def test_question_at_threshold_is_accepted() -> None:
    verdict = validate_quality(_exercise(question="When? Now."), CEFRLevel.A1)

    assert len("When? Now.") == 10
    assert verdict.metrics.question_long_enough is True


def test_short_explanations_are_rejected_with_all_lengths() -> None:
    exercise = _with_explanations(A="Too short.", C="Nope.")

    verdict = validate_quality(exercise, CEFRLevel.B2)

    lengths = {key: len(text) for key, text in exercise.all_explanations.as_dict().items()}
    assert verdict.is_valid is False
    assert verdict.reason == (
        "Explanations are too short "
        f"(A={lengths['A']}, B={lengths['B']}, C={lengths['C']}, D={lengths['D']} chars)."
    )


def test_thresholds_are_configurable() -> None:
    exercise = _exercise()

    strict = validate_quality(
        exercise,
        CEFRLevel.C1,
        QualityThresholds(min_question_length=200),
    )
    lenient = validate_quality(
        _exercise(question="Why?"),
        CEFRLevel.C1,
        QualityThresholds(min_question_length=1),
    )

    assert strict.is_valid is False
    assert strict.reason.startswith("Question is too short")
    assert lenient.is_valid is True


def test_duplicated_correct_explanation_is_soft_signal(
    caplog: pytest.LogCaptureFixture,
) -> None:
    correct = VALID_PAYLOAD["allExplanations"]["B"]  # type: ignore[index]
    exercise = _with_explanations(D=str(correct).upper())

    with caplog.at_level(logging.WARNING, logger=QUALITY_LOGGER):
        verdict = validate_quality(exercise, CEFRLevel.B1)

    assert verdict.is_valid is True
    assert verdict.metrics.correct_explanation_distinct is False
    assert _soft_signals(caplog) == [
        "event=exercise_quality_soft_signal signal=correct_explanation_distinct level=B1"
    ]


def test_unrelated_correct_option_is_soft_signal(caplog: pytest.LogCaptureFixture) -> None:
    exercise = _with_options(B="Zebra quartz xylophone.")

    with caplog.at_level(logging.WARNING, logger=QUALITY_LOGGER):
        verdict = validate_quality(exercise, CEFRLevel.A2)

    assert verdict.is_valid is True
    assert verdict.metrics.question_option_related is False
    assert any("signal=question_option_related" in message for message in _soft_signals(caplog))


def test_short_option_is_soft_signal_only(caplog: pytest.LogCaptureFixture) -> None:
    exercise = _with_options(D="No")

    with caplog.at_level(logging.WARNING, logger=QUALITY_LOGGER):
        verdict = validate_quality(exercise, CEFRLevel.A1)

    assert verdict.is_valid is True
    assert verdict.metrics.options_long_enough is False
    assert any("signal=options_long_enough" in message for message in _soft_signals(caplog))


def test_unsegmented_script_does_not_trip_relatedness() -> None:
    exercise = _with_options(B="バス")

    metrics = compute_quality_metrics(exercise)

    assert metrics.question_option_related is True


def test_log_quality_metrics_writes_single_structured_line(
    caplog: pytest.LogCaptureFixture,
) -> None:
    metrics = compute_quality_metrics(_exercise())

    with caplog.at_level(logging.INFO, logger=QUALITY_LOGGER):
        log_quality_metrics(metrics, CEFRLevel.A2, "fr", correlation_id="cid-1")

    assert len(caplog.records) == 1
    message = caplog.records[0].getMessage()
    assert message.startswith("event=exercise_quality_metrics correlation_id=cid-1")
    assert "level=A2 language=fr" in message
    assert f"question_length={metrics.question_length}" in message
    assert "relevant_text_in_paragraph=True" in message


def test_describe_validation_failure_logs_at_debug_only(
    caplog: pytest.LogCaptureFixture,
) -> None:
    exercise = _exercise()

    with caplog.at_level(logging.INFO, logger=QUALITY_LOGGER):
        describe_validation_failure(exercise, "reason", correlation_id="cid-2")
    assert caplog.records == []

    with caplog.at_level(logging.DEBUG, logger=QUALITY_LOGGER):
        describe_validation_failure(exercise, "reason", correlation_id="cid-2")
    assert len(caplog.records) == 1
    assert "event=exercise_quality_failure_detail correlation_id=cid-2" in (
        caplog.records[0].getMessage()
    )
