"""Tests for structural validation of model JSON."""

from __future__ import annotations

import copy

import pytest

from comprehendo_app.application.llm import SchemaError
from comprehendo_app.application.response_parsing import validate_schema
from comprehendo_app.domain.exercise import ExerciseContent, OptionKey
from tests.exercise_fixtures import VALID_PAYLOAD, valid_payload

REQUIRED_TEXT_FIELDS = ["paragraph", "topic", "question", "relevantText"]
NESTED_FIELDS = [
    ("options", key.value) for key in OptionKey
] + [("allExplanations", key.value) for key in OptionKey]


def test_validate_schema_accepts_valid_payload() -> None:
    exercise = validate_schema(valid_payload())

    assert isinstance(exercise, ExerciseContent)
    assert exercise.correct_answer is OptionKey.B
    assert exercise.options.get(OptionKey.B) == "She takes the bus to the office."
    assert exercise.relevant_text == VALID_PAYLOAD["relevantText"]


def test_validate_schema_round_trips_wire_format() -> None:
    assert validate_schema(valid_payload()).to_wire() == VALID_PAYLOAD


def test_validate_schema_ignores_unknown_top_level_keys() -> None:
    exercise = validate_schema(valid_payload(difficulty="easy"))

    assert "difficulty" not in exercise.to_wire()


@pytest.mark.parametrize("field", REQUIRED_TEXT_FIELDS + ["options", "allExplanations"])
def test_validate_schema_rejects_missing_field(field: str) -> None:
    payload = valid_payload()
    del payload[field]

    with pytest.raises(SchemaError) as exc_info:
        validate_schema(payload)

    assert [violation.location for violation in exc_info.value.violations] == [field]


@pytest.mark.parametrize("field", REQUIRED_TEXT_FIELDS)
@pytest.mark.parametrize("blank", ["", "   "])
def test_validate_schema_rejects_blank_text(field: str, blank: str) -> None:
    with pytest.raises(SchemaError) as exc_info:
        validate_schema(valid_payload(**{field: blank}))

    assert exc_info.value.violations[0].location == field


@pytest.mark.parametrize(("parent", "key"), NESTED_FIELDS)
def test_validate_schema_rejects_missing_nested_key(parent: str, key: str) -> None:
    payload = copy.deepcopy(VALID_PAYLOAD)
    nested = payload[parent]
    assert isinstance(nested, dict)
    del nested[key]

    with pytest.raises(SchemaError) as exc_info:
        validate_schema(payload)

    assert exc_info.value.violations[0].location == f"{parent}.{key}"


@pytest.mark.parametrize(("parent", "key"), NESTED_FIELDS)
def test_validate_schema_rejects_empty_nested_value(parent: str, key: str) -> None:
    payload = copy.deepcopy(VALID_PAYLOAD)
    nested = payload[parent]
    assert isinstance(nested, dict)
    nested[key] = ""

    with pytest.raises(SchemaError):
        validate_schema(payload)


def test_validate_schema_rejects_extra_option_key() -> None:
    payload = copy.deepcopy(VALID_PAYLOAD)
    options = payload["options"]
    assert isinstance(options, dict)
    options["E"] = "A fifth option."

    with pytest.raises(SchemaError) as exc_info:
        validate_schema(payload)

    assert exc_info.value.violations[0].location == "options.E"


@pytest.mark.parametrize("answer", ["E", "a", "", 1, None])
def test_validate_schema_rejects_correct_answer_outside_keys(answer: object) -> None:
    with pytest.raises(SchemaError) as exc_info:
        validate_schema(valid_payload(correctAnswer=answer))

    assert exc_info.value.violations[0].location == "correctAnswer"


def test_validate_schema_rejects_non_string_text() -> None:
    with pytest.raises(SchemaError):
        validate_schema(valid_payload(question=42))


@pytest.mark.parametrize("value", [[VALID_PAYLOAD], "text", 7, None])
def test_validate_schema_rejects_non_object_root(value: object) -> None:
    with pytest.raises(SchemaError) as exc_info:
        validate_schema(value)

    assert len(exc_info.value.violations) == 1
    assert exc_info.value.violations[0].location == "<root>"


def test_validate_schema_collects_every_violation() -> None:
    payload = valid_payload(question="", correctAnswer="Z")
    del payload["relevantText"]

    with pytest.raises(SchemaError) as exc_info:
        validate_schema(payload)

    locations = {violation.location for violation in exc_info.value.violations}
    assert locations == {"question", "correctAnswer", "relevantText"}


def test_validate_schema_does_not_check_grounding() -> None:
    exercise = validate_schema(valid_payload(relevantText="Not in the passage at all."))

    assert exercise.relevant_text == "Not in the passage at all."


def test_validate_schema_rejects_snake_case_wire_keys() -> None:
    payload = valid_payload()
    payload["correct_answer"] = payload.pop("correctAnswer")
    payload["all_explanations"] = payload.pop("allExplanations")
    payload["relevant_text"] = payload.pop("relevantText")

    with pytest.raises(SchemaError) as exc_info:
        validate_schema(payload)

    locations = {violation.location for violation in exc_info.value.violations}
    assert locations == {"correctAnswer", "allExplanations", "relevantText"}
