"""Recover JSON from raw model text and check it against the exercise schema."""

from __future__ import annotations

import json
import re

from pydantic import ValidationError

from comprehendo_app.application.llm import FormatError, SchemaError, SchemaViolation
from comprehendo_app.domain.exercise import ExerciseContent

_FENCED_BLOCK_PATTERN = re.compile(r"```([A-Za-z0-9_+-]*)(.*?)```", re.DOTALL)
_JSON_FENCE_TAGS = frozenset({"", "json"})
_MAX_FRAGMENT_LENGTH = 500


def extract_json(raw: str) -> object:
    """Parse JSON from model output, tolerating code fences and surrounding prose."""
    candidate = _select_json_candidate(raw)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise FormatError(
            f"Failed to parse JSON from model response: {exc.msg} "
            f"(line {exc.lineno}, column {exc.colno}).",
            fragment=_truncate(candidate),
        ) from exc
    except RecursionError as exc:
        raise FormatError(
            "Failed to parse JSON from model response: nesting is too deep.",
            fragment=_truncate(candidate),
        ) from exc


def validate_schema(value: object) -> ExerciseContent:
    """Validate parsed JSON as an exercise or raise SchemaError with all violations."""
    if not isinstance(value, dict):
        raise SchemaError(
            "Model response failed structure validation.",
            violations=(
                SchemaViolation(
                    location="<root>",
                    message=f"expected a JSON object, got {type(value).__name__}",
                    error_type="object_type",
                ),
            ),
        )

    try:
        return ExerciseContent.model_validate(value)
    except ValidationError as exc:
        violations = tuple(
            SchemaViolation(
                location=".".join(str(part) for part in error["loc"]) or "<root>",
                message=error["msg"],
                error_type=error["type"],
            )
            for error in exc.errors()
        )
        raise SchemaError(
            "Model response failed structure validation.",
            violations=violations,
        ) from exc


def _select_json_candidate(raw: str) -> str:
    for match in _FENCED_BLOCK_PATTERN.finditer(raw):
        if match.group(1).lower() in _JSON_FENCE_TAGS:
            return match.group(2).strip()

    stripped = raw.strip()
    if not stripped:
        raise FormatError("Model response is empty.", fragment="")

    if (stripped.startswith("{") and stripped.endswith("}")) or (
        stripped.startswith("[") and stripped.endswith("]")
    ):
        return stripped

    raise FormatError(
        "Model response received, but no JSON content block was found.",
        fragment=_truncate(stripped),
    )


def _truncate(value: str) -> str:
    if len(value) <= _MAX_FRAGMENT_LENGTH:
        return value
    return f"{value[:_MAX_FRAGMENT_LENGTH]}...[truncated]"
