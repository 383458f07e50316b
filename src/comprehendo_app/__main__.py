"""Command-line entrypoint: generate one exercise and print its JSON."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from uuid import uuid4

from comprehendo_app.application.llm import ExerciseGenerationError, GenerationError
from comprehendo_app.domain.exercise import (
    CEFRLevel,
    ExerciseContent,
    ExerciseGenerationRequest,
)
from comprehendo_app.infrastructure.llm import ProviderGateway, create_default_exercise_generator
from comprehendo_app.infrastructure.logging_config import configure_logging

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="comprehendo-generate",
        description="Generate one validated reading-comprehension exercise.",
    )
    parser.add_argument("--topic", required=True)
    parser.add_argument("--passage-language", required=True, help="e.g. fr")
    parser.add_argument("--question-language", required=True, help="e.g. en")
    parser.add_argument(
        "--level",
        required=True,
        type=CEFRLevel,
        choices=list(CEFRLevel),
    )
    parser.add_argument("--grammar-guidance", default="")
    parser.add_argument("--vocabulary-guidance", default="")
    parser.add_argument("--max-attempts", type=int, default=None)
    return parser


async def _generate(
    request: ExerciseGenerationRequest,
    *,
    max_attempts: int | None,
    correlation_id: str,
) -> ExerciseContent:
    gateway = ProviderGateway()
    generator = create_default_exercise_generator(gateway=gateway)
    try:
        return await generator.generate_and_validate(
            request,
            max_attempts,
            correlation_id=correlation_id,
        )
    finally:
        await gateway.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    """Run generation once and print the exercise as JSON."""
    configure_logging()
    args = build_parser().parse_args(argv)
    correlation_id = str(uuid4())

    try:
        request = ExerciseGenerationRequest.from_codes(
            topic=args.topic,
            passage_language=args.passage_language,
            question_language=args.question_language,
            level=args.level,
            grammar_guidance=args.grammar_guidance,
            vocabulary_guidance=args.vocabulary_guidance,
        )
    except ValueError as exc:
        print(f"Invalid request: {exc}", file=sys.stderr)
        return 2

    try:
        exercise = asyncio.run(
            _generate(request, max_attempts=args.max_attempts, correlation_id=correlation_id)
        )
    except GenerationError as exc:
        LOGGER.error(
            "event=cli_generation_failed correlation_id=%s stage=%s error_type=%s",
            correlation_id,
            exc.stage.value,
            exc.cause.__class__.__name__,
        )
        print(f"{exc.user_message} correlation_id={correlation_id}", file=sys.stderr)
        return 1
    except ExerciseGenerationError:
        LOGGER.exception("event=cli_generation_failed correlation_id=%s", correlation_id)
        print(f"{GenerationError.user_message} correlation_id={correlation_id}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Invalid request: {exc}", file=sys.stderr)
        return 2

    print(json.dumps(exercise.to_wire(), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
