"""Shared pytest fixtures."""

from __future__ import annotations

import os

import pytest

_CONFIG_ENV_PREFIXES = ("COMPREHENDO_", "GOOGLE_AI_", "TOGETHER_AI_")


@pytest.fixture(autouse=True)
def _isolate_llm_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop LLM-related variables inherited from the developer shell."""
    for name in list(os.environ):
        if name.startswith(_CONFIG_ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)
