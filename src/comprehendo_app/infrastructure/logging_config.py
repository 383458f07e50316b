"""Logging bootstrap for the application."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV_VAR = "COMPREHENDO_LOG_LEVEL"


def configure_logging() -> None:
    """Configure root logger once for local and CI runs."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    level_name = os.environ.get(LOG_LEVEL_ENV_VAR, "").strip().upper() or "INFO"
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
