"""Process-wide configuration for the command-line front end."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Mapping, TextIO

from loguru import logger

LOG_LEVEL_ENV = "SEMVER_CHECKS_LOG"
_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass(slots=True)
class GlobalConfig:
    """Settings resolved once at startup from flags and the environment."""

    printing_to_terminal: bool
    log_level: str = "WARNING"

    @classmethod
    def from_environment(
        cls,
        *,
        verbose: bool = False,
        env: Mapping[str, str] | None = None,
        stream: TextIO | None = None,
    ) -> "GlobalConfig":
        environ = os.environ if env is None else env
        output = stream if stream is not None else sys.stdout
        printing_to_terminal = bool(getattr(output, "isatty", lambda: False)())

        log_level = "DEBUG" if verbose else "WARNING"
        requested = environ.get(LOG_LEVEL_ENV, "").strip().upper()
        if requested in _LOG_LEVELS:
            log_level = requested

        return cls(printing_to_terminal=printing_to_terminal, log_level=log_level)


def configure_logging(config: GlobalConfig, sink: TextIO | None = None) -> None:
    """Route log records to stderr at the configured level."""

    logger.remove()
    logger.add(
        sink if sink is not None else sys.stderr,
        level=config.log_level,
        colorize=config.printing_to_terminal,
        format="<level>{level: >8}</level> {message}",
    )


__all__ = ["GlobalConfig", "LOG_LEVEL_ENV", "configure_logging"]
