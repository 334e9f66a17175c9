"""Command-line interface package for the semver checks tooling."""

from .app import (
    OUTPUT_FORMATS,
    CheckResult,
    build_parser,
    load_catalog,
    load_snapshots,
    main,
    run,
    run_check_release,
)

__all__ = [
    "OUTPUT_FORMATS",
    "CheckResult",
    "build_parser",
    "load_catalog",
    "load_snapshots",
    "main",
    "run",
    "run_check_release",
]
