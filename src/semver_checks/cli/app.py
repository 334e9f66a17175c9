"""Command-line interface implementation for the semver checks tooling."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence, TextIO

from loguru import logger

from ..adapters import (
    QueryCompilationError,
    SnapshotLoader,
    SnapshotLoaderError,
    load_query_engine,
)
from ..config import GlobalConfig, configure_logging
from ..models import Rule, RunReport, SnapshotPair
from ..reporting import RenderedReport, format_json, format_text, render_report
from ..rules import RuleCatalog, RuleCatalogError, RuleCatalogLoader
from ..service import CheckError, CompatibilityChecker

OUTPUT_FORMATS = ("text", "json")


@dataclass(slots=True)
class CheckResult:
    """Rendered report plus the exit status it implies."""

    rendered: RenderedReport

    @property
    def report(self) -> RunReport:
        return self.rendered.report

    @property
    def exit_status(self) -> int:
        return self.report.exit_status


def _add_check_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--current",
        dest="current_path",
        type=Path,
        required=True,
        metavar="CURRENT_SNAPSHOT_JSON",
        help="The current API snapshot to test for semver violations. Required.",
    )
    parser.add_argument(
        "-b",
        "--baseline",
        dest="baseline_path",
        type=Path,
        required=True,
        metavar="BASELINE_SNAPSHOT_JSON",
        help="The API snapshot to use as a semver baseline. Required.",
    )
    parser.add_argument(
        "--rules",
        dest="rule_manifests",
        action="append",
        default=None,
        type=str,
        help="Path to a rule manifest YAML/JSON file. May be given multiple times.",
    )
    parser.add_argument(
        "--current-version",
        default=None,
        help="Override the version declared in the current snapshot.",
    )
    parser.add_argument(
        "--baseline-version",
        default=None,
        help="Override the version declared in the baseline snapshot.",
    )
    parser.add_argument(
        "--query-engine",
        default=None,
        metavar="MODULE:CLASS",
        help="Query engine implementation to use. Defaults to the Python callable engine.",
    )
    parser.add_argument(
        "--format",
        choices=list(OUTPUT_FORMATS),
        default="text",
        help="Output format for check results.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log per-rule progress and timing to stderr.",
    )


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""

    parser = argparse.ArgumentParser(
        prog="semver-checks", description="Check your library for semver violations."
    )
    subparsers = parser.add_subparsers(dest="command")

    check_release = subparsers.add_parser(
        "check-release", help="Check a release candidate against a baseline snapshot."
    )
    _add_check_arguments(check_release)

    diff_files = subparsers.add_parser(
        "diff-files", help="Compare two API snapshot files directly."
    )
    _add_check_arguments(diff_files)

    return parser


def load_snapshots(
    current_path: Path,
    baseline_path: Path,
    *,
    current_version: str | None = None,
    baseline_version: str | None = None,
) -> SnapshotPair:
    current = SnapshotLoader(current_path, version_override=current_version).load()
    baseline = SnapshotLoader(baseline_path, version_override=baseline_version).load()
    return SnapshotPair(current=current, baseline=baseline)


def load_catalog(manifests: Sequence[str] | None) -> RuleCatalog:
    return RuleCatalogLoader().load(list(manifests or []))


def make_progress_reporter(
    config: GlobalConfig, stream: TextIO | None = None
) -> Callable[[Rule], None] | None:
    """Return a per-rule "Running" printer when stdout is a terminal."""

    if not config.printing_to_terminal:
        return None
    output = stream if stream is not None else sys.stderr

    def report_progress(rule: Rule) -> None:
        print(
            f"{'Running':>12} {rule.required_severity.value:^18} {rule.id} ...",
            file=output,
            flush=True,
        )

    return report_progress


def run_check_release(
    checker: CompatibilityChecker,
    catalog: RuleCatalog,
    snapshots: SnapshotPair,
) -> CheckResult:
    """Run the checks and fully render the report before anything is printed."""

    report = checker.check_release(catalog, snapshots)
    return CheckResult(rendered=render_report(report))


def _handle_check(args: argparse.Namespace) -> int:
    config = GlobalConfig.from_environment(verbose=args.verbose)
    configure_logging(config)

    try:
        snapshots = load_snapshots(
            args.current_path,
            args.baseline_path,
            current_version=args.current_version,
            baseline_version=args.baseline_version,
        )
        catalog = load_catalog(args.rule_manifests)
        checker = CompatibilityChecker(
            engine=load_query_engine(args.query_engine),
            progress=make_progress_reporter(config),
        )
        result = run_check_release(checker, catalog, snapshots)
    except (SnapshotLoaderError, RuleCatalogError, QueryCompilationError, CheckError) as exc:
        logger.debug("Run aborted: {!r}", exc)
        print(f"Error: {exc}")
        return 2

    if args.format == "json":
        output = format_json(result.rendered)
    else:
        output = format_text(result.rendered)

    print(output)
    return result.exit_status


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by tests and the ``python -m`` invocation."""

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command in {"check-release", "diff-files"}:
        return _handle_check(args)

    parser.print_help()
    return 0


def run() -> None:  # pragma: no cover - thin wrapper for module execution
    """Execute the CLI and exit with the produced status code."""

    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
