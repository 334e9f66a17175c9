"""Orchestration layer used by the CLI to execute compatibility checks."""

from __future__ import annotations

import time
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence

from loguru import logger

from .adapters import (
    PythonQueryEngine,
    QueryCompilationError,
    QueryEngine,
)
from .models import (
    PeekableResults,
    RequiredSeverity,
    Rule,
    RuleOutcome,
    RunReport,
    SnapshotPair,
    VersionMagnitude,
    ViolationInstance,
)
from .versioning import classify, supports


class CheckError(RuntimeError):
    """Base class for fatal errors tied to a specific rule."""

    def __init__(self, rule_id: str, message: str) -> None:
        super().__init__(f"{message} (rule: {rule_id})")
        self.rule_id = rule_id


class RuleCompilationError(CheckError):
    """Raised when a rule's query does not compile against the engine schema."""


class RuleExecutionError(CheckError):
    """Raised when the query engine fails while running a rule."""


Clock = Callable[[], float]
Progress = Callable[[Rule], None]


def select_rules(
    catalog: Iterable[Rule], actual_magnitude: Optional[VersionMagnitude]
) -> tuple[list[Rule], int]:
    """Split ``catalog`` into the rules worth running and a skipped count.

    A rule is skipped when the declared version change already covers the
    bump that rule could justify. Catalog order is preserved.
    """

    magnitude = actual_magnitude or VersionMagnitude.NOT_CHANGED
    applicable: list[Rule] = []
    skipped = 0
    for rule in catalog:
        if supports(magnitude, rule.required_severity):
            skipped += 1
        else:
            applicable.append(rule)
    return applicable, skipped


def _guard_results(rule: Rule, results: Iterator[ViolationInstance]) -> Iterator[ViolationInstance]:
    try:
        yield from results
    except CheckError:
        raise
    except Exception as exc:
        raise RuleExecutionError(rule.id, f"Query execution error: {exc}") from exc


def execute_rule(
    rule: Rule,
    context: SnapshotPair,
    engine: QueryEngine,
    *,
    clock: Clock = time.perf_counter,
) -> tuple[PeekableResults, float]:
    """Run ``rule`` and return its violation stream plus the time to decide pass/fail.

    Only the first result is materialized; the returned stream still yields it.
    """

    start = clock()
    try:
        compiled = engine.compile(rule.query_definition)
    except QueryCompilationError as exc:
        raise RuleCompilationError(rule.id, f"Rule query is not valid: {exc}") from exc
    except CheckError:
        raise
    except Exception as exc:
        raise RuleCompilationError(rule.id, f"Query engine failed to compile the rule: {exc}") from exc

    try:
        raw_results = engine.execute(compiled, context, rule.arguments)
        results = PeekableResults(_guard_results(rule, iter(raw_results)))
    except CheckError:
        raise
    except Exception as exc:
        raise RuleExecutionError(rule.id, f"Query execution error: {exc}") from exc

    results.peek()
    elapsed = clock() - start

    return results, elapsed


def required_bump_for(outcomes: Iterable[RuleOutcome]) -> Optional[RequiredSeverity]:
    """Return the version bump demanded by the failing outcomes, if any."""

    failing = [outcome for outcome in outcomes if not outcome.passed]
    if not failing:
        return None

    severities = {outcome.rule.required_severity for outcome in failing}
    if RequiredSeverity.MAJOR in severities:
        return RequiredSeverity.MAJOR
    if RequiredSeverity.MINOR in severities:
        return RequiredSeverity.MINOR

    raise AssertionError(f"Failing rules without a required severity: {severities!r}")


def aggregate(
    outcomes: Sequence[RuleOutcome],
    *,
    rules_skipped: int,
    actual_magnitude: VersionMagnitude,
    baseline_version: Optional[str] = None,
    current_version: Optional[str] = None,
    version_known: bool = True,
) -> RunReport:
    """Build the :class:`RunReport` for a completed set of rule outcomes."""

    return RunReport(
        actual_magnitude=actual_magnitude,
        rules_run=len(outcomes),
        rules_skipped=rules_skipped,
        outcomes=list(outcomes),
        total_elapsed=sum(outcome.elapsed for outcome in outcomes),
        required_bump=required_bump_for(outcomes),
        baseline_version=baseline_version,
        current_version=current_version,
        version_known=version_known,
    )


class CompatibilityChecker:
    """Run a rule catalog against two API snapshots and aggregate the verdicts."""

    def __init__(
        self,
        *,
        engine: QueryEngine | None = None,
        clock: Clock = time.perf_counter,
        progress: Progress | None = None,
    ) -> None:
        self._engine = engine or PythonQueryEngine()
        self._clock = clock
        self._progress = progress

    # ------------------------------------------------------------------
    def check_release(
        self,
        catalog: Sequence[Rule],
        snapshots: SnapshotPair,
    ) -> RunReport:
        """Execute every applicable rule in catalog order and return the report."""

        baseline_version = snapshots.baseline_version
        current_version = snapshots.current_version

        magnitude = classify(baseline_version, current_version)
        version_known = magnitude is not None
        if magnitude is None:
            logger.warning(
                "Could not determine whether the version changed ({} -> {}). Assuming no change.",
                baseline_version or "unknown",
                current_version or "unknown",
            )
            magnitude = VersionMagnitude.NOT_CHANGED

        applicable, skipped = select_rules(catalog, magnitude)
        logger.info(
            "Starting {} checks ({} skipped), version {} -> {} ({} change)",
            len(applicable),
            skipped,
            baseline_version or "unknown",
            current_version or "unknown",
            magnitude.value,
        )

        outcomes = [self._run_rule(rule, snapshots) for rule in applicable]

        report = aggregate(
            outcomes,
            rules_skipped=skipped,
            actual_magnitude=magnitude,
            baseline_version=baseline_version,
            current_version=current_version,
            version_known=version_known,
        )
        report.metadata.update(self._metadata(snapshots))
        return report

    # ------------------------------------------------------------------
    def _run_rule(self, rule: Rule, snapshots: SnapshotPair) -> RuleOutcome:
        logger.debug("Running {} [{}]", rule.id, rule.required_severity.value)
        if self._progress is not None:
            self._progress(rule)
        results, elapsed = execute_rule(rule, snapshots, self._engine, clock=self._clock)
        passed = results.is_empty()
        logger.debug(
            "{} {} in {:.3f}s", "PASS" if passed else "FAIL", rule.id, elapsed
        )
        return RuleOutcome(rule=rule, passed=passed, violations=results, elapsed=elapsed)

    def _metadata(self, snapshots: SnapshotPair) -> dict[str, Any]:
        metadata: dict[str, Any] = {}
        if snapshots.current.origin:
            metadata["current"] = snapshots.current.origin
        if snapshots.baseline.origin:
            metadata["baseline"] = snapshots.baseline.origin
        return metadata


__all__ = [
    "CheckError",
    "CompatibilityChecker",
    "RuleCompilationError",
    "RuleExecutionError",
    "aggregate",
    "execute_rule",
    "required_bump_for",
    "select_rules",
]
