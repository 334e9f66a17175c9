from __future__ import annotations

from typing import Any, Iterator, Mapping

import pytest
from loguru import logger

import sample_queries
from helpers import FakeClock, make_rule, make_snapshots
from semver_checks.adapters import CompiledQuery, PythonQueryEngine, QueryEngine
from semver_checks.models import (
    PeekableResults,
    RequiredSeverity,
    RuleOutcome,
    SnapshotPair,
    VersionMagnitude,
)
from semver_checks.service import (
    CompatibilityChecker,
    RuleCompilationError,
    RuleExecutionError,
    aggregate,
    execute_rule,
    required_bump_for,
    select_rules,
)


def _catalog():
    return [
        make_rule("function_missing", RequiredSeverity.MAJOR),
        make_rule("enum_variant_added", RequiredSeverity.MAJOR),
        make_rule("trait_method_added", RequiredSeverity.MINOR),
    ]


def _outcome(rule_id: str, severity: RequiredSeverity, *, passed: bool) -> RuleOutcome:
    violations = PeekableResults(() if passed else [{"name": rule_id}])
    return RuleOutcome(make_rule(rule_id, severity), passed=passed, violations=violations, elapsed=0.5)


class RecordingEngine(QueryEngine):
    """Engine double that serves canned results keyed by query text."""

    def __init__(self, results: Mapping[str, list[dict[str, Any]]]) -> None:
        self.results = results
        self.contexts: list[SnapshotPair] = []

    @property
    def schema(self) -> Any:
        return {}

    def compile(self, query: Any) -> CompiledQuery:
        return CompiledQuery(source=query, plan=query)

    def execute(
        self, compiled: CompiledQuery, context: SnapshotPair, arguments: Mapping[str, Any]
    ) -> Iterator[Mapping[str, Any]]:
        self.contexts.append(context)
        return iter(self.results[compiled.plan])


# Applicability ---------------------------------------------------------------


def test_select_rules_major_change_skips_everything():
    catalog = _catalog()

    applicable, skipped = select_rules(catalog, VersionMagnitude.MAJOR)

    assert applicable == []
    assert skipped == len(catalog)


@pytest.mark.parametrize("magnitude", [VersionMagnitude.NOT_CHANGED, VersionMagnitude.PATCH, None])
def test_select_rules_without_minor_change_runs_everything(magnitude):
    catalog = _catalog()

    applicable, skipped = select_rules(catalog, magnitude)

    assert applicable == catalog
    assert skipped == 0


def test_select_rules_minor_change_keeps_catalog_order_of_major_rules():
    catalog = [
        make_rule("a", RequiredSeverity.MAJOR),
        make_rule("b", RequiredSeverity.MINOR),
        make_rule("c", RequiredSeverity.MAJOR),
    ]

    applicable, skipped = select_rules(catalog, VersionMagnitude.MINOR)

    assert [rule.id for rule in applicable] == ["a", "c"]
    assert skipped == 1


# Execution -------------------------------------------------------------------


def test_execute_rule_only_materializes_first_result():
    rule = make_rule("many", query="sample_queries:many_violations", arguments={"count": 5})

    results, elapsed = execute_rule(rule, make_snapshots(), PythonQueryEngine(), clock=FakeClock())

    assert sample_queries.CALLS == ["many_violations:0"]
    assert elapsed == pytest.approx(0.25)
    assert [item["index"] for item in results] == [0, 1, 2, 3, 4]


def test_execute_rule_reports_compilation_errors_with_rule_id():
    rule = make_rule("broken", query="sample_queries:does_not_exist")

    with pytest.raises(RuleCompilationError) as excinfo:
        execute_rule(rule, make_snapshots(), PythonQueryEngine())

    assert excinfo.value.rule_id == "broken"
    assert "broken" in str(excinfo.value)


def test_execute_rule_reports_engine_failures():
    rule = make_rule("faulty", query="sample_queries:fails_immediately")

    with pytest.raises(RuleExecutionError) as excinfo:
        execute_rule(rule, make_snapshots(), PythonQueryEngine())

    assert excinfo.value.rule_id == "faulty"
    assert "engine fault" in str(excinfo.value)


def test_execute_rule_reports_failures_during_later_enumeration():
    rule = make_rule("flaky", query="sample_queries:fails_while_iterating")

    results, _ = execute_rule(rule, make_snapshots(), PythonQueryEngine())

    assert next(results) == {"index": 0}
    with pytest.raises(RuleExecutionError) as excinfo:
        next(results)
    assert excinfo.value.rule_id == "flaky"


# Aggregation -----------------------------------------------------------------


def test_required_bump_none_without_failures():
    outcomes = [_outcome("a", RequiredSeverity.MAJOR, passed=True)]

    assert required_bump_for(outcomes) is None


def test_required_bump_minor_when_only_minor_rules_fail():
    outcomes = [
        _outcome("a", RequiredSeverity.MAJOR, passed=True),
        _outcome("b", RequiredSeverity.MINOR, passed=False),
    ]

    assert required_bump_for(outcomes) is RequiredSeverity.MINOR


def test_required_bump_major_when_any_major_rule_fails():
    outcomes = [
        _outcome("a", RequiredSeverity.MINOR, passed=False),
        _outcome("b", RequiredSeverity.MAJOR, passed=False),
        _outcome("c", RequiredSeverity.MINOR, passed=False),
    ]

    assert required_bump_for(outcomes) is RequiredSeverity.MAJOR


def test_aggregate_builds_report():
    outcomes = [
        _outcome("a", RequiredSeverity.MAJOR, passed=True),
        _outcome("b", RequiredSeverity.MINOR, passed=False),
    ]

    report = aggregate(outcomes, rules_skipped=2, actual_magnitude=VersionMagnitude.PATCH)

    assert report.rules_run == 2
    assert report.rules_skipped == 2
    assert report.total_elapsed == pytest.approx(1.0)
    assert report.required_bump is RequiredSeverity.MINOR
    assert [outcome.rule.id for outcome in report.failures] == ["b"]
    assert report.exit_status == 1


# End to end ------------------------------------------------------------------


def test_minor_release_runs_major_rules_and_skips_minor_rules():
    catalog = [
        make_rule("major_rule", RequiredSeverity.MAJOR, query="sample_queries:always_empty"),
        make_rule("minor_rule", RequiredSeverity.MINOR, query="sample_queries:always_one_violation"),
    ]
    snapshots = make_snapshots(baseline_version="1.0.0", current_version="1.1.0")

    report = CompatibilityChecker().check_release(catalog, snapshots)

    assert report.actual_magnitude is VersionMagnitude.MINOR
    assert report.rules_run == 1
    assert report.rules_skipped == 1
    assert report.failed_count == 0
    assert report.required_bump is None
    assert report.exit_status == 0
    assert sample_queries.CALLS == ["always_empty"]


def test_patch_release_with_breaking_change_requires_major():
    catalog = [
        make_rule("function_missing", RequiredSeverity.MAJOR, query="sample_queries:function_missing"),
        make_rule("always_minor", RequiredSeverity.MINOR, query="sample_queries:always_one_violation"),
    ]
    snapshots = make_snapshots(
        baseline_version="1.2.3",
        current_version="1.2.4",
        baseline={"functions": {"parse": {"path": "crate::parse"}, "emit": {}}},
        current={"functions": {"emit": {}}},
    )

    report = CompatibilityChecker().check_release(catalog, snapshots)

    assert report.rules_run + report.rules_skipped == len(catalog)
    assert [outcome.rule.id for outcome in report.failures] == ["function_missing", "always_minor"]
    assert report.required_bump is RequiredSeverity.MAJOR
    assert list(report.failures[0].violations) == [{"name": "parse", "path": "crate::parse"}]


def test_unknown_version_warns_and_runs_all_rules():
    messages: list[str] = []
    handler_id = logger.add(messages.append, level="WARNING", format="{message}")
    try:
        report = CompatibilityChecker().check_release(
            _catalog(), make_snapshots(baseline_version=None, current_version="2.0.0")
        )
    finally:
        logger.remove(handler_id)

    assert report.actual_magnitude is VersionMagnitude.NOT_CHANGED
    assert report.version_known is False
    assert report.rules_run == 3
    assert report.rules_skipped == 0
    assert any("Assuming no change" in message for message in messages)


def test_every_rule_shares_the_same_context():
    engine = RecordingEngine({"empty": [], "one": [{"name": "x"}]})
    catalog = [
        make_rule("a", RequiredSeverity.MAJOR, query="empty"),
        make_rule("b", RequiredSeverity.MINOR, query="one"),
    ]
    snapshots = make_snapshots()

    report = CompatibilityChecker(engine=engine).check_release(catalog, snapshots)

    assert all(context is snapshots for context in engine.contexts)
    assert report.required_bump is RequiredSeverity.MINOR


def test_repeated_runs_produce_identical_reports():
    engine = RecordingEngine({"empty": [], "one": [{"name": "x"}], "two": [{"n": 1}, {"n": 2}]})
    catalog = [
        make_rule("a", RequiredSeverity.MAJOR, query="two"),
        make_rule("b", RequiredSeverity.MINOR, query="empty"),
        make_rule("c", RequiredSeverity.MINOR, query="one"),
    ]
    snapshots = make_snapshots()

    def summarize(report):
        return (
            report.actual_magnitude,
            report.rules_run,
            report.rules_skipped,
            report.required_bump,
            [(o.rule.id, o.passed, list(o.violations)) for o in report.outcomes],
        )

    first = summarize(CompatibilityChecker(engine=engine).check_release(catalog, snapshots))
    second = summarize(CompatibilityChecker(engine=engine).check_release(catalog, snapshots))

    assert first == second
    assert first[4] == [
        ("a", False, [{"n": 1}, {"n": 2}]),
        ("b", True, []),
        ("c", False, [{"name": "x"}]),
    ]


def test_engine_failure_aborts_the_run():
    catalog = [
        make_rule("ok", RequiredSeverity.MAJOR),
        make_rule("faulty", RequiredSeverity.MAJOR, query="sample_queries:fails_immediately"),
    ]

    with pytest.raises(RuleExecutionError) as excinfo:
        CompatibilityChecker().check_release(catalog, make_snapshots())

    assert excinfo.value.rule_id == "faulty"


class BrokenEngine(RecordingEngine):
    """Engine double whose backing store disappears on execute."""

    def __init__(self) -> None:
        super().__init__({})

    def execute(self, compiled, context, arguments):
        raise OSError("backing store gone")


class CrashingCompileEngine(RecordingEngine):
    def __init__(self) -> None:
        super().__init__({})

    def compile(self, query: Any) -> CompiledQuery:
        raise ValueError("schema unavailable")


def test_arbitrary_engine_errors_abort_with_rule_id():
    with pytest.raises(RuleExecutionError) as excinfo:
        CompatibilityChecker(engine=BrokenEngine()).check_release(
            [make_rule("x")], make_snapshots()
        )

    assert excinfo.value.rule_id == "x"
    assert "backing store gone" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, OSError)


def test_unknown_query_in_engine_carries_rule_id():
    engine = RecordingEngine({"present": [{"name": "x"}]})

    with pytest.raises(RuleExecutionError) as excinfo:
        execute_rule(make_rule("lookup", query="absent"), make_snapshots(), engine)

    assert excinfo.value.rule_id == "lookup"
    assert isinstance(excinfo.value.__cause__, KeyError)


class InterruptedEngine(RecordingEngine):
    def __init__(self) -> None:
        super().__init__({})

    def execute(self, compiled, context, arguments):
        yield {"index": 0}
        raise ConnectionError("stream interrupted")


def test_arbitrary_errors_during_enumeration_carry_rule_id():
    results, _ = execute_rule(make_rule("stream"), make_snapshots(), InterruptedEngine())

    assert next(results) == {"index": 0}
    with pytest.raises(RuleExecutionError) as excinfo:
        next(results)
    assert excinfo.value.rule_id == "stream"
    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_arbitrary_compile_errors_carry_rule_id():
    with pytest.raises(RuleCompilationError) as excinfo:
        execute_rule(make_rule("schema"), make_snapshots(), CrashingCompileEngine())

    assert excinfo.value.rule_id == "schema"


def test_progress_callback_sees_each_applicable_rule_in_order():
    seen: list[str] = []
    catalog = [
        make_rule("a", RequiredSeverity.MAJOR),
        make_rule("b", RequiredSeverity.MINOR),
        make_rule("c", RequiredSeverity.MAJOR),
    ]

    CompatibilityChecker(progress=lambda rule: seen.append(rule.id)).check_release(
        catalog, make_snapshots("1.0.0", "1.1.0")
    )

    assert seen == ["a", "c"]
