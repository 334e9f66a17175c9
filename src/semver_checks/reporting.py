"""Shape a :class:`RunReport` into renderable summary and failure data."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from jinja2 import Environment, StrictUndefined

from .models import Rule, RuleOutcome, RunReport, VersionMagnitude, ViolationInstance
from .service import CheckError

_TEMPLATES = Environment(undefined=StrictUndefined, autoescape=False, keep_trailing_newline=False)


class TemplateRenderError(CheckError):
    """Raised when a violation cannot be rendered with its rule's template."""


@dataclass(slots=True)
class RenderedFailure:
    """Display data for one failing rule."""

    rule: Rule
    violations: list[dict[str, Any]]
    lines: list[str]

    @property
    def impl_link(self) -> str | None:
        return self.rule.source

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule.id,
            "human_readable_name": self.rule.human_readable_name,
            "required_update": self.rule.required_severity.value,
            "error_message": self.rule.error_message,
            "reference_link": self.rule.reference_link,
            "impl": self.impl_link,
            "violations": list(self.violations),
            "lines": list(self.lines),
        }


@dataclass(slots=True)
class RenderedReport:
    """Fully materialized report, ready to print in any output format."""

    report: RunReport
    failures: list[RenderedFailure] = field(default_factory=list)

    @property
    def summary(self) -> dict[str, Any]:
        report = self.report
        return {
            "baseline_version": report.baseline_version,
            "current_version": report.current_version,
            "version_known": report.version_known,
            "actual_change": report.actual_magnitude.value,
            "required_bump": report.required_bump.value if report.required_bump else None,
            "rules_run": report.rules_run,
            "passed": report.passed_count,
            "failed": report.failed_count,
            "skipped": report.rules_skipped,
            "major_failures": report.major_failures,
            "minor_failures": report.minor_failures,
            "elapsed_seconds": round(report.total_elapsed, 6),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": dict(self.report.metadata),
            "summary": self.summary,
            "outcomes": [_serialize_outcome(outcome) for outcome in self.report.outcomes],
            "failures": [failure.to_dict() for failure in self.failures],
        }


def _serialize_outcome(outcome: RuleOutcome) -> dict[str, Any]:
    return {
        "rule_id": outcome.rule.id,
        "required_update": outcome.rule.required_severity.value,
        "passed": outcome.passed,
        "elapsed_seconds": round(outcome.elapsed, 6),
    }


def _jsonable(violation: ViolationInstance) -> dict[str, Any]:
    return json.loads(json.dumps(dict(violation), default=str))


def render_violation(rule: Rule, violation: ViolationInstance) -> str:
    """Render a single violation using the rule's template or a JSON dump."""

    if rule.per_violation_template is None:
        return json.dumps(_jsonable(violation), indent=2, sort_keys=True)

    try:
        template = _TEMPLATES.from_string(rule.per_violation_template)
        return template.render(dict(violation))
    except Exception as exc:
        raise TemplateRenderError(
            rule.id, f"Error instantiating violation template: {exc}"
        ) from exc


def render_failure(rule: Rule, outcome: RuleOutcome) -> RenderedFailure:
    """Consume the outcome's violation stream and render every instance."""

    violations: list[dict[str, Any]] = []
    lines: list[str] = []
    for violation in outcome.violations:
        lines.append(render_violation(rule, violation))
        violations.append(_jsonable(violation))
    return RenderedFailure(rule=rule, violations=violations, lines=lines)


def render_report(
    report: RunReport, *, clock: Callable[[], float] = time.perf_counter
) -> RenderedReport:
    """Materialize every failing rule's violations, in catalog order.

    Time spent enumerating and rendering is added to ``report.total_elapsed``.
    """

    rendered = RenderedReport(report=report)
    for outcome in report.failures:
        start = clock()
        rendered.failures.append(render_failure(outcome.rule, outcome))
        report.add_elapsed(clock() - start)
    return rendered


def _status_line(label: str, seconds: float, message: str) -> str:
    return f"{label:>12} [{seconds:>8.3f}s] {message}"


def format_text(rendered: RenderedReport) -> str:
    """Render the human-readable console form of a report."""

    report = rendered.report
    baseline = report.baseline_version or "unknown"
    current = report.current_version or "unknown"
    change = (
        "no"
        if report.actual_magnitude is VersionMagnitude.NOT_CHANGED
        else report.actual_magnitude.value
    )

    lines: list[str] = []
    if not report.version_known:
        lines.append(
            f"{'Warning':>12} Could not determine whether the version changed. Assuming no change."
        )

    starting = f"{report.rules_run} checks"
    if report.rules_skipped:
        starting += f" ({report.rules_skipped} checks skipped)"
    lines.append(
        f"{'Starting':>12} {starting}, version {baseline} -> {current} ({change} change)"
    )

    for outcome in report.outcomes:
        label = "PASS" if outcome.passed else "FAIL"
        lines.append(
            _status_line(
                label,
                outcome.elapsed,
                f"{outcome.rule.required_severity.value:^18} {outcome.rule.id}",
            )
        )

    if not rendered.failures:
        lines.append(
            _status_line(
                "Summary",
                report.decision_elapsed,
                f"{report.rules_run} checks run: {report.passed_count} passed, "
                f"{report.rules_skipped} skipped",
            )
        )
        return "\n".join(lines)

    lines.append(
        _status_line(
            "Summary",
            report.decision_elapsed,
            f"{report.rules_run} checks run: {report.passed_count} passed, "
            f"{report.failed_count} failed, {report.rules_skipped} skipped",
        )
    )

    for failure in rendered.failures:
        lines.extend(_format_failure(failure))

    required = report.required_bump.value if report.required_bump else "no"
    lines.append("")
    lines.append(
        _status_line(
            "Final",
            report.total_elapsed,
            f"semver requires new {required} version: "
            f"{report.major_failures} major and {report.minor_failures} minor checks failed",
        )
    )
    return "\n".join(lines)


def _format_failure(failure: RenderedFailure) -> Sequence[str]:
    rule = failure.rule
    lines = [
        "",
        f"--- failure {rule.id}: {rule.human_readable_name} ---",
        "",
        "Description:",
        rule.error_message,
    ]
    if rule.reference_link:
        lines.append(f"{'ref:':>12} {rule.reference_link}")
    if failure.impl_link:
        lines.append(f"{'impl:':>12} {failure.impl_link}")

    lines.extend(["", "Failed in:"])
    if rule.per_violation_template is None:
        lines.extend(failure.lines)
    else:
        lines.extend(f"  {line}" for line in failure.lines)
    return lines


def format_json(rendered: RenderedReport) -> str:
    return json.dumps(rendered.to_dict(), indent=2)


__all__ = [
    "RenderedFailure",
    "RenderedReport",
    "TemplateRenderError",
    "format_json",
    "format_text",
    "render_failure",
    "render_report",
    "render_violation",
]
