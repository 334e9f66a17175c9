"""Helpers for publishing semver check results to GitHub Actions surfaces."""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Iterable, Mapping, MutableMapping, Sequence

SEVERITY_ORDER = ["major", "minor"]
ANNOTATION_LEVELS = {
    "major": "error",
    "minor": "warning",
}


def _count_failures(failures: Sequence[Mapping[str, object]]) -> MutableMapping[str, int]:
    counts: MutableMapping[str, int] = {severity: 0 for severity in SEVERITY_ORDER}
    for failure in failures:
        severity = str(failure.get("required_update", "")).lower()
        if severity in counts:
            counts[severity] += 1
    return counts


def format_summary(report: Mapping[str, object]) -> str:
    """Render a Markdown job summary for the provided report."""

    summary: Mapping[str, object] = report.get("summary") or {}
    metadata: Mapping[str, object] = report.get("metadata") or {}
    failures: Sequence[Mapping[str, object]] = report.get("failures") or []

    required = summary.get("required_bump")
    required_display = str(required).title() if required else "None"
    baseline = summary.get("baseline_version") or "unknown"
    current = summary.get("current_version") or "unknown"
    actual = str(summary.get("actual_change") or "none")

    counts = _count_failures(failures)

    lines: list[str] = [
        "# Semver Check Report",
        "",
        f"**Version:** {baseline} -> {current} ({actual} change)",
        f"**Required bump:** {required_display}",
        f"**Checks run:** {int(summary.get('rules_run', 0))}",
        f"**Checks skipped:** {int(summary.get('skipped', 0))}",
        "",
        "| Required update | Failed checks |",
        "| --- | ---: |",
    ]

    for severity in SEVERITY_ORDER:
        lines.append(f"| {severity.title()} | {counts[severity]} |")

    if metadata:
        lines.extend(["", "## Metadata", ""])
        for key in sorted(metadata):
            value = metadata[key]
            lines.append(f"- **{key}:** {value}")

    if failures:
        lines.extend(["", "## Failures", ""])
        display_limit = 10
        for failure in failures[:display_limit]:
            severity = str(failure.get("required_update", "minor")).lower()
            rule_id = str(failure.get("rule_id", "")).strip()
            name = str(failure.get("human_readable_name", "")).strip()
            violations = failure.get("violations") or []
            link = str(failure.get("reference_link") or "").strip()

            bullet = f"- **{severity.title()}**"
            if rule_id:
                bullet += f" `{rule_id}`"
            if name:
                bullet += f" - {name}"
            bullet += f" _({len(violations)} violations)_"
            if link:
                bullet += f" [reference]({link})"
            lines.append(bullet)

        remaining = len(failures) - display_limit
        if remaining > 0:
            lines.append(f"- ...and {remaining} more failing checks.")

    lines.append("")
    return "\n".join(lines)


def iter_annotations(report: Mapping[str, object]) -> Iterable[str]:
    """Generate GitHub Actions workflow command annotations for failing checks."""

    failures: Sequence[Mapping[str, object]] = report.get("failures") or []
    for failure in failures:
        severity = str(failure.get("required_update", "minor")).lower()
        level = ANNOTATION_LEVELS.get(severity, "notice")
        rule_id = str(failure.get("rule_id", "")).strip()
        message = str(failure.get("error_message", "")).strip()
        lines: Sequence[object] = failure.get("lines") or []

        title_parts: list[str] = []
        if severity:
            title_parts.append(f"{severity} change required")
        if rule_id:
            title_parts.append(rule_id)
        title = " - ".join(title_parts)

        body_parts = [message] if message else []
        body_parts.extend(str(line).strip() for line in lines)
        if not body_parts:
            body_parts.append("Semver check failed without message.")

        body = "\n".join(body_parts)
        body = body.replace("%", "%25").replace("\r", "").replace("\n", "%0A")

        attribute_segment = f" title={title}" if title else ""
        yield f"::{level}{attribute_segment}::{body}"


def _load_report(path: Path) -> Mapping[str, object]:
    raw = path.read_text(encoding="utf-8-sig")
    if not raw.strip():
        return {}

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse report JSON from '{path}': {exc.msg}.") from exc

    if not isinstance(data, Mapping):
        raise ValueError("Report JSON must be an object.")
    return data


def _write_summary(report: Mapping[str, object], destination: Path | None) -> None:
    if destination is None:
        return

    content = format_summary(report)
    destination.parent.mkdir(parents=True, exist_ok=True)
    with destination.open("a", encoding="utf-8") as handle:
        handle.write(content)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Publish semver check results as GitHub job summary and annotations."
    )
    parser.add_argument("report", type=Path, help="Path to the semver check report JSON file.")
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional explicit path for the GitHub job summary output.",
    )

    args = parser.parse_args(argv)

    summary_path = args.summary_path
    if summary_path is None:
        summary_env = os.getenv("GITHUB_STEP_SUMMARY")
        if summary_env:
            summary_path = Path(summary_env)

    try:
        report = _load_report(args.report)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}")
        return 2

    _write_summary(report, summary_path)

    for command in iter_annotations(report):
        print(command)

    return 0


def run() -> None:  # pragma: no cover - wrapper for console entry point
    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
