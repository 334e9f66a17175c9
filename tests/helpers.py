"""Builders shared across the test suite."""

from __future__ import annotations

from typing import Any

from semver_checks.models import ApiSnapshot, RequiredSeverity, Rule, SnapshotPair


def make_rule(
    rule_id: str,
    severity: RequiredSeverity = RequiredSeverity.MAJOR,
    query: str = "sample_queries:always_empty",
    **kwargs: Any,
) -> Rule:
    return Rule(
        id=rule_id,
        human_readable_name=kwargs.pop("human_readable_name", rule_id.replace("_", " ")),
        required_severity=severity,
        query_definition=query,
        error_message=kwargs.pop("error_message", f"{rule_id} detected"),
        **kwargs,
    )


def make_snapshots(
    baseline_version: str | None = "1.0.0",
    current_version: str | None = "1.0.0",
    baseline: dict[str, Any] | None = None,
    current: dict[str, Any] | None = None,
) -> SnapshotPair:
    return SnapshotPair(
        current=ApiSnapshot(data=current or {}, version=current_version),
        baseline=ApiSnapshot(data=baseline or {}, version=baseline_version),
    )


class FakeClock:
    """Clock advancing by a fixed step on every reading."""

    def __init__(self, step: float = 0.25) -> None:
        self.step = step
        self.now = 0.0

    def __call__(self) -> float:
        self.now += self.step
        return self.now
