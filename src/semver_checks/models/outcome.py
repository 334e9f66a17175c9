"""Per-rule outcomes and the aggregated run report."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from .rule import Rule
from .version import RequiredSeverity, VersionMagnitude

ViolationInstance = Mapping[str, Any]

_SENTINEL = object()


class PeekableResults(Iterator[ViolationInstance]):
    """Single-pass iterator over violation instances with one-item lookahead."""

    def __init__(self, results: Iterable[ViolationInstance]) -> None:
        self._iterator = iter(results)
        self._peeked: Any = _SENTINEL

    def __iter__(self) -> "PeekableResults":
        return self

    def __next__(self) -> ViolationInstance:
        if self._peeked is not _SENTINEL:
            item, self._peeked = self._peeked, _SENTINEL
            return item
        return next(self._iterator)

    def peek(self, default: Any = None) -> Any:
        """Return the next item without consuming it, or ``default`` when exhausted."""

        if self._peeked is _SENTINEL:
            try:
                self._peeked = next(self._iterator)
            except StopIteration:
                return default
        return self._peeked

    def is_empty(self) -> bool:
        return self.peek(_SENTINEL) is _SENTINEL


@dataclass(slots=True)
class RuleOutcome:
    """Verdict for one executed rule."""

    rule: Rule
    passed: bool
    violations: PeekableResults
    elapsed: float = 0.0


@dataclass(slots=True)
class RunReport:
    """Aggregated result of a compatibility check run."""

    actual_magnitude: VersionMagnitude
    rules_run: int
    rules_skipped: int
    outcomes: Sequence[RuleOutcome]
    total_elapsed: float
    required_bump: Optional[RequiredSeverity]
    baseline_version: Optional[str] = None
    current_version: Optional[str] = None
    version_known: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def failures(self) -> list[RuleOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.passed]

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def passed_count(self) -> int:
        return self.rules_run - self.failed_count

    @property
    def major_failures(self) -> int:
        return sum(
            1 for outcome in self.failures if outcome.rule.required_severity is RequiredSeverity.MAJOR
        )

    @property
    def minor_failures(self) -> int:
        return sum(
            1 for outcome in self.failures if outcome.rule.required_severity is RequiredSeverity.MINOR
        )

    @property
    def decision_elapsed(self) -> float:
        """Time spent reaching the pass/fail verdicts, excluding report rendering."""

        return sum(outcome.elapsed for outcome in self.outcomes)

    @property
    def exit_status(self) -> int:
        """Process exit status: non-zero iff a version bump is required."""

        return 1 if self.required_bump is not None else 0

    def add_elapsed(self, seconds: float) -> None:
        self.total_elapsed += seconds
