"""Data models for API snapshots, rules, and check outcomes."""

from .outcome import PeekableResults, RuleOutcome, RunReport, ViolationInstance
from .rule import Rule
from .snapshot import ApiSnapshot, SnapshotPair
from .version import MAGNITUDE_RANK, RequiredSeverity, VersionMagnitude

__all__ = [
    "ApiSnapshot",
    "MAGNITUDE_RANK",
    "PeekableResults",
    "RequiredSeverity",
    "Rule",
    "RuleOutcome",
    "RunReport",
    "SnapshotPair",
    "VersionMagnitude",
    "ViolationInstance",
]
