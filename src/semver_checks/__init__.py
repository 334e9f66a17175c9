"""Semantic-version compatibility checks for library API snapshots."""

from .models import RequiredSeverity, Rule, RunReport, SnapshotPair, VersionMagnitude
from .service import CompatibilityChecker
from .versioning import classify, supports

__all__ = [
    "CompatibilityChecker",
    "RequiredSeverity",
    "Rule",
    "RunReport",
    "SnapshotPair",
    "VersionMagnitude",
    "classify",
    "supports",
]
