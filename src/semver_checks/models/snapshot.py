"""API snapshot models shared by loaders and query engines."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional


@dataclass(frozen=True, slots=True)
class ApiSnapshot:
    """Parsed public API surface of a library at one version."""

    data: Mapping[str, Any]
    version: Optional[str] = None
    origin: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.data, MappingProxyType):
            object.__setattr__(self, "data", MappingProxyType(dict(self.data)))


@dataclass(frozen=True, slots=True)
class SnapshotPair:
    """Read-only view over the current and baseline snapshots.

    One instance is built per run and passed by reference to every rule.
    """

    current: ApiSnapshot
    baseline: ApiSnapshot

    @property
    def current_version(self) -> Optional[str]:
        return self.current.version

    @property
    def baseline_version(self) -> Optional[str]:
        return self.baseline.version
