"""Version change magnitudes and rule severities."""

from __future__ import annotations

from enum import Enum


class VersionMagnitude(str, Enum):
    """Magnitude of the version change declared between two snapshots."""

    NOT_CHANGED = "none"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def rank(self) -> int:
        return MAGNITUDE_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, VersionMagnitude):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, VersionMagnitude):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, VersionMagnitude):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, VersionMagnitude):
            return NotImplemented
        return self.rank >= other.rank


MAGNITUDE_RANK = {
    VersionMagnitude.NOT_CHANGED: 0,
    VersionMagnitude.PATCH: 1,
    VersionMagnitude.MINOR: 2,
    VersionMagnitude.MAJOR: 3,
}


class RequiredSeverity(str, Enum):
    """Version bump a rule justifies when it fails."""

    MINOR = "minor"
    MAJOR = "major"

    @property
    def magnitude(self) -> VersionMagnitude:
        return VersionMagnitude(self.value)
