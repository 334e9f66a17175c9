"""Classification of the version change declared between two snapshots."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .models import RequiredSeverity, VersionMagnitude

_SEMVER_PATTERN = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


class VersionParseError(ValueError):
    """Raised when a string is not a valid semantic version."""


@dataclass(frozen=True, slots=True)
class SemanticVersion:
    """Parsed ``MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]`` version."""

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None
    build: Optional[str] = None

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text


def parse_version(text: str) -> SemanticVersion:
    """Parse ``text`` as a semantic version."""

    match = _SEMVER_PATTERN.match(text.strip())
    if match is None:
        raise VersionParseError(f"Not a valid semantic version: {text!r}")

    return SemanticVersion(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=match.group("prerelease"),
        build=match.group("build"),
    )


def classify(
    baseline_version: Optional[str], current_version: Optional[str]
) -> Optional[VersionMagnitude]:
    """Return the magnitude of the declared version change.

    Only changes in the left-most non-zero component are treated as
    incompatible: ``0.y.z`` releases treat a ``y`` change as major and a
    ``z`` change as minor, and ``0.0.z`` releases treat every change as major.

    Returns ``None`` when either version is missing or cannot be parsed.
    """

    if baseline_version is None or current_version is None:
        return None

    try:
        baseline = parse_version(baseline_version)
        current = parse_version(current_version)
    except VersionParseError:
        return None

    if baseline.major != current.major:
        return VersionMagnitude.MAJOR

    if baseline.minor != current.minor:
        if current.major == 0:
            return VersionMagnitude.MAJOR
        return VersionMagnitude.MINOR

    if baseline.patch != current.patch:
        if current.major == 0:
            if current.minor == 0:
                return VersionMagnitude.MAJOR
            return VersionMagnitude.MINOR
        return VersionMagnitude.PATCH

    return VersionMagnitude.NOT_CHANGED


def supports(actual: VersionMagnitude, required: RequiredSeverity | VersionMagnitude) -> bool:
    """Return ``True`` when ``actual`` already justifies the ``required`` bump."""

    if isinstance(required, RequiredSeverity):
        required = required.magnitude
    return actual >= required


__all__ = [
    "SemanticVersion",
    "VersionParseError",
    "classify",
    "parse_version",
    "supports",
]
