"""Rule definitions consumed by the compatibility checker."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .version import RequiredSeverity


@dataclass(frozen=True, slots=True)
class Rule:
    """A single pre-validated compatibility rule.

    ``query_definition`` and ``arguments`` are handed to the query engine
    untouched; the checker never looks inside them.
    """

    id: str
    human_readable_name: str
    required_severity: RequiredSeverity
    query_definition: Any
    arguments: Mapping[str, Any] = field(default_factory=dict)
    error_message: str = ""
    reference_link: Optional[str] = None
    per_violation_template: Optional[str] = None
    source: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "arguments", MappingProxyType(dict(self.arguments)))
