"""Utilities for loading and merging rule catalog manifest files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, MutableMapping, Sequence, overload

import yaml

from ..models import RequiredSeverity, Rule


class RuleCatalogError(RuntimeError):
    """Raised when rule manifests cannot be loaded or parsed."""


class RuleCatalog(Sequence[Rule]):
    """Immutable, ordered collection of rules."""

    def __init__(self, rules: Sequence[Rule] = ()) -> None:
        self._rules: tuple[Rule, ...] = tuple(rules)
        self._by_id: Dict[str, Rule] = {}
        for rule in self._rules:
            if rule.id in self._by_id:
                raise RuleCatalogError(f"Duplicate rule id in catalog: {rule.id}")
            self._by_id[rule.id] = rule

    @overload
    def __getitem__(self, index: int) -> Rule: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[Rule]: ...

    def __getitem__(self, index: int | slice) -> Rule | Sequence[Rule]:
        return self._rules[index]

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __repr__(self) -> str:
        return f"RuleCatalog({[rule.id for rule in self._rules]!r})"

    def get(self, rule_id: str) -> Rule | None:
        return self._by_id.get(rule_id)

    @property
    def ids(self) -> List[str]:
        return [rule.id for rule in self._rules]


@dataclass(slots=True)
class _RuleEntry:
    id: str
    enabled: bool = True
    source: str | None = None
    fields: Dict[str, Any] = field(default_factory=dict)


_REQUIRED_FIELDS = ("query", "required_update")


class RuleCatalogLoader:
    """Load rule manifests and expose the enabled rules as a :class:`RuleCatalog`."""

    def __init__(self, default_manifests: Sequence[Path | str] | None = None) -> None:
        self._default_manifests: List[Path] = [Path(path) for path in default_manifests or []]

    # ------------------------------------------------------------------
    def load(self, manifests: Sequence[Path | str] | None = None) -> RuleCatalog:
        """Return the catalog defined by the default plus the provided manifests.

        Entries in later manifests override earlier entries with the same id
        while keeping their original position; new ids are appended.
        """

        manifest_paths = [Path(path) for path in self._default_manifests]
        if manifests:
            manifest_paths.extend(Path(path) for path in manifests)

        entries: MutableMapping[str, _RuleEntry] = {}
        for manifest_path in manifest_paths:
            data = self._load_manifest(manifest_path)
            rules = data.get("rules", []) or []
            if not isinstance(rules, list):
                raise RuleCatalogError(f"'rules' must be a list in manifest {manifest_path}")

            for rule_config in rules:
                if not isinstance(rule_config, Mapping):
                    raise RuleCatalogError(f"Rule entries must be mappings in {manifest_path}")

                rule_id = str(rule_config.get("id") or "").strip()
                if not rule_id:
                    raise RuleCatalogError(f"Rule entry without an id in {manifest_path}")

                entry = entries.get(rule_id, _RuleEntry(id=rule_id))
                if "enabled" in rule_config:
                    entry.enabled = bool(rule_config["enabled"])
                entry.source = str(manifest_path)
                entry.fields.update(
                    {key: value for key, value in rule_config.items() if key not in {"id", "enabled"}}
                )

                entries[rule_id] = entry

        return RuleCatalog([self._build_rule(entry) for entry in entries.values() if entry.enabled])

    # ------------------------------------------------------------------
    def _build_rule(self, entry: _RuleEntry) -> Rule:
        fields = entry.fields
        missing = [name for name in _REQUIRED_FIELDS if fields.get(name) in (None, "")]
        if missing:
            raise RuleCatalogError(
                f"Rule {entry.id} is missing required fields: {', '.join(missing)}"
            )

        severity_value = str(fields["required_update"]).strip().lower()
        try:
            severity = RequiredSeverity(severity_value)
        except ValueError as exc:
            raise RuleCatalogError(
                f"Rule {entry.id} has unknown required_update {fields['required_update']!r}"
            ) from exc

        arguments = fields.get("arguments") or {}
        if not isinstance(arguments, Mapping):
            raise RuleCatalogError(f"Rule {entry.id} arguments must be a mapping")

        return Rule(
            id=entry.id,
            human_readable_name=str(fields.get("human_readable_name") or entry.id),
            required_severity=severity,
            query_definition=fields["query"],
            arguments=dict(arguments),
            error_message=str(fields.get("error_message") or ""),
            reference_link=_optional_str(fields.get("reference_link")),
            per_violation_template=_optional_str(fields.get("per_result_error_template")),
            source=entry.source,
        )

    # ------------------------------------------------------------------
    def _load_manifest(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise RuleCatalogError(f"Rule manifest not found: {path}")

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem errors surfaced to caller
            raise RuleCatalogError(f"Failed to read rule manifest {path}") from exc

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as exc:
            raise RuleCatalogError(f"Invalid YAML in rule manifest {path}") from exc

        if not isinstance(data, Mapping):
            raise RuleCatalogError(f"Rule manifest must be a mapping: {path}")

        return dict(data)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None
