"""Query engine interfaces and the default Python-callable implementation."""

from __future__ import annotations

import importlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping

from ..models import SnapshotPair, ViolationInstance


class QueryCompilationError(RuntimeError):
    """Raised when a query is not valid against the engine's schema."""


class QueryExecutionError(RuntimeError):
    """Raised when the engine fails while running a compiled query."""


@dataclass(frozen=True, slots=True)
class CompiledQuery:
    """Engine-specific handle for a query that passed compilation."""

    source: Any
    plan: Any


class QueryEngine(ABC):
    """Abstract base class describing the query engine contract."""

    @property
    @abstractmethod
    def schema(self) -> Any:
        """Description of the surface queries may reference."""

    @abstractmethod
    def compile(self, query: Any) -> CompiledQuery:
        """Validate ``query`` against :attr:`schema` and prepare it for execution."""

    @abstractmethod
    def execute(
        self,
        compiled: CompiledQuery,
        context: SnapshotPair,
        arguments: Mapping[str, Any],
    ) -> Iterator[ViolationInstance]:
        """Run ``compiled`` against ``context`` and lazily yield violation instances."""


QueryFunction = Callable[..., Any]


class PythonQueryEngine(QueryEngine):
    """Engine whose queries are ``"package.module:callable"`` references.

    The referenced callable receives the snapshot pair plus the rule arguments
    as keyword arguments and returns an iterable of mappings.
    """

    _SCHEMA = {
        "context": ("current", "baseline"),
        "snapshot": ("data", "version", "origin"),
    }

    @property
    def schema(self) -> Mapping[str, tuple[str, ...]]:
        return self._SCHEMA

    # ------------------------------------------------------------------
    def compile(self, query: Any) -> CompiledQuery:
        if callable(query):
            return CompiledQuery(source=query, plan=query)

        if not isinstance(query, str) or ":" not in query:
            raise QueryCompilationError(
                f"Query must be a 'module:callable' reference, got {query!r}"
            )

        module_name, _, attribute_path = query.strip().partition(":")
        if not module_name or not attribute_path:
            raise QueryCompilationError(f"Incomplete query reference: {query!r}")

        try:
            target: Any = importlib.import_module(module_name)
        except ImportError as exc:
            raise QueryCompilationError(f"Cannot import query module {module_name!r}") from exc

        for attribute in attribute_path.split("."):
            try:
                target = getattr(target, attribute)
            except AttributeError as exc:
                raise QueryCompilationError(
                    f"Query callable {attribute_path!r} not found in {module_name!r}"
                ) from exc

        if not callable(target):
            raise QueryCompilationError(f"Query reference {query!r} is not callable")

        return CompiledQuery(source=query, plan=target)

    # ------------------------------------------------------------------
    def execute(
        self,
        compiled: CompiledQuery,
        context: SnapshotPair,
        arguments: Mapping[str, Any],
    ) -> Iterator[ViolationInstance]:
        function: QueryFunction = compiled.plan
        try:
            results = function(context, **dict(arguments))
            iterator = iter(results)
        except Exception as exc:
            raise QueryExecutionError(f"Query {compiled.source!r} failed: {exc}") from exc

        return self._iterate(compiled, iterator)

    def _iterate(
        self, compiled: CompiledQuery, iterator: Iterator[Any]
    ) -> Iterator[ViolationInstance]:
        while True:
            try:
                item = next(iterator)
            except StopIteration:
                return
            except Exception as exc:
                raise QueryExecutionError(f"Query {compiled.source!r} failed: {exc}") from exc

            if not isinstance(item, Mapping):
                raise QueryExecutionError(
                    f"Query {compiled.source!r} produced a non-mapping result: {item!r}"
                )
            yield dict(item)


def load_query_engine(reference: str | None) -> QueryEngine:
    """Instantiate the engine named by ``"module:Class"``, or the default engine."""

    if not reference:
        return PythonQueryEngine()

    module_name, _, class_name = reference.partition(":")
    try:
        module = importlib.import_module(module_name)
        engine_cls = getattr(module, class_name)
    except (ImportError, AttributeError, ValueError) as exc:
        raise QueryCompilationError(f"Cannot load query engine {reference!r}") from exc

    engine = engine_cls()
    if not isinstance(engine, QueryEngine):
        raise QueryCompilationError(f"{reference!r} is not a QueryEngine implementation")
    return engine


__all__ = [
    "CompiledQuery",
    "PythonQueryEngine",
    "QueryCompilationError",
    "QueryEngine",
    "QueryExecutionError",
    "load_query_engine",
]
