"""Adapter layer package for snapshot ingestion and query execution."""

from .query_engine import (
    CompiledQuery,
    PythonQueryEngine,
    QueryCompilationError,
    QueryEngine,
    QueryExecutionError,
    load_query_engine,
)
from .snapshot_loader import SnapshotLoader, SnapshotLoaderError

__all__ = [
    "CompiledQuery",
    "PythonQueryEngine",
    "QueryCompilationError",
    "QueryEngine",
    "QueryExecutionError",
    "SnapshotLoader",
    "SnapshotLoaderError",
    "load_query_engine",
]
