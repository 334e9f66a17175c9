from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from ..models import ApiSnapshot

_VERSION_KEYS = ("crate_version", "version")


class SnapshotLoaderError(RuntimeError):
    """Exception raised when an API snapshot cannot be loaded."""


class SnapshotLoader:
    """Load an API snapshot from a JSON document on disk."""

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        version_override: Optional[str] = None,
    ) -> None:
        self.path = Path(path).resolve()
        self.version_override = version_override

    def load(self) -> ApiSnapshot:
        """Read and parse the snapshot, extracting its declared version."""

        data = self._load_json_artifact(self.path)
        version = self.version_override or self._extract_version(data)
        return ApiSnapshot(data=data, version=version, origin=str(self.path))

    # Artifact ingestion helpers -------------------------------------------------
    def _load_json_artifact(self, path: Path) -> Mapping[str, Any]:
        if not path.exists():
            raise SnapshotLoaderError(f"API snapshot not found: {path}")

        with path.open("r", encoding="utf-8") as handle:
            try:
                data = json.load(handle)
            except json.JSONDecodeError as exc:
                raise SnapshotLoaderError(f"Invalid JSON in API snapshot: {path}") from exc

        if not isinstance(data, Mapping):
            raise SnapshotLoaderError(f"API snapshot must be a JSON object: {path}")

        return data

    def _extract_version(self, data: Mapping[str, Any]) -> Optional[str]:
        for key in _VERSION_KEYS:
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None


__all__ = ["SnapshotLoader", "SnapshotLoaderError"]
