"""Rule catalog loading utilities."""

from .catalog import RuleCatalog, RuleCatalogError, RuleCatalogLoader

__all__ = [
    "RuleCatalog",
    "RuleCatalogError",
    "RuleCatalogLoader",
]
