"""Catalog adapter factory.

Provides get_catalog() / set_catalog() so the storefront can plug in its
product store. Defaults to an empty InMemoryCatalog.
"""

from ordering.catalog.memory_adapter import InMemoryCatalog
from ordering.catalog.port import CatalogPort

_current_catalog: CatalogPort | None = None


def get_catalog() -> CatalogPort:
    """Return the current catalog adapter. Defaults to InMemoryCatalog."""
    global _current_catalog
    if _current_catalog is None:
        _current_catalog = InMemoryCatalog()
    return _current_catalog


def set_catalog(catalog: CatalogPort) -> None:
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    global _current_catalog
    _current_catalog = None
