"""Catalog port: read-only view of products and bundles.

The catalog itself lives outside the ordering engine. Orders only need to
know whether a product is purchasable right now and the name to snapshot
onto the order line. The catalog price is informational: orders keep the
price submitted at checkout.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CatalogEntry:
    """A product or bundle as seen by checkout."""

    id: str
    name: str
    price: float
    active: bool = True


class CatalogPort(ABC):
    """Abstract catalog interface."""

    @abstractmethod
    def get_product(self, product_id: str) -> CatalogEntry | None:
        """Return the product, or None when it does not exist."""
        ...

    @abstractmethod
    def get_bundle(self, bundle_id: str) -> CatalogEntry | None:
        """Return the bundle, or None when it does not exist."""
        ...
