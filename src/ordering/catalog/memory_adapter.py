"""In-memory catalog for development and testing.

A deployment without a catalog service can load one from a JSON file::

    {
      "products": [{"id": "prod-001", "name": "Gift Card $500", "price": 500.0}],
      "bundles": [{"id": "bundle-001", "name": "Starter Bundle", "price": 650.0, "active": false}]
    }
"""

from pathlib import Path

from pydantic import BaseModel, Field

from ordering.catalog.port import CatalogEntry, CatalogPort


class _FileEntry(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    active: bool = True


class _CatalogFile(BaseModel):
    products: list[_FileEntry] = []
    bundles: list[_FileEntry] = []


class InMemoryCatalog(CatalogPort):
    """Catalog backed by two dictionaries. Lookups are recorded in ``calls``."""

    def __init__(self) -> None:
        self.products: dict[str, CatalogEntry] = {}
        self.bundles: dict[str, CatalogEntry] = {}
        self.calls: list[dict] = []

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryCatalog":
        """Build a catalog from a JSON file. Raises pydantic.ValidationError on malformed content."""
        data = _CatalogFile.model_validate_json(Path(path).read_text(encoding="utf-8"))
        catalog = cls()
        for entry in data.products:
            catalog.add_product(entry.id, entry.name, entry.price, active=entry.active)
        for entry in data.bundles:
            catalog.add_bundle(entry.id, entry.name, entry.price, active=entry.active)
        return catalog

    def add_product(self, product_id: str, name: str, price: float, active: bool = True) -> CatalogEntry:
        entry = CatalogEntry(id=product_id, name=name, price=price, active=active)
        self.products[product_id] = entry
        return entry

    def add_bundle(self, bundle_id: str, name: str, price: float, active: bool = True) -> CatalogEntry:
        entry = CatalogEntry(id=bundle_id, name=name, price=price, active=active)
        self.bundles[bundle_id] = entry
        return entry

    def deactivate(self, product_id: str) -> None:
        entry = self.products[product_id]
        self.products[product_id] = CatalogEntry(id=entry.id, name=entry.name, price=entry.price, active=False)

    def get_product(self, product_id: str) -> CatalogEntry | None:
        self.calls.append({"method": "get_product", "id": product_id})
        return self.products.get(product_id)

    def get_bundle(self, bundle_id: str) -> CatalogEntry | None:
        self.calls.append({"method": "get_bundle", "id": bundle_id})
        return self.bundles.get(bundle_id)

    def reset(self) -> None:
        self.products.clear()
        self.bundles.clear()
        self.calls.clear()
