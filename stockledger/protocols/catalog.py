"""
Product Catalog Protocol — display data for stock reports.

Stockledger only knows opaque product ids; the storefront catalog
implements this protocol to give them names.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ProductDisplay:
    """What reports show about a product."""

    product_id: str
    name: str
    brand: str | None = None
    image_url: str | None = None


@runtime_checkable
class ProductCatalog(Protocol):
    """
    Protocol for product display lookups.

    Implementations should return entries only for products they know;
    missing ids are rendered as "Unknown Product".
    """

    def get_products(self, product_ids: list[str]) -> dict[str, ProductDisplay]:
        """
        Look up display data for several products at once.

        Args:
            product_ids: Product ids to look up

        Returns:
            Dict[product_id, ProductDisplay]
        """
        ...
