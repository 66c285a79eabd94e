"""
Noop Product Catalog — Stub adapter for development and testing.

Knows no products, so every report row reads "Unknown Product".

Usage in settings.py:
    STOCKLEDGER = {
        "PRODUCT_CATALOG": "stockledger.adapters.noop.NoopProductCatalog",
    }
"""

from __future__ import annotations

from stockledger.protocols.catalog import ProductDisplay


class NoopProductCatalog:
    """No-operation catalog. Implements ``ProductCatalog`` with no data."""

    def get_products(self, product_ids: list[str]) -> dict[str, ProductDisplay]:
        return {}
