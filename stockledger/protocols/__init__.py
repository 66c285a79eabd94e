"""
Stockledger Protocols.

Defines interfaces for external system integration.
"""

from stockledger.protocols.catalog import ProductCatalog, ProductDisplay

__all__ = [
    "ProductCatalog",
    "ProductDisplay",
]
