"""
Product catalog loader.

Loads the configured ProductCatalog from settings.

Usage:
    from stockledger.adapters import get_product_catalog

    catalog = get_product_catalog()
    names = catalog.get_products(["P1", "P2"])

Settings:
    STOCKLEDGER = {
        "PRODUCT_CATALOG": "shop.adapters.CatalogDisplay",
    }
"""

from __future__ import annotations

import logging
import threading

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from stockledger.conf import stockledger_settings
from stockledger.protocols.catalog import ProductCatalog

logger = logging.getLogger(__name__)


# Cached catalog instance
_lock = threading.Lock()
_product_catalog: ProductCatalog | None = None


def get_product_catalog() -> ProductCatalog:
    """
    Return the configured product catalog.

    Raises:
        ImproperlyConfigured: If PRODUCT_CATALOG is empty, cannot be
            imported, or does not implement ProductCatalog
    """
    global _product_catalog

    if _product_catalog is None:
        with _lock:
            if _product_catalog is None:  # double-checked
                catalog_path = stockledger_settings.PRODUCT_CATALOG

                if not catalog_path:
                    raise ImproperlyConfigured(
                        "STOCKLEDGER['PRODUCT_CATALOG'] must be configured. "
                        "Example: 'stockledger.adapters.noop.NoopProductCatalog'"
                    )

                try:
                    catalog_class = import_string(catalog_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import product catalog '{catalog_path}': {e}"
                    ) from e

                catalog = catalog_class()
                if not isinstance(catalog, ProductCatalog):
                    raise ImproperlyConfigured(
                        f"'{catalog_path}' does not implement ProductCatalog"
                    )
                _product_catalog = catalog
                logger.debug("Loaded product catalog: %s", catalog_path)

    return _product_catalog


def reset_product_catalog() -> None:
    """Reset the cached catalog. Useful for testing."""
    global _product_catalog
    _product_catalog = None
