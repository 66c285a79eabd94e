"""
Stockledger configuration.

Usage in settings.py:
    STOCKLEDGER = {
        "RESERVATION_TTL_MINUTES": 15,
        "EXPIRED_BATCH_SIZE": 200,
        "LOW_STOCK_THRESHOLD": 5,
        "PRODUCT_CATALOG": "shop.adapters.CatalogDisplay",
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class StockledgerSettings:
    """Stockledger configuration settings."""

    # Default reservation lifetime in minutes
    RESERVATION_TTL_MINUTES: int = 15

    # Batch size for sweep processing
    EXPIRED_BATCH_SIZE: int = 200

    # Default threshold for low stock reports (available <= threshold)
    LOW_STOCK_THRESHOLD: int = 5

    # Product display data backend (dotted path)
    PRODUCT_CATALOG: str = "stockledger.adapters.noop.NoopProductCatalog"

    # Default number of moves returned by history queries
    HISTORY_LIMIT: int = 50


def get_stockledger_settings() -> StockledgerSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STOCKLEDGER", {})
    return StockledgerSettings(**{
        k: v for k, v in user_settings.items()
        if k in StockledgerSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_stockledger_settings(), name)


stockledger_settings = _LazySettings()
