"""
Exceptions for Stockledger.

All errors are StockLedgerError with a structured code for programmatic handling.

Expected business outcomes (INSUFFICIENT_STOCK, CONCURRENCY_CONFLICT,
RESERVATION_EXPIRED) are normally returned inside result objects; the
same codes are reused there so callers branch on one vocabulary.
"""

from contextlib import contextmanager
from typing import Any

from django.db import InterfaceError, OperationalError


class BaseError(Exception):
    """
    Exception carrying a code, a human-readable message and context data.

    Subclasses provide ``_default_messages`` keyed by code.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, data={self.data!r})"


class StockLedgerError(BaseError):
    """
    Structured exception for stock ledger operations.

    Usage:
        try:
            ledger.adjust_stock('P1', '10', -5, reason='Damaged')
        except StockLedgerError as e:
            if e.code == 'INSUFFICIENT_STOCK':
                print(f"Only {e.available} can be removed")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'INSUFFICIENT_STOCK': 'Requested quantity is not available',
        'RESERVATION_EXPIRED': 'Reservation is no longer active',
        'CONCURRENCY_CONFLICT': 'Stock changed while the request was processed',
        'STORAGE_UNAVAILABLE': 'Stock storage is unavailable',
        'INVARIANT_VIOLATION': 'Stock invariant would be violated',
        'PARTIAL_COMMIT': 'Reservations were only partially committed',
        'INVALID_QUANTITY': 'Invalid quantity (must be positive)',
        'INVALID_REQUESTER': 'Exactly one of session_id or user_id is required',
        'REASON_REQUIRED': 'Reason is required',
        'ORDER_REQUIRED': 'Order id is required to commit reservations',
    }

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        """Shortcut for data['requested']."""
        return self.data.get('requested', 0)

    @property
    def retryable(self) -> bool:
        """Whether the caller may retry the operation as-is."""
        return self.code in ('STORAGE_UNAVAILABLE', 'CONCURRENCY_CONFLICT')

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if not isinstance(v, (int, str, list, type(None))) else v
                for k, v in self.data.items()
            }
        }


@contextmanager
def storage_guard(operation: str):
    """
    Translate database connectivity failures into STORAGE_UNAVAILABLE.

    Nothing is retried here; the caller decides on backoff.
    """
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        raise StockLedgerError(
            'STORAGE_UNAVAILABLE', operation=operation, detail=str(e)
        ) from e
