"""
Value objects passed in and out of the ledger.

Inputs (StockItem, Requester) are validated on construction; outputs are
plain frozen dataclasses so callers can branch on them without touching
the ORM.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from stockledger.exceptions import StockLedgerError


@dataclass(frozen=True)
class StockItem:
    """A requested (product, size, quantity) line."""

    product_id: str
    size: str
    quantity: int

    def __post_init__(self):
        if self.quantity <= 0:
            raise StockLedgerError(
                'INVALID_QUANTITY',
                product_id=self.product_id,
                size=self.size,
                requested=self.quantity,
            )

    @property
    def key(self) -> tuple[str, str]:
        return (self.product_id, self.size)

    @classmethod
    def coerce(cls, item) -> StockItem:
        """Accept a StockItem or a (product_id, size, quantity) tuple."""
        if isinstance(item, cls):
            return item
        product_id, size, quantity = item
        return cls(str(product_id), str(size), int(quantity))


def coerce_items(items: Iterable) -> list[StockItem]:
    return [StockItem.coerce(item) for item in items]


@dataclass(frozen=True)
class Requester:
    """
    Who holds a reservation: an anonymous session or a signed-in user.

    Exactly one of the two ids is set.
    """

    session_id: str | None = None
    user_id: str | None = None

    def __post_init__(self):
        if bool(self.session_id) == bool(self.user_id):
            raise StockLedgerError(
                'INVALID_REQUESTER',
                session_id=self.session_id,
                user_id=self.user_id,
            )

    @classmethod
    def session(cls, session_id) -> Requester:
        return cls(session_id=str(session_id))

    @classmethod
    def user(cls, user_id) -> Requester:
        return cls(user_id=str(user_id))

    def __str__(self) -> str:
        if self.user_id:
            return f"user:{self.user_id}"
        return f"session:{self.session_id}"


@dataclass(frozen=True)
class AvailabilityResult:
    """Availability of one requested line."""

    product_id: str
    size: str
    requested: int
    quantity: int
    reserved_quantity: int
    available_quantity: int
    is_available: bool


@dataclass(frozen=True)
class ItemShortfall:
    """A line that could not be held, and by how much it fell short."""

    product_id: str
    size: str
    requested: int
    available: int

    @property
    def shortfall(self) -> int:
        return max(self.requested - self.available, 0)


@dataclass(frozen=True)
class ReservationInfo:
    """Read-only snapshot of a reservation."""

    id: str
    product_id: str
    size: str
    quantity: int
    session_id: str | None
    user_id: str | None
    order_id: str | None
    status: str
    expires_at: datetime
    created_at: datetime

    @classmethod
    def from_model(cls, reservation) -> ReservationInfo:
        return cls(
            id=str(reservation.pk),
            product_id=reservation.product_id,
            size=reservation.size,
            quantity=reservation.quantity,
            session_id=reservation.session_id or None,
            user_id=reservation.user_id or None,
            order_id=reservation.order_id or None,
            status=reservation.status,
            expires_at=reservation.expires_at,
            created_at=reservation.created_at,
        )


@dataclass(frozen=True)
class ReservationBatchResult:
    """
    Outcome of reserve_stock.

    On failure ``error`` is INSUFFICIENT_STOCK (the pre-check refused the
    batch) or CONCURRENCY_CONFLICT (a hold lost the race at write time),
    ``failures`` lists the shortfalls and no reservation of the batch
    remains active.
    """

    success: bool
    reservations: list[ReservationInfo] = field(default_factory=list)
    failures: list[ItemShortfall] = field(default_factory=list)
    error: str | None = None

    @property
    def reservation_ids(self) -> list[str]:
        return [r.id for r in self.reservations]

    @property
    def messages(self) -> list[str]:
        return [
            f"{f.product_id}/{f.size} not available "
            f"(requested: {f.requested}, available: {f.available})"
            for f in self.failures
        ]


@dataclass(frozen=True)
class CommitResult:
    """Outcome of commit_reserved_stock."""

    success: bool
    order_id: str
    committed_ids: list[str] = field(default_factory=list)
    expired_ids: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass(frozen=True)
class ReleaseResult:
    """Outcome of release_reservations. Skipped ids were already terminal or unknown."""

    released_ids: list[str] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return True

    @property
    def released_count(self) -> int:
        return len(self.released_ids)


@dataclass(frozen=True)
class SweepResult:
    released_count: int
    started_at: datetime
    finished_at: datetime


@dataclass(frozen=True)
class StockLevel:
    product_id: str
    size: str
    quantity: int
    reserved_quantity: int
    available_quantity: int


@dataclass(frozen=True)
class LowStockItem:
    product_id: str
    product_name: str
    size: str
    quantity: int
    reserved_quantity: int
    available_quantity: int


@dataclass(frozen=True)
class ReconciliationReport:
    """Comparison between a record's cached counters and its ledger."""

    product_id: str
    size: str
    quantity: int
    expected_quantity: int
    reserved_quantity: int
    expected_reserved: int
    active_reserved: int
    fixed: bool = False

    @property
    def is_consistent(self) -> bool:
        return (
            self.quantity == self.expected_quantity
            and self.reserved_quantity == self.expected_reserved
            and self.reserved_quantity == self.active_reserved
        )
