"""
Stock reservations — hold, commit and release lifecycle.

Each per-row step runs in its own transaction.atomic() and changes stock
with a single conditional UPDATE (see StockRecordManager). A batch that
spans several rows is made all-or-nothing at the application level:
earlier holds are released again if a later one fails.
"""

import logging
import uuid
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from stockledger.conf import stockledger_settings
from stockledger.exceptions import StockLedgerError, storage_guard
from stockledger.models.enums import MoveType, ReferenceType, ReservationStatus
from stockledger.models.move import InventoryMove
from stockledger.models.reservation import Reservation
from stockledger.models.stock import StockRecord
from stockledger.results import (
    CommitResult,
    ItemShortfall,
    ReleaseResult,
    ReservationBatchResult,
    ReservationInfo,
    Requester,
    coerce_items,
)
from stockledger.services.availability import load_records, requested_totals

logger = logging.getLogger('stockledger')

RESERVE_REASON = 'Stock reserved for checkout'
COMMIT_REASON = 'Stock committed to order'
RELEASE_REASON = 'Reservation released'
EXPIRED_REASON = 'Reservation expired'
COMPENSATION_REASON = 'Batch reservation rolled back'


def _parse_reservation_id(value) -> uuid.UUID | None:
    """Return the UUID for ``value``, or None if it cannot be one of ours."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def _parse_unique(values) -> list[tuple]:
    """
    (raw id, UUID or None) pairs, first occurrence wins.

    Ids that parse are compared by UUID, so different spellings of one
    reservation collapse; the rest are compared by their string form.
    """
    seen = set()
    result = []
    for value in values:
        pk = _parse_reservation_id(value)
        key = pk if pk is not None else str(value)
        if key not in seen:
            seen.add(key)
            result.append((value, pk))
    return result


def _hold(record: StockRecord, item, requester: Requester, expires_at) -> Reservation | None:
    """Hold one line. Returns None if the row no longer has enough available."""
    with storage_guard('reserve_stock'), transaction.atomic():
        if not StockRecord.objects.try_reserve(record.pk, item.quantity):
            return None

        reservation = Reservation.objects.create(
            stock=record,
            product_id=item.product_id,
            size=item.size,
            quantity=item.quantity,
            session_id=requester.session_id or '',
            user_id=requester.user_id or '',
            expires_at=expires_at,
        )
        InventoryMove.objects.record(
            record,
            MoveType.RESERVE,
            -item.quantity,
            reason=RESERVE_REASON,
            reference_id=reservation.pk,
            reference_type=ReferenceType.RESERVATION,
            requester=requester,
        )
        return reservation


def _release_one(pk, reason: str) -> bool:
    """
    Release one reservation if it is still ACTIVE.

    Returns False when it was already committed, released or never existed.
    """
    with storage_guard('release_reservations'), transaction.atomic():
        reservation = (
            Reservation.objects.select_related('stock').filter(pk=pk).first()
        )
        if reservation is None or reservation.status != ReservationStatus.ACTIVE:
            return False

        if not Reservation.objects.claim(pk, ReservationStatus.RELEASED, reason=reason):
            return False

        released = reservation.quantity
        move_reason = reason
        if not StockRecord.objects.try_release(reservation.stock_id, reservation.quantity):
            # reserved_quantity drifted below what this hold accounts for
            released = StockRecord.objects.force_release(
                reservation.stock_id, reservation.quantity
            )
            move_reason = f"{reason} (clamped: {released} of {reservation.quantity})"
            logger.error(
                "stock.invariant.violation",
                extra={
                    "operation": "release",
                    "reservation_id": str(pk),
                    "stock_id": reservation.stock_id,
                    "qty": reservation.quantity,
                    "released": released,
                },
            )

        InventoryMove.objects.record(
            reservation.stock,
            MoveType.RELEASE,
            released,
            reason=move_reason,
            reference_id=pk,
            reference_type=ReferenceType.RESERVATION,
            requester=reservation.requester,
        )
        return True


def _commit_one(reservation: Reservation, order_id: str) -> bool:
    """
    Turn one reservation into a sale.

    Returns False if it was claimed by someone else or expired meanwhile.
    Raises INVARIANT_VIOLATION (rolling back the claim) if the stock row
    cannot absorb the sale.
    """
    with storage_guard('commit_reserved_stock'), transaction.atomic():
        claimed = Reservation.objects.claim(
            reservation.pk,
            ReservationStatus.COMMITTED,
            unexpired_only=True,
            order_id=order_id,
        )
        if not claimed:
            return False

        if not StockRecord.objects.try_commit(reservation.stock_id, reservation.quantity):
            logger.error(
                "stock.invariant.violation",
                extra={
                    "operation": "commit",
                    "reservation_id": str(reservation.pk),
                    "stock_id": reservation.stock_id,
                    "qty": reservation.quantity,
                },
            )
            raise StockLedgerError(
                'INVARIANT_VIOLATION',
                reservation_id=str(reservation.pk),
                product_id=reservation.product_id,
                size=reservation.size,
                requested=reservation.quantity,
            )

        InventoryMove.objects.record(
            reservation.stock,
            MoveType.COMMIT,
            -reservation.quantity,
            reason=COMMIT_REASON,
            reference_id=order_id,
            reference_type=ReferenceType.ORDER,
            requester=reservation.requester,
        )
        return True


class StockReservations:
    """Reservation lifecycle methods."""

    @classmethod
    def reserve_stock(cls, items, requester: Requester,
                      expiration_minutes: int | None = None) -> ReservationBatchResult:
        """
        Hold every line of ``items`` for ``requester``, or none of them.

        1. Pre-check all lines with one batch read (same-row lines summed).
        2. Hold line by line with an atomic conditional update.
        3. If a hold loses a race, release the holds already made.

        Returns:
            ReservationBatchResult. On failure ``error`` is
            INSUFFICIENT_STOCK (refused up front) or CONCURRENCY_CONFLICT
            (lost at write time; re-check and retry).

        Raises:
            StockLedgerError('INVALID_REQUESTER' | 'INVALID_QUANTITY')
            StockLedgerError('STORAGE_UNAVAILABLE'): holds already made in
                this batch are released before the error propagates
        """
        if not isinstance(requester, Requester):
            raise StockLedgerError('INVALID_REQUESTER', requester=requester)

        items = coerce_items(items)
        if not items:
            return ReservationBatchResult(success=True)

        ttl = expiration_minutes
        if ttl is None:
            ttl = stockledger_settings.RESERVATION_TTL_MINUTES
        if ttl <= 0:
            raise StockLedgerError('INVALID_QUANTITY', expiration_minutes=ttl)

        records = load_records(items)
        failures = []
        for (product_id, size), requested in requested_totals(items).items():
            record = records.get((product_id, size))
            available = record.available_quantity if record else 0
            if available < requested:
                failures.append(ItemShortfall(product_id, size, requested, available))

        if failures:
            logger.info(
                "stock.reservation.insufficient",
                extra={
                    "requester": str(requester),
                    "failures": [(f.product_id, f.size, f.shortfall) for f in failures],
                },
            )
            return ReservationBatchResult(
                success=False, failures=failures, error='INSUFFICIENT_STOCK'
            )

        expires_at = timezone.now() + timedelta(minutes=ttl)
        held = []
        for item in items:
            try:
                reservation = _hold(records[item.key], item, requester, expires_at)
            except Exception:
                cls._compensate(held)
                raise

            if reservation is None:
                cls._compensate(held)
                current = StockRecord.objects.get(pk=records[item.key].pk)
                logger.info(
                    "stock.reservation.conflict",
                    extra={
                        "requester": str(requester),
                        "product_id": item.product_id,
                        "size": item.size,
                        "qty": item.quantity,
                        "available": current.available_quantity,
                        "rolled_back": len(held),
                    },
                )
                return ReservationBatchResult(
                    success=False,
                    failures=[ItemShortfall(
                        item.product_id, item.size,
                        item.quantity, current.available_quantity,
                    )],
                    error='CONCURRENCY_CONFLICT',
                )
            held.append(reservation)

        logger.info(
            "stock.reservation.created",
            extra={
                "requester": str(requester),
                "reservation_ids": [str(r.pk) for r in held],
                "expires_at": expires_at.isoformat(),
            },
        )
        return ReservationBatchResult(
            success=True,
            reservations=[ReservationInfo.from_model(r) for r in held],
        )

    @classmethod
    def _compensate(cls, held: list[Reservation]) -> None:
        for reservation in reversed(held):
            _release_one(reservation.pk, COMPENSATION_REASON)

    @classmethod
    def commit_reserved_stock(cls, reservation_ids, order_id) -> CommitResult:
        """
        Convert reservations into a sale for ``order_id``.

        Every reservation must still be ACTIVE and before its deadline,
        otherwise nothing is committed and the result carries
        RESERVATION_EXPIRED with the offending ids; the caller has to
        reserve again. Lapsed holds seen here are released on the spot.

        Commit decrements quantity and reserved_quantity by the same amount,
        so available quantity is unchanged.

        Raises:
            StockLedgerError('PARTIAL_COMMIT'): some reservations of the batch
                were committed before another failed. Committed units are
                final; this needs operator reconciliation.
            StockLedgerError('INVARIANT_VIOLATION'): the stock row could not
                absorb the sale.
        """
        if not order_id:
            raise StockLedgerError('ORDER_REQUIRED')
        order_id = str(order_id)

        parsed = _parse_unique(reservation_ids)
        if not parsed:
            return CommitResult(success=False, order_id=order_id, error='RESERVATION_EXPIRED')

        with storage_guard('commit_reserved_stock'):
            found = {
                r.pk: r for r in Reservation.objects.select_related('stock').filter(
                    pk__in=[pk for _, pk in parsed if pk is not None]
                )
            }

        now = timezone.now()
        expired_ids = []
        lapsed = []
        for rid, pk in parsed:
            reservation = found.get(pk)
            if reservation is None or reservation.status != ReservationStatus.ACTIVE:
                expired_ids.append(str(rid))
            elif reservation.expires_at <= now:
                expired_ids.append(str(rid))
                lapsed.append(pk)

        if expired_ids:
            for pk in lapsed:
                _release_one(pk, EXPIRED_REASON)
            logger.info(
                "stock.commit.expired",
                extra={"order_id": order_id, "expired_ids": expired_ids},
            )
            return CommitResult(
                success=False,
                order_id=order_id,
                expired_ids=expired_ids,
                error='RESERVATION_EXPIRED',
            )

        committed = []
        for _, pk in parsed:
            try:
                ok = _commit_one(found[pk], order_id)
            except StockLedgerError as e:
                if committed:
                    cls._partial_commit(order_id, committed, parsed, pk, e.code)
                raise

            if not ok:
                if not committed:
                    logger.info(
                        "stock.commit.expired",
                        extra={"order_id": order_id, "expired_ids": [str(pk)]},
                    )
                    return CommitResult(
                        success=False,
                        order_id=order_id,
                        expired_ids=[str(pk)],
                        error='RESERVATION_EXPIRED',
                    )
                cls._partial_commit(order_id, committed, parsed, pk, 'RESERVATION_EXPIRED')
            committed.append(str(pk))

        logger.info(
            "stock.commit.completed",
            extra={"order_id": order_id, "reservation_ids": committed},
        )
        return CommitResult(success=True, order_id=order_id, committed_ids=committed)

    @classmethod
    def _partial_commit(cls, order_id, committed, parsed, failed_pk, cause):
        pending = [str(pk) for _, pk in parsed if str(pk) not in committed]
        logger.critical(
            "stock.commit.partial",
            extra={
                "order_id": order_id,
                "committed": committed,
                "failed": str(failed_pk),
                "pending": pending,
                "cause": cause,
            },
        )
        raise StockLedgerError(
            'PARTIAL_COMMIT',
            order_id=order_id,
            committed=committed,
            failed=str(failed_pk),
            pending=pending,
            cause=cause,
        )

    @classmethod
    def release_reservations(cls, reservation_ids, reason: str = RELEASE_REASON) -> ReleaseResult:
        """
        Release holds and return their units to availability.

        Idempotent: ids that are unknown, already committed or already
        released are skipped, never reported as errors. Safe to race with
        the sweeper, a user cancel or a retry of the same call.
        """
        if not reason:
            raise StockLedgerError('REASON_REQUIRED')

        released = []
        skipped = []
        for rid, pk in _parse_unique(reservation_ids):
            if pk is not None and _release_one(pk, reason):
                released.append(str(pk))
            else:
                skipped.append(str(rid))

        if released:
            logger.info(
                "stock.reservation.released",
                extra={"released": released, "reason": reason},
            )
        if skipped:
            logger.debug(
                "stock.reservation.release_skipped",
                extra={"skipped": skipped},
            )
        return ReleaseResult(released_ids=released, skipped_ids=skipped)
