"""
Tests for the expiration sweep.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from stockledger import ledger, Requester
from stockledger.models import InventoryMove, MoveType, Reservation, ReservationStatus
from stockledger.services import ExpirationSweeper, StockReservations, SweepTracker


pytestmark = pytest.mark.django_db


class TestSweep:

    def test_sweep_releases_expired(self, p1, session, expire):
        reserved = ledger.reserve_stock([('P1', '10', 3)], session)
        expire(*reserved.reservation_ids)

        result = ledger.sweep()

        assert result.released_count == 1
        p1.refresh_from_db()
        assert p1.reserved_quantity == 0
        reservation = Reservation.objects.get(pk=reserved.reservation_ids[0])
        assert reservation.status == ReservationStatus.RELEASED
        assert reservation.reason == 'Reservation expired'

    def test_sweep_keeps_live_holds(self, p1, session, other_session, expire):
        live = ledger.reserve_stock([('P1', '10', 2)], session)
        stale = ledger.reserve_stock([('P1', '10', 1)], other_session)
        expire(*stale.reservation_ids)

        result = ledger.sweep()

        assert result.released_count == 1
        assert Reservation.objects.get(pk=live.reservation_ids[0]).status == ReservationStatus.ACTIVE
        p1.refresh_from_db()
        assert p1.reserved_quantity == 2

    def test_sweep_after_15_minutes(self, p1, session, monkeypatch):
        """A 15 minute hold is released by a sweep running 16 minutes later."""
        reserved = ledger.reserve_stock([('P1', '10', 3)], session, expiration_minutes=15)
        later = timezone.now() + timedelta(minutes=16)
        monkeypatch.setattr(timezone, 'now', lambda: later)

        assert ledger.sweep().released_count == 1
        p1.refresh_from_db()
        assert p1.reserved_quantity == 0
        assert not ledger.commit_reserved_stock(reserved.reservation_ids, 'O1').success

    def test_commit_after_15_minutes_without_sweep(self, p1, session, monkeypatch):
        reserved = ledger.reserve_stock([('P1', '10', 3)], session, expiration_minutes=15)
        later = timezone.now() + timedelta(minutes=16)
        monkeypatch.setattr(timezone, 'now', lambda: later)

        result = ledger.commit_reserved_stock(reserved.reservation_ids, 'O1')

        assert result.error == 'RESERVATION_EXPIRED'
        p1.refresh_from_db()
        assert p1.quantity == 5

    def test_sweep_before_deadline_releases_nothing(self, p1, session, monkeypatch):
        ledger.reserve_stock([('P1', '10', 3)], session, expiration_minutes=15)
        later = timezone.now() + timedelta(minutes=14)
        monkeypatch.setattr(timezone, 'now', lambda: later)

        assert ledger.sweep().released_count == 0

    def test_sweep_in_batches(self, p1, expire):
        ids = []
        for i in range(5):
            ids += ledger.reserve_stock([('P1', '10', 1)], Requester.session(f'S{i}')).reservation_ids
        expire(*ids)

        result = ExpirationSweeper(batch_size=2).sweep()

        assert result.released_count == 5
        p1.refresh_from_db()
        assert p1.reserved_quantity == 0

    def test_sweep_nothing_to_do(self, db):
        assert ledger.sweep().released_count == 0

    def test_overlapping_release_not_double_credited(self, p1, session, expire, monkeypatch):
        """A user cancel that lands between the sweep's query and its release."""
        reserved = ledger.reserve_stock([('P1', '10', 3)], session)
        expire(*reserved.reservation_ids)
        sweeper = ExpirationSweeper()
        original = ExpirationSweeper.expired_ids

        def cancel_in_between(self, limit, exclude=()):
            batch = original(self, limit, exclude)
            if batch:
                StockReservations.release_reservations(batch, reason='Cancelled by user')
            return batch

        monkeypatch.setattr(ExpirationSweeper, 'expired_ids', cancel_in_between)

        result = sweeper.sweep()

        assert result.released_count == 0
        p1.refresh_from_db()
        assert p1.reserved_quantity == 0
        assert InventoryMove.objects.filter(move_type=MoveType.RELEASE).count() == 1

    def test_sweep_twice(self, p1, session, expire):
        reserved = ledger.reserve_stock([('P1', '10', 3)], session)
        expire(*reserved.reservation_ids)

        assert ledger.sweep().released_count == 1
        assert ledger.sweep().released_count == 0


class TestSweepTracker:

    def test_tracks_runs(self, p1, session, expire):
        tracker = SweepTracker()
        reserved = ledger.reserve_stock([('P1', '10', 3)], session)
        expire(*reserved.reservation_ids)

        ledger.sweep(tracker=tracker)
        ledger.sweep(tracker=tracker)

        assert len(tracker.runs) == 2
        assert not tracker.is_running
        assert tracker.runs[0].released_count == 1
        assert tracker.last_run.released_count == 0
        assert tracker.last_run.finished_at is not None
        assert tracker.total_released == 1

    def test_history_is_bounded(self, db):
        tracker = SweepTracker(history_size=3)
        sweeper = ExpirationSweeper(tracker=tracker)

        for _ in range(5):
            sweeper.sweep()

        assert len(tracker.runs) == 3

    def test_failed_run_is_recorded(self, db, monkeypatch):
        tracker = SweepTracker()

        def boom(self, limit, exclude=()):
            raise RuntimeError('boom')

        monkeypatch.setattr(ExpirationSweeper, 'expired_ids', boom)

        with pytest.raises(RuntimeError):
            ExpirationSweeper(tracker=tracker).sweep()

        assert not tracker.is_running
        assert tracker.last_run.error == 'boom'

    def test_start_stop(self):
        tracker = SweepTracker()

        run = tracker.start()
        assert tracker.is_running

        tracker.stop(run, released_count=4)
        assert not tracker.is_running
        assert run.released_count == 4
