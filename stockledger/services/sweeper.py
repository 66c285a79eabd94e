"""
Expiration sweep — release ACTIVE reservations past their deadline.

Usage:
    from stockledger.services.sweeper import ExpirationSweeper, SweepTracker

    tracker = SweepTracker()
    sweeper = ExpirationSweeper(tracker=tracker)

    # Run periodically (celery beat, cron, management command)
    result = sweeper.sweep()

Concurrency:
    - Overlapping sweeps, user cancels and retries may target the same ids
    - Each reservation is claimed by a conditional update before its units
      are returned, so it is credited at most once
"""

import logging
import threading
from dataclasses import dataclass

from django.utils import timezone

from stockledger.conf import stockledger_settings
from stockledger.exceptions import storage_guard
from stockledger.models.reservation import Reservation
from stockledger.results import SweepResult
from stockledger.services.reservations import EXPIRED_REASON, StockReservations

logger = logging.getLogger('stockledger')


@dataclass
class SweepRun:
    started_at: object
    finished_at: object = None
    released_count: int = 0
    error: str | None = None


class SweepTracker:
    """
    Bookkeeping for sweep runs, owned by whoever schedules the sweeps.

    start()/stop() bracket each run. Overlapping runs are allowed and
    counted; nothing here prevents a run.
    """

    def __init__(self, history_size: int = 20):
        self._lock = threading.Lock()
        self._running = 0
        self._history_size = history_size
        self.runs: list[SweepRun] = []

    def start(self) -> SweepRun:
        run = SweepRun(started_at=timezone.now())
        with self._lock:
            self._running += 1
            self.runs.append(run)
            del self.runs[:-self._history_size]
        return run

    def stop(self, run: SweepRun, released_count: int = 0, error: str | None = None) -> None:
        with self._lock:
            run.finished_at = timezone.now()
            run.released_count = released_count
            run.error = error
            self._running -= 1

    @property
    def is_running(self) -> bool:
        return self._running > 0

    @property
    def last_run(self) -> SweepRun | None:
        return self.runs[-1] if self.runs else None

    @property
    def total_released(self) -> int:
        return sum(run.released_count for run in self.runs)


class ExpirationSweeper:
    """Releases expired reservations in batches."""

    def __init__(self, tracker: SweepTracker | None = None, batch_size: int | None = None):
        self.tracker = tracker
        self.batch_size = batch_size

    def expired_ids(self, limit: int, exclude=()) -> list:
        with storage_guard('sweep'):
            qs = Reservation.objects.expired()
            if exclude:
                qs = qs.exclude(pk__in=exclude)
            return list(qs.order_by('expires_at').values_list('pk', flat=True)[:limit])

    def sweep(self) -> SweepResult:
        """
        Release every ACTIVE reservation with expires_at < now.

        Returns:
            SweepResult with the number of reservations this run released
            (ids released concurrently by someone else are not counted)
        """
        started_at = timezone.now()
        batch_size = self.batch_size or stockledger_settings.EXPIRED_BATCH_SIZE
        run = self.tracker.start() if self.tracker else None

        total = 0
        seen = set()
        try:
            while True:
                batch = self.expired_ids(batch_size, exclude=seen)
                if not batch:
                    break
                seen.update(batch)
                result = StockReservations.release_reservations(batch, reason=EXPIRED_REASON)
                total += result.released_count
        except Exception as e:
            if run:
                self.tracker.stop(run, released_count=total, error=str(e))
            raise

        if run:
            self.tracker.stop(run, released_count=total)
        if total:
            logger.info(
                "stock.reservations.expired_released",
                extra={"released": total},
            )
        return SweepResult(
            released_count=total,
            started_at=started_at,
            finished_at=timezone.now(),
        )
