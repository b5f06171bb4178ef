"""
Status updater - keeps stored flights in sync with the provider.

Responsibilities:
1. Refresh: resolve one flight and write the outcome back
2. Sweep: refresh every flight that is still worth monitoring
3. Cleanup: drop flights past the retention window
4. Background: run sweep and cleanup on fixed intervals

Provider calls are strictly sequential with a fixed pause between them; this
caps throughput to stay under the provider's rate limit. A manual refresh can
race a running sweep on the same record - the last write to the store wins.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from flight_tracker.config import config
from flight_tracker.services.flightaware import ProviderAuthError, ProviderError, ProviderRateLimitError
from flight_tracker.services.status_resolver import StatusResolver
from flight_tracker.storage.base import FlightStore
from flight_tracker.tracking.eligibility import should_monitor
from flight_tracker.tracking.record import FlightRecord, FlightStatus, utcnow

logger = logging.getLogger(__name__)

FATAL_PROVIDER_ERRORS = (ProviderAuthError, ProviderRateLimitError)


class StatusUpdater:
    """
    Coordinates status resolution for stored flights.

    Can run sweep and cleanup loops on background threads; single refreshes
    and initial checks for new flights are available on demand.
    """

    def __init__(
        self,
        store: FlightStore,
        resolver: StatusResolver,
        request_delay: Optional[float] = None,
        update_interval: Optional[float] = None,
        cleanup_interval: Optional[float] = None,
        retention_hours: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the updater.

        Args:
            store: Flight persistence backend
            resolver: Status resolver (real provider or mock)
            request_delay: Seconds to pause between provider calls
            update_interval: Seconds between sweeps
            cleanup_interval: Seconds between retention cleanups
            retention_hours: Age (by departure) after which flights are removed
            sleep: Pause function, replaceable for tests
        """
        self.store = store
        self.resolver = resolver
        self.request_delay = (
            config.scheduler.request_delay_seconds if request_delay is None else request_delay
        )
        self.update_interval = (
            config.scheduler.update_interval_minutes * 60 if update_interval is None else update_interval
        )
        self.cleanup_interval = (
            config.scheduler.cleanup_interval_minutes * 60 if cleanup_interval is None else cleanup_interval
        )
        self.retention_hours = config.retention.hours if retention_hours is None else retention_hours
        self._sleep = sleep

        # One worker keeps initial checks sequential
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='initial-check')

        # State tracking
        self._stop_event = threading.Event()
        self._stats_lock = threading.Lock()
        self._threads: List[threading.Thread] = []
        self._sweep_count = 0
        self._refresh_count = 0
        self._error_count = 0
        self._last_sweep_time: Optional[datetime] = None
        self._last_cleanup_time: Optional[datetime] = None
        self._last_error: Optional[str] = None

    # -------------------------------------------------------------------------
    # Single flight
    # -------------------------------------------------------------------------

    def refresh_flight(self, flight_id: int) -> Optional[FlightRecord]:
        """
        Resolve one flight's status and store the outcome.

        Returns the updated record, or None if the flight does not exist.

        Raises:
            ProviderAuthError, ProviderRateLimitError: after marking the
                record as errored; these affect every flight, so the caller
                must see them
        """
        record = self.store.get(flight_id)
        if record is None:
            logger.error(f'Flight {flight_id} not found')
            return None

        self.store.update(flight_id, status=FlightStatus.CHECKING)
        with self._stats_lock:
            self._refresh_count += 1

        try:
            resolution = self.resolver.resolve(record.flight_number, record.departure_time)
        except FATAL_PROVIDER_ERRORS as e:
            self._record_failure(flight_id, record, e)
            raise
        except ProviderError as e:
            return self._record_failure(flight_id, record, e)

        now = utcnow()
        updated = self.store.update(
            flight_id,
            status=resolution.status,
            status_details=resolution.details,
            last_checked=now,
        )
        self.store.add_status_history(flight_id, resolution.status, resolution.details, now)

        logger.info(f'Updated flight {record.flight_number}: {resolution.status.value}')
        return updated

    def _record_failure(
        self,
        flight_id: int,
        record: FlightRecord,
        error: Exception,
    ) -> Optional[FlightRecord]:
        with self._stats_lock:
            self._error_count += 1
        logger.error(f'Error updating flight {record.flight_number}: {error}')

        now = utcnow()
        details = {'message': str(error)}
        updated = self.store.update(
            flight_id,
            status=FlightStatus.ERROR,
            status_details=details,
            last_checked=now,
        )
        self.store.add_status_history(flight_id, FlightStatus.ERROR, details, now)
        return updated

    # -------------------------------------------------------------------------
    # Sweep
    # -------------------------------------------------------------------------

    def build_work_list(self, now: Optional[datetime] = None) -> List[FlightRecord]:
        """Stored flights that are still worth polling."""
        now = now or utcnow()
        return [record for record in self.store.list() if should_monitor(record, now)]

    def _refresh_sequentially(self, flight_ids: Iterable[int]) -> int:
        processed = 0
        for flight_id in flight_ids:
            if processed and self.request_delay > 0:
                self._sleep(self.request_delay)
            self.refresh_flight(flight_id)
            processed += 1
        return processed

    def run_sweep(self) -> int:
        """
        Refresh every eligible flight, one at a time.

        Returns the number of flights processed.

        Raises:
            ProviderAuthError, ProviderRateLimitError: remaining flights in
                this sweep are skipped
        """
        work_list = self.build_work_list()
        logger.info(f'Starting status update for {len(work_list)} flights')

        try:
            processed = self._refresh_sequentially(record.id for record in work_list)
        except FATAL_PROVIDER_ERRORS as e:
            self._last_error = str(e)
            logger.error(f'Status update aborted: {e}')
            raise
        finally:
            self._last_sweep_time = utcnow()

        with self._stats_lock:
            self._sweep_count += 1
        self._last_error = None
        logger.info(f'Status update complete ({processed} flights)')
        return processed

    def schedule_refresh(self, flight_ids: Iterable[int]) -> Future:
        """
        Queue initial checks for newly added flights.

        Runs on a single background worker so uploads never fan out into
        parallel provider calls.
        """
        ids = list(flight_ids)
        future = self._executor.submit(self._refresh_sequentially, ids)
        future.add_done_callback(self._log_initial_check_failure)
        return future

    def _log_initial_check_failure(self, future: Future) -> None:
        error = future.exception()
        if error is not None:
            self._last_error = str(error)
            logger.error(f'Initial status check stopped: {error}')

    # -------------------------------------------------------------------------
    # Retention
    # -------------------------------------------------------------------------

    def cleanup_expired(self, now: Optional[datetime] = None) -> int:
        """Remove flights that departed more than retention_hours ago."""
        now = now or utcnow()
        removed = self.store.delete_departed_before(now - timedelta(hours=self.retention_hours))
        self._last_cleanup_time = now

        if removed:
            logger.info(f'Cleaned up {removed} old flights')
        return removed

    # -------------------------------------------------------------------------
    # Background loops
    # -------------------------------------------------------------------------

    def _run_loop(self, name: str, task: Callable[[], object], interval: float) -> None:
        logger.info(f'Starting {name} loop (interval={interval}s)')

        while not self._stop_event.wait(interval):
            try:
                task()
            except ProviderAuthError as e:
                logger.error(f'{name} failed - check FLIGHTAWARE_API_KEY: {e}')
            except ProviderRateLimitError as e:
                logger.warning(f'{name} backing off until next cycle: {e}')
            except Exception as e:
                self._last_error = str(e)
                logger.exception(f'{name} error: {e}')

        logger.info(f'{name} loop stopped')

    def start_background(self) -> None:
        """Start sweep and cleanup loops on daemon threads."""
        if any(thread.is_alive() for thread in self._threads):
            logger.warning('Status updater already running')
            return

        self._stop_event.clear()
        self._threads = [
            threading.Thread(
                target=self._run_loop,
                args=('status update', self.run_sweep, self.update_interval),
                name='status-update',
                daemon=True,
            ),
            threading.Thread(
                target=self._run_loop,
                args=('cleanup', self.cleanup_expired, self.cleanup_interval),
                name='cleanup',
                daemon=True,
            ),
        ]
        for thread in self._threads:
            thread.start()
        logger.info('Background status updates started')

    def stop(self) -> None:
        """Stop background loops and the initial-check worker."""
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout=5)
        self._executor.shutdown(wait=False)
        logger.info('Status updater stopped')

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    @property
    def stats(self) -> dict:
        """Get updater statistics."""
        return {
            'running': self.running,
            'mock_mode': self.resolver.mock_mode,
            'sweep_count': self._sweep_count,
            'refresh_count': self._refresh_count,
            'error_count': self._error_count,
            'last_sweep_time': self._last_sweep_time.isoformat() if self._last_sweep_time else None,
            'last_cleanup_time': self._last_cleanup_time.isoformat() if self._last_cleanup_time else None,
            'last_error': self._last_error,
            'update_interval_seconds': self.update_interval,
            'request_delay_seconds': self.request_delay,
        }
