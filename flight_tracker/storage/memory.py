"""
In-memory flight store.

Used when no database is configured. Thread-safe for the web workers and the
background updater; every read hands out a copy so callers never mutate
stored state behind the lock.
"""

import itertools
import logging
import threading
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from flight_tracker.storage.base import (
    RECENT_HOURS,
    FlightStore,
    StatusHistoryEntry,
    check_changes,
    recency_cutoff,
)
from flight_tracker.tracking.record import (
    FlightRecord,
    FlightStatus,
    normalize_airport,
    normalize_flight_number,
    utcnow,
)

logger = logging.getLogger(__name__)


class MemoryFlightStore(FlightStore):
    """Dict-backed store with a monotonic id counter."""

    backend_name = 'memory'

    def __init__(self):
        self._flights: Dict[int, FlightRecord] = {}
        self._history: Dict[int, List[StatusHistoryEntry]] = {}
        self._ids = itertools.count(1)
        self._history_ids = itertools.count(1)
        self._lock = threading.RLock()

    def create(self, record: FlightRecord) -> FlightRecord:
        now = utcnow()
        with self._lock:
            stored = record.copy()
            stored.id = next(self._ids)
            stored.created_at = stored.created_at or now
            stored.updated_at = stored.updated_at or now
            self._flights[stored.id] = stored
            return stored.copy()

    def get(self, flight_id: int) -> Optional[FlightRecord]:
        with self._lock:
            record = self._flights.get(flight_id)
            return record.copy() if record else None

    def update(self, flight_id: int, **changes: Any) -> Optional[FlightRecord]:
        check_changes(changes)
        with self._lock:
            record = self._flights.get(flight_id)
            if record is None:
                return None
            for key, value in changes.items():
                if key == 'status':
                    value = FlightStatus.coerce(value)
                elif key == 'status_details':
                    value = dict(value or {})
                setattr(record, key, value)
            record.updated_at = utcnow()
            return record.copy()

    def delete(self, flight_id: int) -> Optional[FlightRecord]:
        with self._lock:
            record = self._flights.pop(flight_id, None)
            self._history.pop(flight_id, None)
            return record

    def list(
        self,
        status: Optional[FlightStatus] = None,
        flight_number: Optional[str] = None,
        origin: Optional[str] = None,
        destination: Optional[str] = None,
        recent_only: bool = False,
        recent_hours: int = RECENT_HOURS,
        limit: Optional[int] = None,
    ) -> List[FlightRecord]:
        needle = normalize_flight_number(flight_number) if flight_number else None
        origin = normalize_airport(origin)
        destination = normalize_airport(destination)
        cutoff = recency_cutoff(utcnow(), recent_hours) if recent_only else None

        with self._lock:
            records = [r.copy() for r in self._flights.values()]

        result = []
        for record in records:
            if status is not None and record.status != status:
                continue
            if needle and needle not in record.flight_number:
                continue
            if origin and record.origin != origin:
                continue
            if destination and record.destination != destination:
                continue
            if cutoff and record.departure_time < cutoff:
                continue
            result.append(record)

        result.sort(key=lambda r: (r.departure_time, r.id))
        if limit is not None:
            result = result[:limit]
        return result

    def delete_departed_before(self, cutoff: datetime) -> int:
        with self._lock:
            expired = [fid for fid, r in self._flights.items() if r.departure_time < cutoff]
            for flight_id in expired:
                del self._flights[flight_id]
                self._history.pop(flight_id, None)
        return len(expired)

    def count(self) -> int:
        with self._lock:
            return len(self._flights)

    def status_counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(Counter(r.status.value for r in self._flights.values()))

    def add_status_history(
        self,
        flight_id: int,
        status: FlightStatus,
        status_details: Dict[str, Any],
        checked_at: datetime,
    ) -> None:
        with self._lock:
            if flight_id not in self._flights:
                logger.debug(f'Skipping history for removed flight {flight_id}')
                return
            entry = StatusHistoryEntry(
                id=next(self._history_ids),
                flight_id=flight_id,
                status=status,
                status_details=dict(status_details),
                checked_at=checked_at,
            )
            self._history.setdefault(flight_id, []).append(entry)

    def list_status_history(self, flight_id: int, limit: int = 50) -> List[StatusHistoryEntry]:
        with self._lock:
            entries = list(self._history.get(flight_id, []))
        entries.reverse()
        return entries[:limit]
