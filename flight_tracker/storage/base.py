"""
Flight store interface.

Both backends (in-memory and SQL) implement the same operations, so the rest
of the application never knows which one it is talking to. Records crossing
this boundary are always FlightRecord instances owned by the caller.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from flight_tracker.tracking.record import FlightRecord, FlightStatus, isoformat

# Default recency window for "recent_only" listings
RECENT_HOURS = 48

UPDATABLE_FIELDS = frozenset({
    'employee_name',
    'flight_number',
    'departure_time',
    'origin',
    'destination',
    'status',
    'status_details',
    'last_checked',
})


@dataclass
class StatusHistoryEntry:
    """One recorded resolution outcome."""
    flight_id: int
    status: FlightStatus
    checked_at: datetime
    status_details: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'flight_id': self.flight_id,
            'status': self.status.value,
            'status_details': self.status_details,
            'checked_at': isoformat(self.checked_at),
        }


def check_changes(changes: Dict[str, Any]) -> None:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f'Cannot update fields: {", ".join(sorted(unknown))}')


def recency_cutoff(now: datetime, hours: int) -> datetime:
    return now - timedelta(hours=hours)


class FlightStore(ABC):
    """CRUD and bulk operations over FlightRecord keyed by id."""

    backend_name = 'abstract'

    @abstractmethod
    def create(self, record: FlightRecord) -> FlightRecord:
        """Persist a new record and return it with id and timestamps set."""

    @abstractmethod
    def get(self, flight_id: int) -> Optional[FlightRecord]:
        """Return the record or None."""

    @abstractmethod
    def update(self, flight_id: int, **changes: Any) -> Optional[FlightRecord]:
        """
        Apply field changes and bump updated_at.

        Returns the updated record, or None if the id does not exist.
        Raises ValueError for fields that cannot be updated.
        """

    @abstractmethod
    def delete(self, flight_id: int) -> Optional[FlightRecord]:
        """Remove a record (and its history), returning what was removed."""

    @abstractmethod
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
        """
        List records ordered by departure time.

        flight_number is a substring match on the normalized number;
        origin/destination are exact matches; recent_only keeps flights
        departing within the last ``recent_hours`` (or later).
        """

    @abstractmethod
    def delete_departed_before(self, cutoff: datetime) -> int:
        """Remove records whose departure is older than cutoff."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored records."""

    @abstractmethod
    def status_counts(self) -> Dict[str, int]:
        """Record count per status value."""

    @abstractmethod
    def add_status_history(
        self,
        flight_id: int,
        status: FlightStatus,
        status_details: Dict[str, Any],
        checked_at: datetime,
    ) -> None:
        """Append one resolution outcome for a flight."""

    @abstractmethod
    def list_status_history(self, flight_id: int, limit: int = 50) -> List[StatusHistoryEntry]:
        """Newest-first resolution history for a flight."""
