"""
FlightRecord - the unit of tracking.

One record per employee flight. Records are created from manual entry or a
spreadsheet row, rewritten by every status resolution, and removed by delete
requests or the retention sweep.

Field names are snake_case everywhere inside the package. Older clients and
stored payloads may use camelCase (employeeName, statusDetails, ...), so
``FlightRecord.from_mapping`` normalizes keys once at the boundary and the
rest of the code only ever sees one shape.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')
_WHITESPACE = re.compile(r'\s+')


class FlightStatus(str, Enum):
    """
    Classification produced by one status resolution.

    CHECKING is transient: it is written just before a resolution attempt
    starts and replaced by one of the other kinds when it finishes.
    """
    ON_TIME = 'on-time'
    DELAYED = 'delayed'
    CANCELLED = 'cancelled'
    CHECKING = 'checking'
    ERROR = 'error'
    UNKNOWN = 'unknown'

    @classmethod
    def coerce(cls, value: Any) -> 'FlightStatus':
        """Return a FlightStatus for a stored value, UNKNOWN if unrecognized."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class ValidationError(ValueError):
    """Raised when create/update input is missing or malformed."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_flight_number(value: Any) -> str:
    """Uppercase with all whitespace removed ('aa 1234' -> 'AA1234')."""
    if value is None:
        return ''
    return _WHITESPACE.sub('', str(value)).upper()


def normalize_airport(value: Any) -> Optional[str]:
    """Uppercase airport code, or None for blank input."""
    if value is None:
        return None
    code = str(value).strip().upper()
    return code or None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp into an aware UTC datetime.

    Accepts datetimes, ISO-8601 strings ('Z' suffix allowed) and epoch
    seconds. Naive values are assumed to be UTC. Returns None for anything
    that cannot be parsed - callers treat that as "signal absent".
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def snake_case(key: str) -> str:
    """Convert a camelCase key to snake_case; snake_case keys pass through."""
    return _CAMEL_BOUNDARY.sub(r'_\1', key).lower()


def normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``data`` with every top-level key in snake_case."""
    return {snake_case(str(key)): value for key, value in data.items()}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass
class FlightRecord:
    """
    A tracked employee flight.

    Fields:
        id: Store-assigned identifier, never reused within a process
        employee_name: Free-text label for the traveller
        flight_number: Normalized flight number (e.g. 'AA1234')
        departure_time: Planned departure (defaults to creation time)
        origin/destination: Optional uppercase airport codes
        status: Latest FlightStatus
        status_details: Provider-derived fields; shape varies by status
        last_checked: Time of the latest resolution attempt, None if never
    """
    employee_name: str
    flight_number: str
    departure_time: datetime
    origin: Optional[str] = None
    destination: Optional[str] = None
    status: FlightStatus = FlightStatus.CHECKING
    status_details: Dict[str, Any] = field(default_factory=dict)
    last_checked: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'FlightRecord':
        """
        Build a record from a stored or transported mapping.

        Keys may be snake_case or camelCase. Values are normalized the same
        way regardless of which backend or client produced them.
        """
        values = normalize_keys(data)
        details = values.get('status_details') or {}
        if not isinstance(details, Mapping):
            details = {}

        return cls(
            id=values.get('id'),
            employee_name=str(values.get('employee_name') or ''),
            flight_number=normalize_flight_number(values.get('flight_number')),
            departure_time=parse_timestamp(values.get('departure_time')) or utcnow(),
            origin=normalize_airport(values.get('origin')),
            destination=normalize_airport(values.get('destination')),
            status=FlightStatus.coerce(values.get('status') or FlightStatus.CHECKING),
            status_details=normalize_keys(details),
            last_checked=parse_timestamp(values.get('last_checked')),
            created_at=parse_timestamp(values.get('created_at')),
            updated_at=parse_timestamp(values.get('updated_at')),
        )

    @classmethod
    def new(cls, data: Mapping[str, Any], now: Optional[datetime] = None) -> 'FlightRecord':
        """
        Validate create input and build an unsaved record.

        Raises:
            ValidationError: required field missing or departure unparseable
        """
        now = now or utcnow()
        values = normalize_keys(data)

        employee_name = values.get('employee_name')
        flight_number = normalize_flight_number(values.get('flight_number'))
        if _blank(employee_name) or not flight_number:
            raise ValidationError('Employee name and flight number are required')

        departure_raw = values.get('departure_time')
        if _blank(departure_raw):
            departure_time = now
        else:
            departure_time = parse_timestamp(departure_raw)
            if departure_time is None:
                raise ValidationError(f'Invalid departure time: {departure_raw}')

        return cls(
            employee_name=str(employee_name).strip(),
            flight_number=flight_number,
            departure_time=departure_time,
            origin=normalize_airport(values.get('origin')),
            destination=normalize_airport(values.get('destination')),
            status=FlightStatus.CHECKING,
            status_details={},
            last_checked=None,
            created_at=now,
            updated_at=now,
        )

    def copy(self) -> 'FlightRecord':
        """Detached copy; status_details is not shared."""
        return replace(self, status_details=dict(self.status_details))

    def to_dict(self, now: Optional[datetime] = None) -> dict:
        """
        Convert to JSON-serializable dict for API responses.

        Includes the server-computed ``is_past`` and ``should_monitor`` flags
        so clients never re-derive them.
        """
        from flight_tracker.tracking.eligibility import is_past, should_monitor

        now = now or utcnow()
        return {
            'id': self.id,
            'employee_name': self.employee_name,
            'flight_number': self.flight_number,
            'departure_time': isoformat(self.departure_time),
            'origin': self.origin,
            'destination': self.destination,
            'status': self.status.value,
            'status_details': self.status_details,
            'last_checked': isoformat(self.last_checked),
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
            'is_past': is_past(self, now),
            'should_monitor': should_monitor(self, now),
        }


def changes_from_mapping(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validate partial update input.

    Only supplied, non-blank fields are returned. Unknown keys are ignored.

    Raises:
        ValidationError: a supplied field normalizes to nothing useful
    """
    values = normalize_keys(data)
    changes: Dict[str, Any] = {}

    if not _blank(values.get('employee_name')):
        changes['employee_name'] = str(values['employee_name']).strip()

    if not _blank(values.get('flight_number')):
        flight_number = normalize_flight_number(values['flight_number'])
        if not flight_number:
            raise ValidationError('Flight number cannot be empty')
        changes['flight_number'] = flight_number

    if not _blank(values.get('departure_time')):
        departure_time = parse_timestamp(values['departure_time'])
        if departure_time is None:
            raise ValidationError(f"Invalid departure time: {values['departure_time']}")
        changes['departure_time'] = departure_time

    for key in ('origin', 'destination'):
        if not _blank(values.get(key)):
            changes[key] = normalize_airport(values[key])

    return changes
