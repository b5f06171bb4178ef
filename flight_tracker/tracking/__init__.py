"""
Flight record types and the eligibility predicates built on them.
"""

from flight_tracker.tracking.record import (
    FlightRecord,
    FlightStatus,
    ValidationError,
    changes_from_mapping,
    normalize_airport,
    normalize_flight_number,
    parse_timestamp,
)
from flight_tracker.tracking.eligibility import is_past, should_monitor

__all__ = [
    'FlightRecord',
    'FlightStatus',
    'ValidationError',
    'changes_from_mapping',
    'normalize_airport',
    'normalize_flight_number',
    'parse_timestamp',
    'is_past',
    'should_monitor',
]
