"""
Database models for the flight tracker.

Used by the SQL flight store; the in-memory store needs none of this.
"""

from flight_tracker.models.base import Base, build_engine, get_session, init_db, make_session_factory
from flight_tracker.models.flight import Flight, FlightStatusHistory

__all__ = [
    'Base',
    'build_engine',
    'get_session',
    'init_db',
    'make_session_factory',
    'Flight',
    'FlightStatusHistory',
]
