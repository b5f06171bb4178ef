"""
Flight tables - tracked employee flights and their status history.

One row per FlightRecord in ``flights``; every resolution attempt appends a
row to ``flight_status_history``. History rows cascade with their flight.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from flight_tracker.models.base import Base


class Flight(Base):
    """
    A tracked employee flight.

    Mirrors FlightRecord field-for-field. Timestamps are stored as UTC; SQLite
    drops the offset, so readers must re-attach it.
    """

    __tablename__ = 'flights'

    # AUTOINCREMENT so ids of deleted rows are never handed out again
    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    employee_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
        comment='Traveller name as entered'
    )

    flight_number: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        index=True,
        comment='Normalized flight number (e.g., AA1234)'
    )

    departure_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,  # Retention cleanup and recency filters
        comment='Planned departure (UTC)'
    )

    origin: Mapped[Optional[str]] = mapped_column(
        String(8),
        nullable=True,
        comment='Origin airport code'
    )

    destination: Mapped[Optional[str]] = mapped_column(
        String(8),
        nullable=True,
        comment='Destination airport code'
    )

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default='checking',
        index=True,
        comment='Latest status classification'
    )

    status_details: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment='Provider-derived status fields'
    )

    last_checked: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment='Latest resolution attempt'
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    __table_args__ = (
        Index('ix_flights_route', 'origin', 'destination'),
        {'sqlite_autoincrement': True},
    )

    def __repr__(self) -> str:
        return f'<Flight {self.id} {self.flight_number} {self.status}>'


class FlightStatusHistory(Base):
    """One resolution outcome for a flight."""

    __tablename__ = 'flight_status_history'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    flight_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey('flights.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )

    status: Mapped[str] = mapped_column(String(16), nullable=False)

    status_details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    checked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f'<FlightStatusHistory {self.flight_id} {self.status} @ {self.checked_at}>'
