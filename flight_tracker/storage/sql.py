"""
SQL flight store backed by SQLAlchemy.

Works against SQLite (default) or PostgreSQL via DATABASE_URL. ORM rows never
leave this module: ``_to_record`` is the one place row columns are mapped onto
FlightRecord.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Engine, delete, func, select

from flight_tracker.models import Flight, FlightStatusHistory, get_session, init_db, make_session_factory
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
    normalize_keys,
    utcnow,
)

logger = logging.getLogger(__name__)


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite returns naive datetimes; everything stored is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_record(row: Flight) -> FlightRecord:
    return FlightRecord(
        id=row.id,
        employee_name=row.employee_name,
        flight_number=row.flight_number,
        departure_time=_utc(row.departure_time),
        origin=row.origin,
        destination=row.destination,
        status=FlightStatus.coerce(row.status),
        status_details=normalize_keys(row.status_details or {}),
        last_checked=_utc(row.last_checked),
        created_at=_utc(row.created_at),
        updated_at=_utc(row.updated_at),
    )


class SqlFlightStore(FlightStore):
    """FlightStore on top of the ``flights`` and ``flight_status_history`` tables."""

    backend_name = 'sql'

    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessions = make_session_factory(engine)
        init_db(engine)

    def create(self, record: FlightRecord) -> FlightRecord:
        now = utcnow()
        with get_session(self._sessions) as session:
            row = Flight(
                employee_name=record.employee_name,
                flight_number=record.flight_number,
                departure_time=record.departure_time,
                origin=record.origin,
                destination=record.destination,
                status=record.status.value,
                status_details=dict(record.status_details),
                last_checked=record.last_checked,
                created_at=record.created_at or now,
                updated_at=record.updated_at or now,
            )
            session.add(row)
            session.flush()
            return _to_record(row)

    def get(self, flight_id: int) -> Optional[FlightRecord]:
        with get_session(self._sessions) as session:
            row = session.get(Flight, flight_id)
            return _to_record(row) if row else None

    def update(self, flight_id: int, **changes: Any) -> Optional[FlightRecord]:
        check_changes(changes)
        with get_session(self._sessions) as session:
            row = session.get(Flight, flight_id)
            if row is None:
                return None
            for key, value in changes.items():
                if key == 'status':
                    value = FlightStatus.coerce(value).value
                elif key == 'status_details':
                    value = dict(value or {})
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.flush()
            return _to_record(row)

    def delete(self, flight_id: int) -> Optional[FlightRecord]:
        with get_session(self._sessions) as session:
            row = session.get(Flight, flight_id)
            if row is None:
                return None
            record = _to_record(row)
            session.execute(
                delete(FlightStatusHistory).where(FlightStatusHistory.flight_id == flight_id)
            )
            session.delete(row)
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
        query = select(Flight)

        if status is not None:
            query = query.where(Flight.status == FlightStatus.coerce(status).value)
        if flight_number:
            query = query.where(
                Flight.flight_number.contains(normalize_flight_number(flight_number), autoescape=True)
            )
        if origin:
            query = query.where(Flight.origin == normalize_airport(origin))
        if destination:
            query = query.where(Flight.destination == normalize_airport(destination))
        if recent_only:
            query = query.where(Flight.departure_time >= recency_cutoff(utcnow(), recent_hours))

        query = query.order_by(Flight.departure_time.asc(), Flight.id.asc())
        if limit is not None:
            query = query.limit(limit)

        with get_session(self._sessions) as session:
            return [_to_record(row) for row in session.scalars(query)]

    def delete_departed_before(self, cutoff: datetime) -> int:
        with get_session(self._sessions) as session:
            expired_ids = select(Flight.id).where(Flight.departure_time < cutoff)
            session.execute(
                delete(FlightStatusHistory).where(FlightStatusHistory.flight_id.in_(expired_ids))
            )
            result = session.execute(delete(Flight).where(Flight.departure_time < cutoff))
            return result.rowcount or 0

    def count(self) -> int:
        with get_session(self._sessions) as session:
            return session.scalar(select(func.count()).select_from(Flight)) or 0

    def status_counts(self) -> Dict[str, int]:
        query = select(Flight.status, func.count()).group_by(Flight.status)
        with get_session(self._sessions) as session:
            return {status: count for status, count in session.execute(query)}

    def add_status_history(
        self,
        flight_id: int,
        status: FlightStatus,
        status_details: Dict[str, Any],
        checked_at: datetime,
    ) -> None:
        with get_session(self._sessions) as session:
            if session.get(Flight, flight_id) is None:
                logger.debug(f'Skipping history for removed flight {flight_id}')
                return
            session.add(FlightStatusHistory(
                flight_id=flight_id,
                status=FlightStatus.coerce(status).value,
                status_details=dict(status_details),
                message=status_details.get('message'),
                checked_at=checked_at,
            ))

    def list_status_history(self, flight_id: int, limit: int = 50) -> List[StatusHistoryEntry]:
        query = (
            select(FlightStatusHistory)
            .where(FlightStatusHistory.flight_id == flight_id)
            .order_by(FlightStatusHistory.checked_at.desc(), FlightStatusHistory.id.desc())
            .limit(limit)
        )
        with get_session(self._sessions) as session:
            return [
                StatusHistoryEntry(
                    id=row.id,
                    flight_id=row.flight_id,
                    status=FlightStatus.coerce(row.status),
                    status_details=row.status_details or {},
                    checked_at=_utc(row.checked_at),
                )
                for row in session.scalars(query)
            ]
