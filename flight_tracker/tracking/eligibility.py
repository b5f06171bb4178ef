"""
Monitoring eligibility filter.

Two independent predicates over a flight record and the current time:

- should_monitor: is it worth asking the provider about this flight now?
- is_past: should the dashboard hide this flight as historical by default?

They answer different questions and can disagree (a flight that landed 3
hours ago is past but still inside the monitoring window). Neither derives
from the other.

Arrival signals are authoritative and use the shortest windows; scheduled
arrival gets a longer grace period, and departure-only records the widest.
Unparseable timestamps are treated as absent.
"""

from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, Union

from flight_tracker.tracking.record import FlightRecord, FlightStatus, parse_timestamp, utcnow

# shouldMonitor windows
MAX_LOOKAHEAD = timedelta(days=7)
ARRIVAL_MONITOR_GRACE = timedelta(hours=6)
CANCELLED_RECHECK_WINDOW = timedelta(hours=24)

# isPast windows
ARRIVAL_PAST_GRACE = timedelta(hours=2)
SCHEDULED_ARRIVAL_PAST_GRACE = timedelta(hours=4)
DEPARTURE_PAST_GRACE = timedelta(hours=8)

RecordLike = Union[FlightRecord, Mapping[str, Any]]


def _as_record(record: RecordLike) -> FlightRecord:
    if isinstance(record, FlightRecord):
        return record
    return FlightRecord.from_mapping(record)


def _detail_time(record: FlightRecord, key: str) -> Optional[datetime]:
    return parse_timestamp(record.status_details.get(key))


def _older_than(moment: Optional[datetime], now: datetime, window: timedelta) -> bool:
    return moment is not None and moment < now - window


def should_monitor(record: RecordLike, now: Optional[datetime] = None) -> bool:
    """
    Decide whether the periodic updater should poll this flight now.

    Returns False when:
    - departure is more than 7 days away
    - actual arrival was more than 6 hours ago
    - estimated arrival was more than 6 hours ago
    - the flight is cancelled and was last checked more than 24 hours ago
    """
    record = _as_record(record)
    now = now or utcnow()

    departure = parse_timestamp(record.departure_time)
    if departure is not None and departure > now + MAX_LOOKAHEAD:
        return False

    if _older_than(_detail_time(record, 'actual_arrival'), now, ARRIVAL_MONITOR_GRACE):
        return False

    if _older_than(_detail_time(record, 'estimated_arrival'), now, ARRIVAL_MONITOR_GRACE):
        return False

    if record.status == FlightStatus.CANCELLED:
        if _older_than(parse_timestamp(record.last_checked), now, CANCELLED_RECHECK_WINDOW):
            return False

    return True


def is_past(record: RecordLike, now: Optional[datetime] = None) -> bool:
    """
    Decide whether a flight is historical for default dashboard views.

    First applicable rule wins:
    1. actual arrival more than 2 hours ago
    2. estimated arrival more than 2 hours ago
    3. scheduled arrival more than 4 hours ago
    4. no arrival information at all and departure more than 8 hours ago
    """
    record = _as_record(record)
    now = now or utcnow()

    actual_arrival = _detail_time(record, 'actual_arrival')
    estimated_arrival = _detail_time(record, 'estimated_arrival')
    scheduled_arrival = _detail_time(record, 'scheduled_arrival')

    if _older_than(actual_arrival, now, ARRIVAL_PAST_GRACE):
        return True
    if _older_than(estimated_arrival, now, ARRIVAL_PAST_GRACE):
        return True
    if _older_than(scheduled_arrival, now, SCHEDULED_ARRIVAL_PAST_GRACE):
        return True

    has_arrival = any(t is not None for t in (actual_arrival, estimated_arrival, scheduled_arrival))
    if not has_arrival:
        return _older_than(parse_timestamp(record.departure_time), now, DEPARTURE_PAST_GRACE)

    return False
