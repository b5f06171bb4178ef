"""
Pytest tests for the monitoring eligibility filter.
Run with: pytest tests/test_eligibility.py -v
"""

from datetime import timedelta

import pytest

from conftest import NOW
from flight_tracker.tracking.eligibility import is_past, should_monitor
from flight_tracker.tracking.record import FlightRecord, FlightStatus


def record(departure_offset=timedelta(0), status=FlightStatus.ON_TIME, last_checked=None, **details):
    """Record departing at NOW + offset with the given status details."""
    return FlightRecord(
        id=1,
        employee_name='Jane Smith',
        flight_number='AA1234',
        departure_time=NOW + departure_offset,
        status=status,
        status_details=details,
        last_checked=last_checked,
    )


def ago(hours):
    return (NOW - timedelta(hours=hours)).isoformat()


def ahead(hours):
    return (NOW + timedelta(hours=hours)).isoformat()


class TestShouldMonitor:
    """Periodic updater work-list predicate."""

    def test_upcoming_flight_without_details(self):
        assert should_monitor(record(timedelta(minutes=30)), NOW) is True

    def test_departure_too_far_out(self):
        assert should_monitor(record(timedelta(days=7, minutes=1)), NOW) is False
        assert should_monitor(record(timedelta(days=6, hours=23)), NOW) is True

    def test_landed_more_than_six_hours_ago(self):
        assert should_monitor(record(-timedelta(hours=12), actual_arrival=ago(7)), NOW) is False
        assert should_monitor(record(-timedelta(hours=12), actual_arrival=ago(5)), NOW) is True

    def test_estimated_arrival_checked_independently(self):
        flight = record(-timedelta(hours=12), actual_arrival=ago(1), estimated_arrival=ago(7))
        assert should_monitor(flight, NOW) is False

    def test_cancelled_stops_after_a_day(self):
        stale = record(status=FlightStatus.CANCELLED, last_checked=NOW - timedelta(hours=30))
        fresh = record(status=FlightStatus.CANCELLED, last_checked=NOW - timedelta(hours=2))
        never_checked = record(status=FlightStatus.CANCELLED)

        assert should_monitor(stale, NOW) is False
        assert should_monitor(fresh, NOW) is True
        assert should_monitor(never_checked, NOW) is True

    def test_old_last_checked_only_matters_when_cancelled(self):
        flight = record(status=FlightStatus.DELAYED, last_checked=NOW - timedelta(hours=30))
        assert should_monitor(flight, NOW) is True

    def test_unparseable_arrival_is_ignored(self):
        assert should_monitor(record(actual_arrival='garbage', estimated_arrival=''), NOW) is True


class TestIsPast:
    """Dashboard active/historical partition."""

    def test_upcoming_flight_is_not_past(self):
        assert is_past(record(timedelta(minutes=30)), NOW) is False

    def test_actual_arrival_over_two_hours(self):
        assert is_past(record(-timedelta(hours=10), actual_arrival=ago(3)), NOW) is True

    def test_estimated_arrival_over_two_hours(self):
        assert is_past(record(-timedelta(hours=5), estimated_arrival=ago(2.5)), NOW) is True

    def test_recent_arrival_is_not_past(self):
        assert is_past(record(-timedelta(hours=5), actual_arrival=ago(1)), NOW) is False

    def test_scheduled_arrival_needs_four_hours(self):
        assert is_past(record(-timedelta(hours=6), scheduled_arrival=ago(3)), NOW) is False
        assert is_past(record(-timedelta(hours=6), scheduled_arrival=ago(5)), NOW) is True

    def test_departure_fallback_without_arrival_info(self):
        assert is_past(record(-timedelta(hours=9)), NOW) is True
        assert is_past(record(-timedelta(hours=7)), NOW) is False

    def test_departure_fallback_skipped_when_arrival_known(self):
        # Long-haul: left 10h ago, still airborne
        assert is_past(record(-timedelta(hours=10), estimated_arrival=ahead(3)), NOW) is False

    def test_unparseable_arrival_counts_as_absent(self):
        assert is_past(record(-timedelta(hours=9), actual_arrival='not a time'), NOW) is True


class TestIndependence:
    """Both predicates are computed separately and can disagree."""

    def test_landed_three_hours_ago(self):
        flight = record(-timedelta(hours=10), actual_arrival=ago(3))

        assert is_past(flight, NOW) is True
        assert should_monitor(flight, NOW) is True

    def test_far_future_flight(self):
        flight = record(timedelta(days=10))

        assert is_past(flight, NOW) is False
        assert should_monitor(flight, NOW) is False


@pytest.mark.parametrize('details', [{}, {'message': 'x'}, {'actual_arrival': None}])
def test_missing_optional_fields_never_raise(details):
    flight = record(**details)
    assert isinstance(is_past(flight, NOW), bool)
    assert isinstance(should_monitor(flight, NOW), bool)


def test_accepts_raw_mapping_with_camel_case_keys():
    raw = {
        'employeeName': 'Jane',
        'flightNumber': 'AA1234',
        'departureTime': ago(10),
        'status': 'on-time',
        'statusDetails': {'actualArrival': ago(3)},
    }
    assert is_past(raw, NOW) is True
    assert should_monitor(raw, NOW) is True
