"""
Shared pytest fixtures.

No test touches the network: provider behavior comes from FakeFlightClient.
"""

from datetime import datetime, timezone

import pytest

from flight_tracker.app import create_app
from flight_tracker.ingestion.updater import StatusUpdater
from flight_tracker.models import build_engine
from flight_tracker.services.status_resolver import StatusResolver, mock_index
from flight_tracker.storage.memory import MemoryFlightStore
from flight_tracker.storage.sql import SqlFlightStore
from flight_tracker.tracking.record import FlightRecord

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class FakeFlightClient:
    """
    Stand-in for FlightAwareClient.

    ``responses`` maps ident -> payload dict, None, or an exception instance
    to raise. Unknown idents return None (provider has no record).
    """

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []

    def get_flight(self, ident):
        self.calls.append(ident)
        result = self.responses.get(ident)
        if isinstance(result, Exception):
            raise result
        return result


def flight_number_with_mock_index(index: int, prefix: str = 'AA') -> str:
    """Find a flight number that lands on the given mock table row."""
    for number in range(100, 1000):
        candidate = f'{prefix}{number}'
        if mock_index(candidate) == index:
            return candidate
    raise AssertionError(f'no flight number for mock index {index}')


def make_record(**overrides) -> FlightRecord:
    data = {
        'employee_name': 'Jane Smith',
        'flight_number': 'DL5678',
        'departure_time': NOW,
        'origin': 'ATL',
        'destination': 'ORD',
    }
    data.update(overrides)
    return FlightRecord.new(data, now=NOW)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def memory_store():
    return MemoryFlightStore()


@pytest.fixture
def sql_store():
    engine = build_engine('sqlite://')
    yield SqlFlightStore(engine)
    engine.dispose()


@pytest.fixture(params=['memory', 'sql'])
def store(request):
    """Runs the test once per store backend."""
    if request.param == 'memory':
        return MemoryFlightStore()
    engine = build_engine('sqlite://')
    request.addfinalizer(engine.dispose)
    return SqlFlightStore(engine)


@pytest.fixture
def fake_client():
    return FakeFlightClient()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_updater(memory_store, sleeps):
    updaters = []

    def _make(client=None, store=None, request_delay=0):
        updater = StatusUpdater(
            store or memory_store,
            StatusResolver(client=client),
            request_delay=request_delay,
            sleep=sleeps.append,
        )
        updaters.append(updater)
        return updater

    yield _make

    for updater in updaters:
        updater.stop()


@pytest.fixture
def make_app(make_updater):
    def _make(client=None):
        app = create_app(start_scheduler=False, updater=make_updater(client=client))
        app.config['TESTING'] = True
        return app

    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_store(app):
    return app.config['FLIGHT_STORE']
