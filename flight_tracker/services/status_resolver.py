"""
Flight status resolver - turns provider data into a status classification.

Given a flight number, produces exactly one FlightStatus plus a details
mapping. With a FlightAware key configured it issues one provider query per
call; without one it returns deterministic mock data so the dashboard works
in development.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, NamedTuple, Optional

from flight_tracker.services.flightaware import FlightAwareClient, ProviderError
from flight_tracker.tracking.record import FlightStatus, normalize_flight_number, parse_timestamp, utcnow

logger = logging.getLogger(__name__)

FLIGHT_NUMBER_PATTERN = re.compile(r'^([A-Z]{2,3})(\d+)$')

# Departure slip (minutes) beyond which a flight counts as delayed
DELAY_THRESHOLD_MINUTES = 15

MOCK_NOTE = 'Using mock data - set FLIGHTAWARE_API_KEY for real data'


class ParsedFlightNumber(NamedTuple):
    airline: str
    number: str
    full: str

    @property
    def ident(self) -> str:
        """Provider-facing identifier (airline code + number)."""
        return f'{self.airline}{self.number}'


@dataclass(frozen=True)
class MockStatus:
    status: FlightStatus
    message: str
    delay_minutes: Optional[int] = 0
    cancellation_reason: Optional[str] = None


# Indexed by (sum of character codes) % 10 - order is observable, keep it
MOCK_STATUSES: List[MockStatus] = [
    MockStatus(FlightStatus.ON_TIME, 'Flight is on schedule'),
    MockStatus(FlightStatus.ON_TIME, 'Flight departed on time'),
    MockStatus(FlightStatus.ON_TIME, 'Flight is on schedule'),
    MockStatus(FlightStatus.ON_TIME, 'Flight operating normally'),
    MockStatus(FlightStatus.DELAYED, 'Flight delayed due to weather', 45),
    MockStatus(FlightStatus.DELAYED, 'Flight delayed - mechanical issue', 120),
    MockStatus(FlightStatus.DELAYED, 'Flight delayed - crew scheduling', 30),
    MockStatus(FlightStatus.ON_TIME, 'Flight is on time'),
    MockStatus(FlightStatus.CANCELLED, 'Flight cancelled due to weather', None, 'Weather'),
    MockStatus(FlightStatus.ON_TIME, 'Flight on schedule'),
]


@dataclass
class Resolution:
    """Outcome of one status resolution."""
    status: FlightStatus
    details: Dict[str, Any] = field(default_factory=dict)


def parse_flight_number(flight_number: str) -> ParsedFlightNumber:
    """
    Split a flight number into airline code and numeric part.

    Examples:
    - 'AA1234'  -> ('AA', '1234')
    - 'aa 1234' -> ('AA', '1234')
    - 'B62890'  -> ('B6', '2890') via the positional fallback

    The fallback is lossy and only meant for building the provider ident.
    """
    cleaned = normalize_flight_number(flight_number)
    match = FLIGHT_NUMBER_PATTERN.match(cleaned)
    if match:
        return ParsedFlightNumber(match.group(1), match.group(2), cleaned)
    return ParsedFlightNumber(cleaned[:2], cleaned[2:], cleaned)


def mock_index(flight_number: str) -> int:
    return sum(ord(char) for char in flight_number) % len(MOCK_STATUSES)


def mock_status(flight_number: str, now: Optional[datetime] = None) -> Resolution:
    """Deterministic mock classification keyed on the flight number."""
    now = now or utcnow()
    entry = MOCK_STATUSES[mock_index(flight_number)]

    details: Dict[str, Any] = {'message': entry.message}
    if entry.delay_minutes is not None:
        details['delay_minutes'] = entry.delay_minutes
    if entry.cancellation_reason:
        details['cancellation_reason'] = entry.cancellation_reason

    details.update({
        'flight_number': flight_number,
        'origin': 'JFK',
        'destination': 'LAX',
        'scheduled_departure': (now + timedelta(hours=2)).isoformat(),
        'estimated_arrival': (now + timedelta(hours=8)).isoformat(),
        'note': MOCK_NOTE,
    })
    return Resolution(entry.status, details)


def _airport_code(value: Any) -> str:
    if isinstance(value, dict):
        return value.get('code') or 'Unknown'
    return 'Unknown'


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _round_half_up(value: float) -> int:
    """Nearest whole number, .5 rounding up (16.5 -> 17)."""
    return int(math.floor(value + 0.5))


def classify_flight(flight: Dict[str, Any]) -> Resolution:
    """
    Classify a FlightAware flight payload.

    Precedence (first match wins):
    1. cancelled flag set           -> cancelled
    2. status == 'Cancelled'        -> cancelled
    3. status == 'Diverted'         -> delayed (records diversion airport)
    4. delay_minutes > 15           -> delayed
    5. actual_out - scheduled_out > 15 minutes -> delayed
    6. otherwise                    -> on-time
    """
    provider_status = flight.get('status')
    details: Dict[str, Any] = {
        'flight_number': flight.get('ident'),
        'origin': _airport_code(flight.get('origin')),
        'destination': _airport_code(flight.get('destination')),
        'scheduled_departure': flight.get('scheduled_out'),
        'actual_departure': flight.get('actual_out'),
        'scheduled_arrival': flight.get('scheduled_in'),
        'estimated_arrival': flight.get('estimated_in'),
        'actual_arrival': flight.get('actual_in'),
        'aircraft_type': flight.get('aircraft_type'),
        'operator': flight.get('operator'),
        'provider_status': provider_status,
    }

    if flight.get('cancelled'):
        details['cancellation_reason'] = 'Flight cancelled'
        return Resolution(FlightStatus.CANCELLED, details)

    if provider_status == 'Cancelled':
        return Resolution(FlightStatus.CANCELLED, details)

    if provider_status == 'Diverted':
        diverted = flight.get('diverted')
        details['diverted_to'] = diverted.get('code') if isinstance(diverted, dict) else None
        return Resolution(FlightStatus.DELAYED, details)

    delay_minutes = flight.get('delay_minutes')
    if _is_number(delay_minutes) and delay_minutes > DELAY_THRESHOLD_MINUTES:
        details['delay_minutes'] = delay_minutes
        details['delay_reason'] = 'Flight delayed'
        return Resolution(FlightStatus.DELAYED, details)

    scheduled_out = parse_timestamp(flight.get('scheduled_out'))
    actual_out = parse_timestamp(flight.get('actual_out'))
    if scheduled_out and actual_out:
        slip_minutes = (actual_out - scheduled_out).total_seconds() / 60
        if slip_minutes > DELAY_THRESHOLD_MINUTES:
            details['delay_minutes'] = _round_half_up(slip_minutes)
            return Resolution(FlightStatus.DELAYED, details)

    return Resolution(FlightStatus.ON_TIME, details)


class StatusResolver:
    """
    Resolves a flight number to a status classification.

    Uses the FlightAware client when one is available, mock data otherwise.
    Provider exceptions propagate unchanged so the caller can tell fatal
    (auth, rate-limit) failures from per-flight ones.
    """

    def __init__(self, client: Optional[FlightAwareClient] = None):
        self.client = client

        if not self.client:
            logger.warning('FLIGHTAWARE_API_KEY not set - using mock flight data')

    @classmethod
    def from_config(cls) -> 'StatusResolver':
        return cls(client=FlightAwareClient.from_config())

    @property
    def mock_mode(self) -> bool:
        return self.client is None

    def resolve(self, flight_number: str, departure_time: Optional[datetime] = None) -> Resolution:
        """
        Resolve the current status of a flight.

        ``departure_time`` is accepted for callers that have it; the
        provider's /flights endpoint already returns the most recent legs.

        Raises:
            ProviderAuthError, ProviderRateLimitError, ProviderError
        """
        if self.mock_mode:
            return mock_status(flight_number)

        parsed = parse_flight_number(flight_number)
        flight = self.client.get_flight(parsed.ident)

        if flight is None:
            return Resolution(FlightStatus.UNKNOWN, {
                'message': 'Flight not found in FlightAware database',
                'flight_number': flight_number,
            })

        if not isinstance(flight, dict):
            raise ProviderError('Failed to fetch flight status: malformed flight payload')

        try:
            return classify_flight(flight)
        except (AttributeError, TypeError, ValueError) as e:
            raise ProviderError(f'Failed to fetch flight status: malformed flight payload ({e})') from e
