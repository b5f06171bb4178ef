"""
External integration services.

Handles the FlightAware status lookup and the classification of its
responses, with mock data when no API key is configured.
"""

from flight_tracker.services.flightaware import (
    FlightAwareClient,
    ProviderAuthError,
    ProviderError,
    ProviderRateLimitError,
)
from flight_tracker.services.status_resolver import Resolution, StatusResolver, parse_flight_number

__all__ = [
    'FlightAwareClient',
    'ProviderAuthError',
    'ProviderError',
    'ProviderRateLimitError',
    'Resolution',
    'StatusResolver',
    'parse_flight_number',
]
