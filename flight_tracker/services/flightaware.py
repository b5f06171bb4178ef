"""
FlightAware AeroAPI client.

Handles communication with the AeroAPI v4 REST API:
- API key authentication via the x-apikey header
- One bounded-timeout request per lookup (no internal retries)
- Classification of failures into auth, rate-limit and everything else

The caller decides what each failure means: auth and rate-limit errors stop
a whole update cycle, any other ProviderError only fails one flight.

Documentation: https://flightaware.com/aeroapi/portal/documentation
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from flight_tracker.config import config

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Provider call failed (network, timeout, bad status, malformed payload)."""


class ProviderAuthError(ProviderError):
    """Provider rejected the credential - affects every flight."""


class ProviderRateLimitError(ProviderError):
    """Provider is throttling requests - back off for this cycle."""


class FlightAwareClient:
    """
    Client for the FlightAware AeroAPI.

    Handles:
    - GET requests to /flights/{ident}
    - API key header authentication
    - Error classification
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = 'https://aeroapi.flightaware.com/aeroapi',
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update({'x-apikey': api_key})
        self.request_count = 0

    @classmethod
    def from_config(cls) -> Optional['FlightAwareClient']:
        """Create client from application configuration, None without a key."""
        if not config.flightaware.is_configured:
            return None
        return cls(
            api_key=config.flightaware.api_key,
            base_url=config.flightaware.base_url,
            timeout=config.flightaware.timeout_seconds,
        )

    def get_flight(self, ident: str) -> Optional[Dict[str, Any]]:
        """
        Fetch recent flight activity for an ident (e.g. 'AA1234').

        Returns:
            The most recent matching flight payload, or None if the provider
            has no record of the ident.

        Raises:
            ProviderAuthError: credential rejected (401/403)
            ProviderRateLimitError: provider throttling (429)
            ProviderError: any other failure
        """
        url = f'{self.base_url}/flights/{quote(ident, safe="")}'
        logger.debug(f'Fetching flight status: {url}')

        try:
            response = self.session.get(url, timeout=self.timeout)
            self.request_count += 1
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.Timeout as e:
            logger.error(f'FlightAware API timeout for {ident}')
            raise ProviderError('Failed to fetch flight status: request timed out') from e
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            if status_code in (401, 403):
                logger.error('FlightAware API rejected credentials')
                raise ProviderAuthError('Invalid FlightAware API credentials') from e
            if status_code == 404:
                logger.info(f'FlightAware has no record of {ident}')
                return None
            if status_code == 429:
                logger.warning('FlightAware API rate limit exceeded')
                raise ProviderRateLimitError('FlightAware API rate limit exceeded') from e
            logger.error(f'FlightAware API error: {status_code}')
            raise ProviderError(f'Failed to fetch flight status: HTTP {status_code}') from e
        except requests.exceptions.RequestException as e:
            logger.error(f'FlightAware request failed: {e}')
            raise ProviderError(f'Failed to fetch flight status: {e}') from e
        except ValueError as e:
            raise ProviderError('Failed to fetch flight status: malformed response body') from e

        if not isinstance(data, dict):
            raise ProviderError('Failed to fetch flight status: unexpected response shape')

        flights = data.get('flights') or []
        if not isinstance(flights, list):
            raise ProviderError('Failed to fetch flight status: unexpected response shape')

        logger.debug(f'Received {len(flights)} flights for {ident}')

        if not flights:
            return None
        return flights[0]
