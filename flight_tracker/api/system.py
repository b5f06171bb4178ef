"""
Search, statistics and system status endpoints.

Provides endpoints for:
- GET /api/health - Liveness and basic counts
- GET /api/search - Filter tracked flights
- GET /api/stats  - Flight counts by status
- GET /api/status - Updater and configuration status
"""

import logging
import time

from flask import Blueprint, current_app, jsonify, request

from flight_tracker.config import config
from flight_tracker.tracking.record import ValidationError, utcnow

logger = logging.getLogger(__name__)

system_bp = Blueprint('system', __name__, url_prefix='/api')


def _arg(*names: str):
    """First non-blank query parameter among aliases (camelCase or snake_case)."""
    for name in names:
        value = request.args.get(name, '').strip()
        if value:
            return value
    return None


@system_bp.route('/health', methods=['GET'])
def health():
    """Simple health check endpoint."""
    store = current_app.config['FLIGHT_STORE']
    updater = current_app.config['STATUS_UPDATER']

    return jsonify({
        'success': True,
        'status': 'ok',
        'timestamp': utcnow().isoformat(),
        'uptime_seconds': round(time.monotonic() - current_app.config['STARTED_AT'], 1),
        'flights_tracked': store.count(),
        'provider': 'mock' if updater.resolver.mock_mode else 'flightaware',
    })


@system_bp.route('/search', methods=['GET'])
def search_flights():
    """
    Search tracked flights.

    Query parameters (at least one required):
    - flightNumber / flight_number: substring of the flight number
    - origin: exact origin airport code
    - destination: exact destination airport code
    """
    flight_number = _arg('flightNumber', 'flight_number')
    origin = _arg('origin')
    destination = _arg('destination')

    if not (flight_number or origin or destination):
        raise ValidationError('Please provide at least one search parameter')

    flights = current_app.config['FLIGHT_STORE'].list(
        flight_number=flight_number,
        origin=origin,
        destination=destination,
    )

    now = utcnow()
    return jsonify({
        'success': True,
        'count': len(flights),
        'flights': [flight.to_dict(now) for flight in flights],
    })


@system_bp.route('/stats', methods=['GET'])
def flight_stats():
    """Flight counts and percentages by status."""
    counts = current_app.config['FLIGHT_STORE'].status_counts()
    total = sum(counts.values())

    breakdown = [
        {
            'status': status,
            'count': count,
            'percentage': round(count * 100.0 / total, 2) if total else 0.0,
        }
        for status, count in sorted(counts.items(), key=lambda item: item[1], reverse=True)
    ]

    return jsonify({
        'success': True,
        'total': total,
        'statuses': breakdown,
    })


@system_bp.route('/status', methods=['GET'])
def system_status():
    """
    Get system health and status information.

    Returns:
    - Updater statistics (including the last fatal provider error)
    - Store backend
    - Configuration summary
    """
    store = current_app.config['FLIGHT_STORE']
    updater = current_app.config['STATUS_UPDATER']
    updater_stats = updater.stats

    return jsonify({
        'success': True,
        'status': 'degraded' if updater_stats['last_error'] else 'healthy',
        'store': {
            'backend': store.backend_name,
            'flights': store.count(),
        },
        'updater': updater_stats,
        'config': {
            'update_interval_minutes': config.scheduler.update_interval_minutes,
            'cleanup_interval_minutes': config.scheduler.cleanup_interval_minutes,
            'retention_hours': config.retention.hours,
            'rate_limit': config.rate_limit.limit if config.rate_limit.enabled else None,
            'flightaware_configured': config.flightaware.is_configured,
        },
        'timestamp': utcnow().isoformat(),
    })
