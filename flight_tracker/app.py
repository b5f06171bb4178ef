"""
Flight tracker Flask application.

Main entry point for the web application. Initializes:
- Flight store (SQL or in-memory)
- Status resolver (FlightAware or mock data)
- Background status updates and retention cleanup
- API routes
- Static dashboard serving

Usage:
    python -m flight_tracker.app

Or with gunicorn:
    gunicorn "flight_tracker.app:create_app()"
"""

import logging
import time
from typing import Optional

from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from flight_tracker.api import flights_bp, system_bp
from flight_tracker.config import RateLimitConfig, config
from flight_tracker.ingestion import SpreadsheetError, StatusUpdater
from flight_tracker.services import ProviderAuthError, ProviderRateLimitError, StatusResolver
from flight_tracker.storage import FlightStore, create_store
from flight_tracker.tracking import ValidationError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = 'Too many requests from this IP, please try again later.'

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'Referrer-Policy': 'same-origin',
    'Content-Security-Policy': (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline'; "
        "style-src 'self' 'unsafe-inline'; "
        "img-src 'self' data:; "
        "connect-src 'self'; "
        "frame-src 'none'"
    ),
}


def _error(message: str, status: int):
    return jsonify({'success': False, 'error': message}), status


def create_app(
    start_scheduler: bool = True,
    store: Optional[FlightStore] = None,
    resolver: Optional[StatusResolver] = None,
    updater: Optional[StatusUpdater] = None,
    rate_limit: Optional[RateLimitConfig] = None,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        start_scheduler: Whether to start the background status updater.
                        Set to False for testing.
        store: Flight store to use (selected from configuration if None)
        resolver: Status resolver to use (built from configuration if None)
        updater: Prebuilt updater; overrides store/resolver wiring
        rate_limit: API request limits (taken from configuration if None)

    Returns:
        Configured Flask application instance.
    """
    app = Flask(
        __name__,
        static_folder='../frontend',
        static_url_path='',
    )

    # Configuration
    app.config['SECRET_KEY'] = config.secret_key
    app.config['MAX_CONTENT_LENGTH'] = config.upload.max_bytes
    app.config['STARTED_AT'] = time.monotonic()

    # Enable CORS for API endpoints
    CORS(
        app,
        resources={r'/api/*': {'origins': list(config.cors.allowed_origins)}},
        supports_credentials=True,
    )

    # Per-client request limits on the API only
    rate_limit = rate_limit or config.rate_limit
    limiter = Limiter(
        key_func=get_remote_address,
        app=app,
        default_limits=[rate_limit.limit],
        storage_uri=rate_limit.storage_uri,
        enabled=rate_limit.enabled,
    )

    @limiter.request_filter
    def skip_non_api_requests():
        return not request.path.startswith('/api/')

    # Wire store, resolver and updater
    if updater is None:
        store = store or create_store(config)
        resolver = resolver or StatusResolver.from_config()
        updater = StatusUpdater(store, resolver)

    app.config['FLIGHT_STORE'] = updater.store
    app.config['STATUS_UPDATER'] = updater

    # Register API blueprints
    app.register_blueprint(flights_bp)
    app.register_blueprint(system_bp)

    if start_scheduler:
        updater.start_background()
        logger.info(
            f'Status updates every {config.scheduler.update_interval_minutes} min, '
            f'cleanup every {config.scheduler.cleanup_interval_minutes} min'
        )

    # -------------------------------------------------------------------------
    # Frontend routes
    # -------------------------------------------------------------------------

    @app.route('/')
    def index():
        """Serve the dashboard."""
        return send_from_directory(app.static_folder, 'index.html')

    @app.after_request
    def add_security_headers(response):
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(ValidationError)
    def validation_error(e):
        return _error(str(e), 400)

    @app.errorhandler(SpreadsheetError)
    def spreadsheet_error(e):
        return _error(str(e), 400)

    @app.errorhandler(ProviderAuthError)
    def provider_auth_error(e):
        logger.error(f'Provider authentication failed: {e}')
        return _error(str(e), 502)

    @app.errorhandler(ProviderRateLimitError)
    def provider_rate_limited(e):
        return _error(str(e), 429)

    @app.errorhandler(429)
    def too_many_requests(e):
        logger.warning(f'Rate limit exceeded for {get_remote_address()}: {e.description}')
        return _error(RATE_LIMIT_MESSAGE, 429)

    @app.errorhandler(404)
    def not_found(e):
        return _error('Endpoint not found', 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return _error('Method not allowed', 405)

    @app.errorhandler(413)
    def too_large(e):
        return _error('File too large (max 5MB)', 413)

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return _error('Internal server error', 500)

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()
    port = config.port

    logger.info(f'Starting flight tracker on http://localhost:{port}')
    logger.info(f'API: http://localhost:{port}/api/flights')
    logger.info(f'Health: http://localhost:{port}/api/health')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
        use_reloader=False,  # Disable reloader to prevent duplicate updater threads
    )


if __name__ == '__main__':
    run_development_server()
