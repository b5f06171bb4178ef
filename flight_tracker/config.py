"""
Configuration management for the flight tracker.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def _parse_origins(value: str) -> Tuple[str, ...]:
    """Parse a comma-separated origin list, ignoring blanks."""
    return tuple(part.strip() for part in value.split(',') if part.strip())


@dataclass(frozen=True)
class FlightAwareConfig:
    """FlightAware AeroAPI configuration."""
    api_key: Optional[str] = os.getenv('FLIGHTAWARE_API_KEY') or None
    base_url: str = os.getenv('FLIGHTAWARE_BASE_URL', 'https://aeroapi.flightaware.com/aeroapi')
    timeout_seconds: float = float(os.getenv('FLIGHTAWARE_TIMEOUT_SECONDS', '10'))

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class DatabaseConfig:
    """Persistence configuration."""
    url: Optional[str] = os.getenv('DATABASE_URL') or None
    # memory | sql; empty means "sql if DATABASE_URL is set"
    backend: str = os.getenv('STORAGE_BACKEND', '').strip().lower()

    @property
    def use_sql(self) -> bool:
        if self.backend:
            return self.backend == 'sql'
        return bool(self.url)

    @property
    def effective_url(self) -> str:
        return self.url or 'sqlite:///flight_tracker.db'

    @property
    def is_sqlite(self) -> bool:
        return self.effective_url.startswith('sqlite')


@dataclass(frozen=True)
class SchedulerConfig:
    """Periodic status update settings."""
    update_interval_minutes: int = int(os.getenv('STATUS_UPDATE_INTERVAL', '5'))
    cleanup_interval_minutes: int = int(os.getenv('CLEANUP_INTERVAL_MINUTES', '60'))

    # Pause between consecutive provider calls to respect rate limits
    request_delay_seconds: float = float(os.getenv('REQUEST_DELAY_SECONDS', '1.0'))


@dataclass(frozen=True)
class RetentionConfig:
    """Data retention policy."""
    hours: int = int(os.getenv('RETENTION_HOURS', '48'))


@dataclass(frozen=True)
class UploadConfig:
    """Spreadsheet upload limits."""
    max_bytes: int = 5 * 1024 * 1024
    allowed_extensions: Tuple[str, ...] = ('.xlsx', '.xls', '.csv')


@dataclass(frozen=True)
class RateLimitConfig:
    """Per-client request limits on /api/ routes."""
    enabled: bool = os.getenv('RATE_LIMIT_ENABLED', '1') == '1'
    window_ms: int = int(os.getenv('RATE_LIMIT_WINDOW_MS', str(15 * 60 * 1000)))
    max_requests: int = int(os.getenv('RATE_LIMIT_MAX_REQUESTS', '100'))
    storage_uri: str = os.getenv('RATE_LIMIT_STORAGE_URI', 'memory://')

    @property
    def limit(self) -> str:
        """Limit in Flask-Limiter notation, e.g. '100 per 900 seconds'."""
        window_seconds = max(1, self.window_ms // 1000)
        return f'{self.max_requests} per {window_seconds} seconds'


@dataclass(frozen=True)
class CorsConfig:
    """Cross-origin settings for the API."""
    allowed_origins: Tuple[str, ...] = field(
        default_factory=lambda: _parse_origins(
            os.getenv('ALLOWED_ORIGINS', 'http://localhost:5000,http://127.0.0.1:5000')
        )
    )


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    flightaware: FlightAwareConfig
    database: DatabaseConfig
    scheduler: SchedulerConfig
    retention: RetentionConfig
    upload: UploadConfig
    rate_limit: RateLimitConfig
    cors: CorsConfig

    # Flask settings
    secret_key: str
    debug: bool
    port: int


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        flightaware=FlightAwareConfig(),
        database=DatabaseConfig(),
        scheduler=SchedulerConfig(),
        retention=RetentionConfig(),
        upload=UploadConfig(),
        rate_limit=RateLimitConfig(),
        cors=CorsConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
        port=int(os.getenv('PORT', '5000')),
    )


# Singleton instance
config = load_config()
