"""
Persistence for tracked flights.

Two interchangeable backends behind the FlightStore interface:
    MemoryFlightStore  process-local dict, used when no database is configured
    SqlFlightStore     SQLAlchemy tables (SQLite or PostgreSQL)
"""

import logging

from flight_tracker.config import AppConfig
from flight_tracker.storage.base import FlightStore, StatusHistoryEntry
from flight_tracker.storage.memory import MemoryFlightStore

logger = logging.getLogger(__name__)


def create_store(app_config: AppConfig) -> FlightStore:
    """Select the store backend at startup from configuration."""
    if app_config.database.use_sql:
        from flight_tracker.models import build_engine
        from flight_tracker.storage.sql import SqlFlightStore

        engine = build_engine(app_config.database.effective_url, echo=app_config.debug)
        logger.info(f'Using SQL flight store ({engine.url.get_backend_name()})')
        return SqlFlightStore(engine)

    logger.warning('No database configured - flights are kept in memory only')
    return MemoryFlightStore()


__all__ = ['FlightStore', 'StatusHistoryEntry', 'MemoryFlightStore', 'create_store']
