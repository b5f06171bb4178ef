"""
Employee Flight Tracker Package.

Tracks employees' flights and keeps their status current, built with Flask,
SQLAlchemy, requests and pandas.

Modules:
    api/         REST endpoints for flights, search, statistics and status
    tracking/    FlightRecord, status kinds, monitoring eligibility rules
    services/    FlightAware client and status resolver (with mock data)
    storage/     Flight store interface with memory and SQL backends
    models/      SQLAlchemy ORM models used by the SQL store
    ingestion/   Spreadsheet import and the periodic status updater
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
