"""
API module for the flight tracker.

Provides REST endpoints for:
- Flight registration, editing, refresh and bulk upload
- Search and statistics
- System status
"""

from flight_tracker.api.flights import flights_bp
from flight_tracker.api.system import system_bp

__all__ = ['flights_bp', 'system_bp']
