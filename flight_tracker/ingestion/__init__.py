"""
Flight ingestion for the tracker.

Handles spreadsheet imports and the periodic status updater that keeps
stored flights in sync with the provider.
"""

from flight_tracker.ingestion.spreadsheet import ImportResult, SpreadsheetError, build_template_workbook, parse_spreadsheet
from flight_tracker.ingestion.updater import StatusUpdater

__all__ = [
    'ImportResult',
    'SpreadsheetError',
    'build_template_workbook',
    'parse_spreadsheet',
    'StatusUpdater',
]
