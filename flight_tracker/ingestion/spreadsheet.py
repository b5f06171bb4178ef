"""
Spreadsheet import for bulk flight registration.

Reads the first sheet of an uploaded workbook (or a CSV export) and turns
each row into an unsaved FlightRecord. Column headers are matched loosely -
"Employee Name", "employee_name" and "name" all map to the same field - and
a bad row is reported without failing the rest of the batch.
"""

import io
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import PurePath
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from flight_tracker.config import config
from flight_tracker.tracking.record import FlightRecord, ValidationError, utcnow

logger = logging.getLogger(__name__)

# Cleaned header -> record field
COLUMN_ALIASES: Dict[str, Sequence[str]] = {
    'employee_name': ('employee_name', 'name'),
    'flight_number': ('flight_number', 'flight'),
    'departure_time': ('departure_time', 'departure'),
    'origin': ('origin', 'from'),
    'destination': ('destination', 'to'),
}

# Workbook extension -> pandas Excel engine
EXCEL_ENGINES = {'.xlsx': 'openpyxl', '.xls': 'xlrd'}

SUPPORTED_EXTENSIONS = config.upload.allowed_extensions

TEMPLATE_SHEET = 'Flight Data'
TEMPLATE_COLUMNS = ['Employee Name', 'Flight Number', 'Departure Time', 'Origin', 'Destination']
TEMPLATE_WIDTHS = {'A': 20, 'B': 15, 'C': 20, 'D': 10, 'E': 12}

# (employee, flight, days ahead, departure HH:MM, origin, destination)
TEMPLATE_ROWS = [
    ('John Doe', 'AA1234', 1, '10:00', 'JFK', 'LAX'),
    ('Jane Smith', 'DL5678', 1, '14:30', 'ATL', 'ORD'),
    ('Bob Johnson', 'UA9012', 2, '08:15', 'SFO', 'SEA'),
    ('Alice Williams', 'SW3456', 2, '16:45', 'DEN', 'PHX'),
    ('Charlie Brown', 'B62890', 3, '11:20', 'BOS', 'MCO'),
]


class SpreadsheetError(ValueError):
    """The upload as a whole cannot be processed."""


@dataclass
class ImportResult:
    """Parsed rows plus per-row problems."""
    records: List[FlightRecord] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def clean_column_name(name: Any) -> str:
    """
    Standardize a header.
    - Converts to lowercase
    - Replaces spaces and special characters with underscores
    - Strips leading/trailing underscores
    """
    cleaned = re.sub(r'[^a-z0-9]', '_', str(name).strip().lower())
    cleaned = re.sub(r'_+', '_', cleaned)
    return cleaned.strip('_')


def _cell(value: Any) -> Any:
    """Normalize a cell: NaN/NaT/blank strings become None."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _pick(row: Dict[str, Any], aliases: Sequence[str]) -> Any:
    for alias in aliases:
        value = _cell(row.get(alias))
        if value is not None:
            return value
    return None


def _text(value: Any) -> Any:
    """Whole-number floats from numeric cells read back as '1234', not '1234.0'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return value


def _departure(value: Any) -> Any:
    """Convert spreadsheet date cells into something parse_timestamp accepts."""
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    try:
        return pd.to_datetime(str(value)).to_pydatetime()
    except (ValueError, TypeError, OverflowError):
        raise ValidationError(f'Invalid departure time: {value}')


def read_frame(data: bytes, filename: str) -> pd.DataFrame:
    """
    Load the first sheet of an upload into a DataFrame.

    Raises:
        SpreadsheetError: unsupported extension or unreadable content
    """
    extension = PurePath(filename or '').suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise SpreadsheetError(
            f'Invalid file type. Only {", ".join(SUPPORTED_EXTENSIONS)} files are allowed.'
        )

    try:
        if extension == '.csv':
            frame = pd.read_csv(io.BytesIO(data))
        else:
            frame = pd.read_excel(io.BytesIO(data), sheet_name=0, engine=EXCEL_ENGINES[extension])
    except Exception as e:
        logger.error(f'Failed to read spreadsheet {filename}: {e}')
        raise SpreadsheetError('Failed to process spreadsheet file') from e

    frame = frame.rename(columns={col: clean_column_name(col) for col in frame.columns})
    return frame.dropna(how='all')


def parse_spreadsheet(data: bytes, filename: str, now: Optional[datetime] = None) -> ImportResult:
    """
    Parse an uploaded spreadsheet into unsaved flight records.

    Rows missing employee name or flight number, or with an unparseable
    departure time, are reported as "Row N: ..." (N counts data rows from 1)
    and skipped.

    Raises:
        SpreadsheetError: unreadable file or no data rows
    """
    now = now or utcnow()
    frame = read_frame(data, filename)

    if frame.empty:
        raise SpreadsheetError('Spreadsheet file is empty')

    result = ImportResult()
    for index, row in enumerate(frame.to_dict(orient='records'), start=1):
        employee_name = _text(_pick(row, COLUMN_ALIASES['employee_name']))
        flight_number = _text(_pick(row, COLUMN_ALIASES['flight_number']))

        if employee_name is None or flight_number is None:
            result.errors.append(
                f'Row {index}: Missing required fields (Employee Name or Flight Number)'
            )
            continue

        try:
            record = FlightRecord.new({
                'employee_name': str(employee_name),
                'flight_number': str(flight_number),
                'departure_time': _departure(_pick(row, COLUMN_ALIASES['departure_time'])),
                'origin': _text(_pick(row, COLUMN_ALIASES['origin'])),
                'destination': _text(_pick(row, COLUMN_ALIASES['destination'])),
            }, now=now)
        except ValidationError as e:
            result.errors.append(f'Row {index}: {e}')
            continue

        result.records.append(record)

    logger.info(
        f'Parsed {filename}: {len(result.records)} flights, {len(result.errors)} row errors'
    )
    return result


def build_template_workbook(now: Optional[datetime] = None) -> bytes:
    """Sample upload workbook with flights over the next few days."""
    today = (now or utcnow()).date()
    rows = [
        {
            'Employee Name': employee,
            'Flight Number': flight,
            'Departure Time': f'{today + timedelta(days=days)} {clock}',
            'Origin': origin,
            'Destination': destination,
        }
        for employee, flight, days, clock, origin, destination in TEMPLATE_ROWS
    ]
    frame = pd.DataFrame(rows, columns=TEMPLATE_COLUMNS)

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        frame.to_excel(writer, sheet_name=TEMPLATE_SHEET, index=False)
        sheet = writer.sheets[TEMPLATE_SHEET]
        for column, width in TEMPLATE_WIDTHS.items():
            sheet.column_dimensions[column].width = width

    return buffer.getvalue()
