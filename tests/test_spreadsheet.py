"""
Pytest tests for spreadsheet import and the sample template.
Run with: pytest tests/test_spreadsheet.py -v
"""

import io
from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest
from openpyxl import load_workbook

from conftest import NOW
from flight_tracker.ingestion.spreadsheet import (
    TEMPLATE_COLUMNS,
    TEMPLATE_SHEET,
    SpreadsheetError,
    build_template_workbook,
    clean_column_name,
    parse_spreadsheet,
)


def xlsx_bytes(rows, columns=None):
    buffer = io.BytesIO()
    pd.DataFrame(rows, columns=columns).to_excel(buffer, index=False, engine='openpyxl')
    return buffer.getvalue()


def csv_bytes(text):
    return text.strip().encode('utf-8')


@pytest.mark.parametrize('header, expected', [
    ('Employee Name', 'employee_name'),
    ('  FLIGHT   NUMBER ', 'flight_number'),
    ('Departure-Time (UTC)', 'departure_time_utc'),
    ('origin', 'origin'),
])
def test_clean_column_name(header, expected):
    assert clean_column_name(header) == expected


class TestParseCsv:

    def test_rows_become_records(self):
        data = csv_bytes("""
Employee Name,Flight Number,Departure Time,Origin,Destination
John Doe,aa 1234,2026-10-19 10:00,jfk,lax
Jane Smith,DL5678,,ATL,ORD
""")
        result = parse_spreadsheet(data, 'flights.csv', now=NOW)

        assert result.errors == []
        first, second = result.records
        assert first.employee_name == 'John Doe'
        assert first.flight_number == 'AA1234'
        assert first.departure_time == datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)
        assert (first.origin, first.destination) == ('JFK', 'LAX')
        assert second.departure_time == NOW

    def test_short_aliases(self):
        data = csv_bytes("""
Name,Flight,Departure,From,To
Bob Johnson,UA9012,2026-10-20T08:15:00Z,SFO,SEA
""")
        (record,) = parse_spreadsheet(data, 'flights.csv', now=NOW).records

        assert record.employee_name == 'Bob Johnson'
        assert record.flight_number == 'UA9012'
        assert record.departure_time == datetime(2026, 10, 20, 8, 15, tzinfo=timezone.utc)
        assert (record.origin, record.destination) == ('SFO', 'SEA')

    def test_bad_rows_reported_and_skipped(self):
        data = csv_bytes("""
Employee Name,Flight Number,Departure Time
John Doe,AA1234,2026-10-19 10:00
,DL5678,2026-10-19 11:00
Bob Johnson,,2026-10-19 12:00
Alice Williams,SW3456,not a date
""")
        result = parse_spreadsheet(data, 'flights.csv', now=NOW)

        assert [record.flight_number for record in result.records] == ['AA1234']
        assert result.errors == [
            'Row 2: Missing required fields (Employee Name or Flight Number)',
            'Row 3: Missing required fields (Employee Name or Flight Number)',
            'Row 4: Invalid departure time: not a date',
        ]

    def test_header_only_is_empty(self):
        with pytest.raises(SpreadsheetError, match='Spreadsheet file is empty'):
            parse_spreadsheet(csv_bytes('Employee Name,Flight Number'), 'flights.csv', now=NOW)


class TestParseXlsx:

    def test_datetime_cells(self):
        data = xlsx_bytes([
            {'Employee Name': 'John Doe', 'Flight Number': 'AA1234',
             'Departure Time': datetime(2026, 10, 19, 10, 0), 'Origin': 'JFK', 'Destination': 'LAX'},
        ])
        (record,) = parse_spreadsheet(data, 'flights.xlsx', now=NOW).records

        assert record.departure_time == datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)
        assert record.status.value == 'checking'

    def test_blank_rows_ignored(self):
        data = xlsx_bytes([
            {'Employee Name': 'John Doe', 'Flight Number': 'AA1234'},
            {'Employee Name': None, 'Flight Number': None},
            {'Employee Name': 'Jane Smith', 'Flight Number': 'DL5678'},
        ])
        result = parse_spreadsheet(data, 'flights.xlsx', now=NOW)

        assert [record.employee_name for record in result.records] == ['John Doe', 'Jane Smith']
        assert result.errors == []

    def test_extension_is_case_insensitive(self):
        data = xlsx_bytes([{'Employee Name': 'John Doe', 'Flight Number': 'AA1234'}])
        assert len(parse_spreadsheet(data, 'FLIGHTS.XLSX', now=NOW).records) == 1


class TestRejectedUploads:

    @pytest.mark.parametrize('filename', ['flights.txt', 'flights.xlsm', 'flights', ''])
    def test_unsupported_extension(self, filename):
        with pytest.raises(SpreadsheetError, match='Invalid file type'):
            parse_spreadsheet(b'anything', filename, now=NOW)

    def test_corrupt_workbook(self):
        with pytest.raises(SpreadsheetError, match='Failed to process spreadsheet file'):
            parse_spreadsheet(b'this is not a zip archive', 'flights.xlsx', now=NOW)

    def test_legacy_workbook_is_read_with_xlrd(self, monkeypatch):
        engines = []

        def fake_read_excel(buffer, sheet_name, engine):
            engines.append(engine)
            return pd.DataFrame([{'Employee Name': 'John Doe', 'Flight Number': 'AA1234'}])

        monkeypatch.setattr(pd, 'read_excel', fake_read_excel)

        result = parse_spreadsheet(b'legacy workbook bytes', 'flights.xls', now=NOW)

        assert engines == ['xlrd']
        assert [record.flight_number for record in result.records] == ['AA1234']

    def test_corrupt_legacy_workbook(self):
        with pytest.raises(SpreadsheetError, match='Failed to process spreadsheet file'):
            parse_spreadsheet(b'not an xls file', 'flights.xls', now=NOW)


class TestTemplate:

    def test_layout(self):
        workbook = load_workbook(io.BytesIO(build_template_workbook(NOW)))

        sheet = workbook[TEMPLATE_SHEET]
        assert [cell.value for cell in sheet[1]] == TEMPLATE_COLUMNS
        assert sheet.max_row == 6
        assert sheet.column_dimensions['A'].width == 20

    def test_template_imports_cleanly(self):
        result = parse_spreadsheet(build_template_workbook(NOW), 'template.xlsx', now=NOW)

        assert result.errors == []
        assert [record.flight_number for record in result.records] == [
            'AA1234', 'DL5678', 'UA9012', 'SW3456', 'B62890',
        ]
        tomorrow = NOW.date() + timedelta(days=1)
        assert result.records[0].departure_time == datetime(
            tomorrow.year, tomorrow.month, tomorrow.day, 10, 0, tzinfo=timezone.utc
        )
