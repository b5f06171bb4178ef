"""
Flight API endpoints.

Provides endpoints for:
- GET    /api/flights                 - List tracked flights
- POST   /api/flights                 - Register a flight
- GET    /api/flights/<id>            - Get single flight
- PUT    /api/flights/<id>            - Edit a flight
- DELETE /api/flights/<id>            - Remove a flight
- POST   /api/flights/<id>/refresh    - Re-check status now
- GET    /api/flights/<id>/history    - Status check history
- POST   /api/flights/upload          - Bulk import from a spreadsheet
- GET    /api/flights/template        - Download a sample spreadsheet

Every response carries a ``success`` flag and, on failure, an ``error``.
"""

import io
import logging

from flask import Blueprint, current_app, jsonify, request, send_file

from flight_tracker.ingestion.spreadsheet import build_template_workbook, parse_spreadsheet
from flight_tracker.tracking.record import FlightRecord, FlightStatus, ValidationError, changes_from_mapping, utcnow

logger = logging.getLogger(__name__)

flights_bp = Blueprint('flights', __name__, url_prefix='/api/flights')

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

VIEWS = ('all', 'active', 'past')


def _store():
    return current_app.config['FLIGHT_STORE']


def _updater():
    return current_app.config['STATUS_UPDATER']


def _request_data() -> dict:
    """JSON body, falling back to form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _flag(name: str, default: bool = False) -> bool:
    value = request.args.get(name)
    if value is None:
        return default
    return value.lower() in ('1', 'true', 'yes')


def _not_found():
    return jsonify({'success': False, 'error': 'Flight not found'}), 404


@flights_bp.route('', methods=['GET'])
def list_flights():
    """
    List tracked flights.

    Query parameters:
    - view: all|active|past (default all); uses the server-side is_past flag
    - status: only flights with this status
    - recent_only: boolean, only flights departing in the last 48h or later
    - limit: int, max results to return
    """
    view = request.args.get('view', 'all').lower()
    if view not in VIEWS:
        raise ValidationError(f'view must be one of: {", ".join(VIEWS)}')

    status = request.args.get('status')
    if status and status not in {s.value for s in FlightStatus}:
        raise ValidationError(f'Unknown status: {status}')

    limit = request.args.get('limit', type=int)

    flights = _store().list(
        status=FlightStatus(status) if status else None,
        recent_only=_flag('recent_only'),
        limit=limit,
    )

    now = utcnow()
    flight_dicts = [flight.to_dict(now) for flight in flights]
    if view == 'active':
        flight_dicts = [f for f in flight_dicts if not f['is_past']]
    elif view == 'past':
        flight_dicts = [f for f in flight_dicts if f['is_past']]

    return jsonify({
        'success': True,
        'count': len(flight_dicts),
        'flights': flight_dicts,
        'timestamp': now.isoformat(),
    })


@flights_bp.route('/<int:flight_id>', methods=['GET'])
def get_flight(flight_id: int):
    """Get a single flight by id."""
    flight = _store().get(flight_id)
    if flight is None:
        return _not_found()

    return jsonify({'success': True, 'flight': flight.to_dict()})


@flights_bp.route('', methods=['POST'])
def create_flight():
    """
    Register a flight.

    Body: employee_name, flight_number (required), departure_time, origin,
    destination. camelCase keys are accepted too. The initial status check
    runs in the background; the response shows status 'checking'.
    """
    record = FlightRecord.new(_request_data())
    flight = _store().create(record)
    _updater().schedule_refresh([flight.id])

    logger.info(f'Added flight {flight.flight_number} for {flight.employee_name}')

    return jsonify({
        'success': True,
        'flight': flight.to_dict(),
        'message': 'Flight added successfully',
    }), 201


@flights_bp.route('/<int:flight_id>', methods=['PUT'])
def update_flight(flight_id: int):
    """
    Edit a flight.

    Only supplied fields change. A new flight number triggers an immediate
    status refresh.
    """
    if _store().get(flight_id) is None:
        return _not_found()

    changes = changes_from_mapping(_request_data())
    if not changes:
        raise ValidationError('No valid fields to update')

    flight = _store().update(flight_id, **changes)

    if 'flight_number' in changes:
        flight = _updater().refresh_flight(flight_id) or flight

    if flight is None:
        return _not_found()

    return jsonify({
        'success': True,
        'flight': flight.to_dict(),
        'message': 'Flight updated successfully',
    })


@flights_bp.route('/<int:flight_id>', methods=['DELETE'])
def delete_flight(flight_id: int):
    """Remove a flight and its status history."""
    flight = _store().delete(flight_id)
    if flight is None:
        return _not_found()

    logger.info(f'Deleted flight {flight.flight_number} ({flight_id})')

    return jsonify({
        'success': True,
        'flight': flight.to_dict(),
        'message': 'Flight deleted successfully',
    })


@flights_bp.route('/<int:flight_id>/refresh', methods=['POST'])
def refresh_flight(flight_id: int):
    """
    Re-check a flight's status synchronously.

    Provider auth and rate-limit failures propagate to the app error
    handlers (502 / 429); other failures come back as status 'error'.
    """
    flight = _updater().refresh_flight(flight_id)
    if flight is None:
        return _not_found()

    return jsonify({
        'success': True,
        'flight': flight.to_dict(),
        'message': 'Flight status refreshed',
    })


@flights_bp.route('/<int:flight_id>/history', methods=['GET'])
def flight_history(flight_id: int):
    """
    Status check history, newest first.

    Query parameters:
    - limit: max entries (default 50, max 500)
    """
    if _store().get(flight_id) is None:
        return _not_found()

    limit = min(request.args.get('limit', 50, type=int), 500)
    history = _store().list_status_history(flight_id, limit=limit)

    return jsonify({
        'success': True,
        'flight_id': flight_id,
        'count': len(history),
        'history': [entry.to_dict() for entry in history],
    })


@flights_bp.route('/upload', methods=['POST'])
def upload_flights():
    """
    Bulk import flights from an uploaded spreadsheet (multipart field 'file').

    Bad rows are reported in ``errors`` while the good rows are imported.
    Initial status checks run in the background, one flight at a time.
    """
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return jsonify({'success': False, 'error': 'No file uploaded'}), 400

    result = parse_spreadsheet(upload.read(), upload.filename)

    store = _store()
    added = [store.create(record) for record in result.records]
    if added:
        _updater().schedule_refresh([flight.id for flight in added])

    logger.info(f'Uploaded {len(added)} flights from {upload.filename}')

    return jsonify({
        'success': True,
        'message': f'Uploaded {len(added)} flights',
        'added': len(added),
        'errors': result.errors,
        'flights': [flight.to_dict() for flight in added],
    })


@flights_bp.route('/template', methods=['GET'])
def download_template():
    """Download a sample spreadsheet in the upload format."""
    return send_file(
        io.BytesIO(build_template_workbook()),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name='flight_tracker_template.xlsx',
    )
