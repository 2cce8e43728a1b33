from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from arena import get_coordinator
from arena.exceptions import StoreError
from arena.services.roster.importer import import_rows, parse_csv

participants = Blueprint('participants', __name__)


@participants.route('/users', methods=['GET'])
def get_roster():
    """Authoritative roster; clients pull this once per (re)connect."""
    try:
        roster = get_coordinator().ledger.roster()
    except StoreError:
        return jsonify({'success': False, 'message': 'Could not fetch users.'}), 500
    return jsonify({'success': True, 'users': [p.to_dict() for p in roster]})


@participants.route('/live', methods=['GET'])
def get_live_state():
    """Current mini-game state, the pull half of the resync contract."""
    payload = get_coordinator().snapshot()
    payload['success'] = True
    return jsonify(payload)


@participants.route('/upload-participants', methods=['POST'])
@login_required
def upload_participants():
    if not current_user.is_admin:
        return jsonify({'success': False, 'message': 'Admin access required.'}), 403

    upload = request.files.get('csvFile')
    if upload is not None:
        rows = parse_csv(upload.stream)
    else:
        data = request.get_json(silent=True) or {}
        rows = data.get('rows')
    if not isinstance(rows, list):
        return jsonify({'success': False, 'message': 'Provide a csvFile upload or a rows list.'}), 400

    try:
        created = import_rows(rows)
    except StoreError:
        return jsonify({'success': False, 'message': 'Server error during import.'}), 500

    current_app.logger.info(f"[import] {current_user.identity} imported {created} participants")
    return jsonify({
        'success': True,
        'created': created,
        'message': f'Successfully registered {created} new participants.',
    }), 201
