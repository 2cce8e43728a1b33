from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required, login_user, logout_user

from arena import get_coordinator
from arena.exceptions import ArenaError, StoreError

main = Blueprint('main', __name__)


@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    identity = str(data.get('identity') or '').strip()
    if not identity:
        return jsonify({'success': False, 'message': 'Identity and password are required.'}), 400
    try:
        participant, token = get_coordinator().sessions.login(identity, data.get('password'))
    except StoreError:
        return jsonify({'success': False, 'message': 'Server error during login.'}), 500
    except ArenaError as exc:
        return jsonify({'success': False, 'message': str(exc)}), exc.status_code

    login_user(participant)
    current_app.logger.info(f"[login] {identity} logged in as {participant.role}")
    return jsonify({'success': True, 'user': participant.to_dict(), 'token': token})


@main.route('/logout', methods=['POST', 'OPTIONS'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})
