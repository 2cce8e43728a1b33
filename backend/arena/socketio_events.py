from functools import wraps

from flask import current_app, request
from flask_socketio import emit

from arena import socketio, get_coordinator
from arena.exceptions import StoreError, ValidationError
from arena.services.live.broadcast import LIVE_NAMESPACE


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _live_command(requires_admin=False):
    """Resolve the bound participant, then run the handler.

    Commands from unbound connections (or non-admins, for admin commands)
    are dropped. Validation and store failures are logged, never echoed to
    the client; the admin sees no state change and retries.
    """
    def decorator(handler):
        @wraps(handler)
        def wrapper(data=None):
            name = handler.__name__
            if data is None:
                data = {}
            if not isinstance(data, dict):
                current_app.logger.info(f"[ws] {name} dropped: payload is not an object")
                return
            try:
                participant = get_coordinator().sessions.participant_for(_get_sid())
                if participant is None:
                    current_app.logger.info(f"[ws] {name} dropped: connection not authenticated")
                    return
                if requires_admin and not participant.is_admin:
                    current_app.logger.warning(f"[ws] {name} dropped: {participant.identity} is not an admin")
                    return
                handler(participant, data)
            except ValidationError as exc:
                current_app.logger.info(f"[ws] {name} invalid payload: {exc}")
            except StoreError as exc:
                current_app.logger.error(f"[ws] {name} failed: {exc}")
        return wrapper
    return decorator


def _owns_payload(participant, data):
    identity = data.get('identity')
    if identity != participant.identity:
        current_app.logger.warning(
            f"[ws] payload identity {identity!r} does not match bound {participant.identity}"
        )
        return False
    return True


def handle_connect():
    emit('connected', {'message': f'Connected to {LIVE_NAMESPACE}'})


def handle_disconnect(*args):
    get_coordinator().sessions.unbind(_get_sid())


def handle_authenticate(data=None):
    sid = _get_sid()
    coordinator = get_coordinator()
    if not isinstance(data, dict):
        current_app.logger.info(f"[ws] authenticate from {sid} without credentials object")
        data = {}
    try:
        participant = coordinator.sessions.authenticate(sid, data.get('identity'), data.get('token'))
    except StoreError as exc:
        current_app.logger.error(f"[ws] authenticate failed for {sid}: {exc}")
        participant = None
    if participant is None:
        coordinator.broadcaster.force_disconnect(sid)
        return
    emit('authenticated', {'identity': participant.identity, 'role': participant.role})
    coordinator.sync_connection(sid)


# ---- participant commands ----

@_live_command()
def handle_shape_selected(participant, data):
    if _owns_payload(participant, data):
        get_coordinator().shape_quest.record_choice(participant.identity, data.get('shape'))


@_live_command()
def handle_place_bid(participant, data):
    if _owns_payload(participant, data):
        name = data.get('name') or participant.name
        get_coordinator().auction.place_bid(participant.identity, name, data.get('bidAmount'))


# ---- admin commands ----

@_live_command(requires_admin=True)
def handle_start_shape_quest(participant, data):
    get_coordinator().shape_quest.start(data.get('target'))


@_live_command(requires_admin=True)
def handle_eliminate_shape(participant, data):
    get_coordinator().shape_quest.resolve_elimination(data.get('shape'))


@_live_command(requires_admin=True)
def handle_eliminate_by_number(participant, data):
    numbers = data.get('numbers')
    if not isinstance(numbers, list):
        raise ValidationError('numbers must be a list')
    get_coordinator().eliminate_by_number(numbers)


@_live_command(requires_admin=True)
def handle_reset_all_eliminations(participant, data):
    get_coordinator().reset_all_eliminations()


@_live_command(requires_admin=True)
def handle_un_eliminate_player(participant, data):
    get_coordinator().un_eliminate(data.get('identity'))


@_live_command(requires_admin=True)
def handle_update_coins(participant, data):
    get_coordinator().update_coins(data.get('identity'), data.get('changeAmount'))


@_live_command(requires_admin=True)
def handle_start_auction(participant, data):
    get_coordinator().auction.start(data.get('itemName'))


@_live_command(requires_admin=True)
def handle_end_auction(participant, data):
    get_coordinator().auction.end(data.get('winnerIdentity'), data.get('itemName'), data.get('finalBid'))


def register_socketio_handlers() -> None:
    """Register every live-channel handler on the '/ws' namespace."""
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'authenticate': handle_authenticate,
        'participant:shapeSelected': handle_shape_selected,
        'participant:placeBid': handle_place_bid,
        'admin:startShapeQuest': handle_start_shape_quest,
        'admin:eliminateShape': handle_eliminate_shape,
        'admin:eliminateByNumber': handle_eliminate_by_number,
        'admin:resetAllEliminations': handle_reset_all_eliminations,
        'admin:unEliminatePlayer': handle_un_eliminate_player,
        'admin:updateCoins': handle_update_coins,
        'admin:startAuction': handle_start_auction,
        'admin:endAuction': handle_end_auction,
    }
    for event, handler in handlers.items():
        socketio.on_event(event, handler, namespace=LIVE_NAMESPACE)
