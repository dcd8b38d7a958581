from flask import Blueprint, current_app, jsonify

rooms = Blueprint('rooms', __name__)


def _registry():
    return current_app.extensions['arena']['rooms'].registry


@rooms.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok', 'rooms': len(_registry())})


@rooms.route('/rooms/<string:code>', methods=['GET'])
def get_room_state(code):
    """
    Returns the lobby view of a live room, the same payload as room_state.
    """
    room = _registry().lookup(code)
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    with room.lock:
        if room.closed:
            return jsonify({'error': 'Room not found'}), 404
        payload = room.to_dict()
    payload['capacity'] = current_app.config.get('MAX_PLAYERS', 4)
    return jsonify(payload)
