from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from arena.errors import InvalidParameter
from arena.services.container import get_services

rooms = Blueprint('rooms', __name__)


@rooms.route('', methods=['POST'])
@login_required
def create_room():
    """Create a room; an ``allowUsername`` makes it invite-only and invites that user."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise InvalidParameter('Request body must be a JSON object')
    services = get_services()
    room = services.create_room(
        current_user.username,
        data.get('difficulty'),
        data.get('durationSec'),
        allow_username=data.get('allowUsername'),
        mode=data.get('mode') or 'coding',
    )
    return jsonify({'code': room.code}), 201


@rooms.route('/<string:code>', methods=['GET'])
def get_room(code):
    services = get_services()
    room = services.store.get_room(code)
    viewer = current_user.username if current_user.is_authenticated else None
    with room.lock:
        payload = room.to_dict(services.clock(), viewer=viewer)
    return jsonify(payload)
