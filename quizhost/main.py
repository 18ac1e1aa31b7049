from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Quiz host server is running'})


@main.route('/health')
def health():
    registry = current_app.extensions['quizhost'].registry
    return jsonify({'status': 'ok', 'rooms': len(registry)})


@main.route('/api/rooms/<string:room_code>')
def room_summary(room_code):
    """Public room lookup for the join screen. Never exposes host or answer data."""
    room = current_app.extensions['quizhost'].registry.get_room(room_code)
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify(room.summary())
