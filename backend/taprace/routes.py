from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({
        'message': 'Welcome to the Tap-to-Rise race server!',
        'namespace': current_app.config.get('SOCKETIO_NAMESPACE', '/'),
    })

@main.route('/api/game/state')
def game_state():
    return jsonify(current_app.extensions['taprace'].snapshot())
