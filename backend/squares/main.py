from flask import Blueprint, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the squares embed server!'})

@main.route('/api/features/superb-owl', methods=['GET'])
def superb_owl_feature():
    # Kept for embeds built against the old single-board endpoint
    return jsonify({
        'ok': True,
        'feature': 'superb-owl',
        'deprecated': True,
        'message': 'Use /api/boards/:board_id/live?gameId=... instead.',
        'example': '/api/boards/default/live',
    })
