from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from arena.services.container import get_services

trivia = Blueprint('trivia', __name__)


@trivia.route('/submit', methods=['POST'])
@login_required
def submit_trivia():
    data = request.get_json(silent=True) or {}
    services = get_services()
    score = services.engine.submit_trivia(
        data.get('roomCode'),
        current_user.username,
        data.get('correctCount'),
        data.get('totalQuestions'),
    )
    return jsonify({'success': True, 'score': score})
