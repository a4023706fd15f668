from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from arena.errors import ArenaError, JudgeUnavailable
from arena.services.container import get_services
from arena.services.judge import GradedResult, decode_source

judge = Blueprint('judge', __name__)


@judge.route('/run', methods=['POST'])
@login_required
def run_submission():
    """Grade the caller's code and, when they are in a started room, record the score.

    The judge call holds no room lock; the score is applied afterwards.
    Judge failures come back as a zero-score result so the editor always has
    something to render.
    """
    data = request.get_json(silent=True) or {}
    services = get_services()
    source = decode_source(data.get('source_code'))
    problem_id = data.get('problemId')
    username = current_user.username

    try:
        graded = services.judge.run(data.get('language_id'), source, problem_id, data.get('lang'))
    except JudgeUnavailable as exc:
        return jsonify({**GradedResult.unavailable(exc.message).to_dict(), 'scoreRecorded': False})

    payload = graded.to_dict()
    payload['scoreRecorded'] = False
    code = data.get('roomCode')
    try:
        room = services.store.get_room(code) if code else services.store.find_active_room(username, problem_id)
        if room is not None:
            services.engine.record_score(room.code, username, graded.score)
            payload['scoreRecorded'] = True
            payload['roomCode'] = room.code
    except ArenaError as exc:
        current_app.logger.info(f"[judge-score-skip] room={code} user={username} reason={exc.message}")
        payload['scoreError'] = exc.message
    return jsonify(payload)
