from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from arena.stats import match_history

stats = Blueprint('stats', __name__)


@stats.route('/matches', methods=['GET'])
@login_required
def my_matches():
    return jsonify(match_history(current_user.username))
