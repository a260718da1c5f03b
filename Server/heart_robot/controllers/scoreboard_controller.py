"""
Scoreboard Controller

Serves the aggregated leaderboard and the player's own score list.
"""

from dataclasses import asdict
from flask import Blueprint, request, jsonify
from ..services.aggregation import aggregate_scores
from ..services.score_service import get_score_service
from ..services.storage import get_handoff_store
from ..utils.decorators import optional_auth, require_auth
from ..utils.game_logger import game_logger
from ..utils.helpers import status_for

scoreboard_bp = Blueprint('scoreboard', __name__)


@scoreboard_bp.route('/scoreboard', methods=['GET', 'POST'])
@optional_auth
def scoreboard():
    """
    Ranked standings per (player, level).

    Query: filter=all (default) or filter=mine (sign-in required).
    A POST body may carry "recent_results" kept on the player's device.
    The signed-in player's pending mission summary is merged once and
    then cleared.
    """
    try:
        score_service = get_score_service()
        if not score_service:
            return jsonify({
                'success': False,
                'error': 'Score store unavailable',
                'error_code': 'service_unavailable'
            }), 503

        score_filter = request.args.get('filter', 'all')
        user = request.user
        game_logger.log_user_action(request, 'scoreboard', filter=score_filter)

        if score_filter == 'mine':
            if not user:
                error_response = {
                    'success': False,
                    'error': 'Please log in to view your scores',
                    'error_code': 'auth_failed'
                }
                game_logger.log_server_response(request, 'scoreboard', False, error_response)
                return jsonify(error_response), 401
            result = score_service.get_user_scores(user['id'])
        else:
            result = score_service.get_scores()

        if not result['success']:
            game_logger.log_server_response(request, 'scoreboard', False, result)
            return jsonify(result), status_for(result)

        recent_results = []
        if request.method == 'POST':
            data = request.get_json(silent=True) or {}
            if isinstance(data.get('recent_results'), list):
                recent_results = data['recent_results']

        summary = None
        handoff = get_handoff_store()
        if user and handoff:
            summary = handoff.read_and_clear(user['id'])

        rows = aggregate_scores(
            result['scores'],
            recent_results,
            summary,
            user['name'] if user else None
        )

        response_data = {
            'success': True,
            'filter': score_filter,
            'final_results': summary.to_dict() if summary else None,
            'scores': [asdict(row) for row in rows]
        }
        game_logger.log_server_response(request, 'scoreboard', True, response_data)
        return jsonify(response_data)

    except Exception as e:
        game_logger.log_error(request, e, 'scoreboard')
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'scoreboard', False, error_response)
        return jsonify(error_response), 500


@scoreboard_bp.route('/scores/me', methods=['GET'])
@require_auth
def my_scores():
    """The signed-in player's most recent raw scores."""
    score_service = get_score_service()
    if not score_service:
        return jsonify({
            'success': False,
            'error': 'Score store unavailable',
            'error_code': 'service_unavailable'
        }), 503

    result = score_service.get_user_scores(request.user['id'])
    game_logger.log_server_response(request, 'my_scores', result['success'], result)
    return jsonify(result), status_for(result)
