"""
Mission Controller

Handles difficulty selection and mission HTTP endpoints.
"""

from dataclasses import asdict
from flask import Blueprint, request, jsonify
from ..config.game_settings import DIFFICULTY_PROFILES
from ..services.auth_service import get_auth_service
from ..services.mission_service import get_mission_service
from ..services.score_service import get_score_service
from ..services.storage import get_preference_store
from ..utils.decorators import require_auth
from ..utils.game_logger import game_logger
from ..utils.helpers import status_for

mission_bp = Blueprint('mission', __name__)


def _service_unavailable(name):
    return jsonify({
        'success': False,
        'error': f'{name} unavailable',
        'error_code': 'service_unavailable'
    }), 503


@mission_bp.route('/levels', methods=['GET'])
def list_levels():
    """List the difficulty profiles."""
    return jsonify({
        'success': True,
        'levels': [asdict(profile) for profile in DIFFICULTY_PROFILES.values()]
    })


@mission_bp.route('/preferences/level', methods=['GET'])
@require_auth
def get_level_preference():
    """Return the player's selected difficulty."""
    preferences = get_preference_store()
    if not preferences:
        return _service_unavailable('Preference store')

    profile = preferences.get_level(request.user['id'])
    return jsonify({'success': True, 'level': asdict(profile)})


@mission_bp.route('/preferences/level', methods=['PUT'])
@require_auth
def set_level_preference():
    """Select a difficulty. Unknown names fall back to Easy."""
    preferences = get_preference_store()
    if not preferences:
        return _service_unavailable('Preference store')

    data = request.get_json(silent=True) or {}
    game_logger.log_user_action(request, 'select_level', level=data.get('level'))

    profile = preferences.set_level(request.user['id'], data.get('level'))
    response_data = {'success': True, 'level': asdict(profile)}
    game_logger.log_server_response(request, 'select_level', True, response_data)
    return jsonify(response_data)


@mission_bp.route('/missions', methods=['POST'])
@require_auth
def start_mission():
    """Start a mission at the requested or the stored difficulty."""
    try:
        mission_service = get_mission_service()
        if not mission_service:
            return _service_unavailable('Mission service')

        data = request.get_json(silent=True) or {}
        level = data.get('level')
        if not level:
            preferences = get_preference_store()
            level = preferences.get_level(request.user['id']).name if preferences else None

        game_logger.log_user_action(request, 'start_mission', level=level)

        result = mission_service.start_mission(request.user, level)
        status = 201 if result['success'] else status_for(result)

        game_logger.log_server_response(
            request, 'start_mission', result['success'], result, result.get('mission_id')
        )
        return jsonify(result), status

    except Exception as e:
        game_logger.log_error(request, e, 'start_mission')
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'start_mission', False, error_response)
        return jsonify(error_response), 500


@mission_bp.route('/missions/<mission_id>', methods=['GET'])
@require_auth
def get_mission(mission_id):
    """Get the current mission state."""
    mission_service = get_mission_service()
    if not mission_service:
        return _service_unavailable('Mission service')

    mission = mission_service.get_mission(mission_id, request.user['id'])
    if mission is None:
        error_response = {'success': False, 'error': 'Mission not found', 'error_code': 'mission_not_found'}
        game_logger.log_server_response(request, 'get_mission', False, error_response, mission_id)
        return jsonify(error_response), 404

    return jsonify({'success': True, 'mission': mission.snapshot_dict()})


@mission_bp.route('/missions/<mission_id>/guess', methods=['POST'])
@require_auth
def submit_guess(mission_id):
    """Submit heart and carrot counts for the current puzzle."""
    try:
        mission_service = get_mission_service()
        if not mission_service:
            return _service_unavailable('Mission service')

        data = request.get_json(silent=True) or {}
        hearts = data.get('hearts')
        carrots = data.get('carrots')

        game_logger.log_user_action(request, 'submit_guess', mission_id, hearts=hearts, carrots=carrots)

        result = mission_service.submit_guess(mission_id, request.user['id'], hearts, carrots)

        game_logger.log_server_response(request, 'submit_guess', result['success'], result, mission_id)
        return jsonify(result), status_for(result)

    except Exception as e:
        game_logger.log_error(request, e, 'submit_guess', mission_id)
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'submit_guess', False, error_response, mission_id)
        return jsonify(error_response), 500


@mission_bp.route('/missions/<mission_id>/retry', methods=['POST'])
@require_auth
def retry_puzzle(mission_id):
    """Request a puzzle again after the provider failed."""
    mission_service = get_mission_service()
    if not mission_service:
        return _service_unavailable('Mission service')

    game_logger.log_user_action(request, 'retry_puzzle', mission_id)
    result = mission_service.retry_puzzle(mission_id, request.user['id'])
    game_logger.log_server_response(request, 'retry_puzzle', result['success'], result, mission_id)
    return jsonify(result), status_for(result)


@mission_bp.route('/missions/<mission_id>', methods=['DELETE'])
@require_auth
def abandon_mission(mission_id):
    """Leave a mission. Nothing is scored."""
    mission_service = get_mission_service()
    if not mission_service:
        return _service_unavailable('Mission service')

    game_logger.log_user_action(request, 'abandon_mission', mission_id)
    result = mission_service.abandon_mission(mission_id, request.user['id'])
    game_logger.log_server_response(request, 'abandon_mission', result['success'], result, mission_id)
    return jsonify(result), status_for(result)


@mission_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    mission_service = get_mission_service()

    response_data = {
        'status': 'healthy',
        'active_missions': mission_service.running_count() if mission_service else 0,
        'log_stats': game_logger.get_log_stats(),
        'auth_available': get_auth_service() is not None,
        'score_store_available': get_score_service() is not None
    }
    return jsonify(response_data)
