"""
Authentication Controller

Player accounts: sign up, sign in, check a token, sign out.
"""

from flask import Blueprint, request, jsonify
from ..services.auth_service import get_auth_service
from ..utils.decorators import require_auth
from ..utils.game_logger import game_logger

auth_bp = Blueprint('auth', __name__)


def _respond(action, result, success_status=200, failure_status=400):
    """Log and send an auth service result."""
    if result['success']:
        logged = {k: v for k, v in result.items() if k != 'token'}
        game_logger.log_server_response(request, action, True, logged)
        return jsonify(result), success_status

    result.setdefault('error_code', 'auth_failed')
    game_logger.log_server_response(request, action, False, result)
    return jsonify(result), failure_status


def _failure(action, message, status, error_code=None):
    response = {'success': False, 'error': message}
    if error_code:
        response['error_code'] = error_code
    game_logger.log_server_response(request, action, False, response)
    return jsonify(response), status


def _credentials(action):
    """Return (auth_service, body) or a ready error response."""
    auth_service = get_auth_service()
    if not auth_service:
        return None, _failure(action, 'Authentication service unavailable', 500, 'service_unavailable')

    data = request.get_json(silent=True)
    if not data:
        return None, _failure(action, 'Request body is required', 400, 'invalid_input')
    return auth_service, data


@auth_bp.route('/register', methods=['POST'])
def register():
    """Create a player account (name, email, password)."""
    try:
        auth_service, data = _credentials('register')
        if auth_service is None:
            return data

        game_logger.log_user_action(request, 'register', email=data.get('email'))
        result = auth_service.register_user(data.get('name'), data.get('email'), data.get('password'))
        return _respond('register', result, success_status=201)

    except Exception as e:
        game_logger.log_error(request, e, 'register')
        return _failure('register', str(e), 500)


@auth_bp.route('/login', methods=['POST'])
def login():
    """Sign in and receive a JWT token."""
    try:
        auth_service, data = _credentials('login')
        if auth_service is None:
            return data

        game_logger.log_user_action(request, 'login', email=data.get('email'))
        result = auth_service.login_user(data.get('email'), data.get('password'))
        return _respond('login', result, failure_status=401)

    except Exception as e:
        game_logger.log_error(request, e, 'login')
        return _failure('login', str(e), 500)


@auth_bp.route('/verify', methods=['GET'])
@require_auth
def verify_token():
    """Return the player the token belongs to."""
    return _respond('verify_token', {'success': True, 'user': request.user})


@auth_bp.route('/logout', methods=['POST'])
@require_auth
def logout():
    """Invalidate the token's session. Running missions are abandoned."""
    try:
        game_logger.log_user_action(request, 'logout')
        result = get_auth_service().logout_user(request.token)
        return _respond('logout', result)

    except Exception as e:
        game_logger.log_error(request, e, 'logout')
        return _failure('logout', str(e), 500)
