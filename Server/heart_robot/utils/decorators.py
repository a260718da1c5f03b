"""
Authentication Decorators

HTTP endpoints read a Bearer token from the Authorization header; WebSocket
events carry the token in their payload.
"""

from functools import wraps
from typing import Optional

from flask import request, jsonify
from flask_socketio import emit


def _bearer_token() -> Optional[str]:
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    return header.split(' ', 1)[1].strip() or None


def _auth_error(message: str, error_code: str, status: int):
    return jsonify({'success': False, 'error': message, 'error_code': error_code}), status


def require_auth(f):
    """
    Reject the request unless it carries a valid session token.

    Sets request.user (public user dict) and request.token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from ..services.auth_service import get_auth_service

        auth_service = get_auth_service()
        if not auth_service:
            return _auth_error('Authentication service unavailable', 'service_unavailable', 500)

        token = _bearer_token()
        if not token:
            return _auth_error('Authorization token required', 'auth_failed', 401)

        result = auth_service.verify_token(token)
        if not result['success']:
            return _auth_error(result['error'], 'auth_failed', 401)

        request.user = result['user']
        request.token = token
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """Attach the signed-in player when a valid token is sent, else request.user is None."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from ..services.auth_service import get_auth_service

        request.user = None
        auth_service = get_auth_service()
        token = _bearer_token()
        if auth_service and token:
            request.user = auth_service.current_user(token)
        return f(*args, **kwargs)

    return decorated_function


def websocket_auth_required(f):
    """
    Verify data['token'] on a WebSocket event and pass the player as the
    `user` keyword argument. Emits 'error' instead of calling the handler.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from ..services.auth_service import get_auth_service

        auth_service = get_auth_service()
        data = args[0] if args and isinstance(args[0], dict) else {}
        if not auth_service or not data.get('token'):
            emit('error', {'error': 'Authentication required', 'error_code': 'auth_failed'})
            return

        result = auth_service.verify_token(data['token'])
        if not result['success']:
            emit('error', {'error': result['error'], 'error_code': 'auth_failed'})
            return

        kwargs['user'] = result['user']
        return f(*args, **kwargs)

    return decorated_function
