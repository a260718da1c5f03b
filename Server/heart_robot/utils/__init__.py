"""
Utilities Package

Contains utility functions, decorators, and helper modules.
"""

from .decorators import require_auth, optional_auth, websocket_auth_required
from .helpers import get_user_identity, error_result, parse_count, now_millis, status_for
from .game_logger import game_logger

__all__ = [
    'require_auth', 'optional_auth', 'websocket_auth_required',
    'get_user_identity', 'error_result', 'parse_count', 'now_millis', 'status_for',
    'game_logger'
]
