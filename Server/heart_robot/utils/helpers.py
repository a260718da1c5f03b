"""
Helper Functions

Contains utility functions used throughout the application.
"""

import time
from typing import Any, Dict, Optional

from ..models.game import ErrorCode


def get_user_identity(request_obj) -> Dict[str, Optional[str]]:
    """Extract user identity information from a request."""
    user_ip = getattr(request_obj, 'remote_addr', None) or 'unknown'
    user = getattr(request_obj, 'user', None) or {}

    return {
        'user_ip': user_ip,
        'user_id': user.get('id'),
        'username': user.get('name')
    }


def error_result(code: ErrorCode, message: str) -> Dict[str, Any]:
    """Build the uniform failure result returned by services."""
    return {"success": False, "error": message, "error_code": code.value}


def parse_count(raw: Any) -> Optional[int]:
    """
    Parse a guessed count.

    Accepts ints and strings holding a whole number (surrounding whitespace
    allowed). Returns None for anything else, including booleans, floats
    with a fractional part and negative numbers.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw >= 0 else None
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() and raw >= 0 else None
    if isinstance(raw, str):
        text = raw.strip()
        if text.isdecimal():
            return int(text)
    return None


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


# HTTP status for each failure code returned by the services
_STATUS_BY_ERROR_CODE = {
    ErrorCode.PUZZLE_UNAVAILABLE.value: 503,
    ErrorCode.SESSION_EXPIRED.value: 409,
    ErrorCode.INVALID_INPUT.value: 400,
    ErrorCode.SCORE_SUBMISSION_FAILED.value: 502,
    ErrorCode.AUTH_FAILED.value: 401,
    ErrorCode.MISSION_NOT_FOUND.value: 404,
    ErrorCode.INVALID_STATE.value: 409,
    ErrorCode.SERVICE_UNAVAILABLE.value: 503,
}


def status_for(result: Dict[str, Any]) -> int:
    """HTTP status code for a service result."""
    if result.get('success'):
        return 200
    return _STATUS_BY_ERROR_CODE.get(result.get('error_code'), 400)
