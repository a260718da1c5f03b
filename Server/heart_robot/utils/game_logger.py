"""
Game Logger Module for the Heart Robot Server

Writes one JSON document per log line so mission histories can be rebuilt
from the log: who asked for what, what the server answered and every
mission lifecycle event (puzzle loaded, guess evaluated, finish, abandon).
"""

import logging
import json
import os
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .helpers import get_user_identity

# Entry types, also used by get_log_stats
USER_ACTION = 'USER_ACTION'
RESPONSE_SUCCESS = 'SERVER_RESPONSE_SUCCESS'
RESPONSE_ERROR = 'SERVER_RESPONSE_ERROR'
GAME_EVENT = 'GAME_EVENT'
ERROR = 'ERROR'

_MISSION_LOG_FIELDS = ('state', 'level', 'puzzles_cleared', 'attempts_remaining',
                       'time_remaining', 'total_score', 'finished')


class GameLogger:
    """
    Structured logger for the Heart Robot server.

    Every entry carries the player (IP, id, name), the action and a details
    object. The dated log file receives everything at the configured level;
    the console only shows warnings and errors.
    """

    def __init__(self, log_dir: str = "logs", level: str = "INFO"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.level = self._parse_level(level)
        self.logger = self._setup_logger()

    @staticmethod
    def _parse_level(level) -> int:
        if isinstance(level, int):
            return level
        parsed = logging.getLevelName(str(level).upper())
        return parsed if isinstance(parsed, int) else logging.INFO

    def _log_file(self) -> Path:
        return self.log_dir / f"heart_robot_{datetime.now().strftime('%Y-%m-%d')}.log"

    def _setup_logger(self) -> logging.Logger:
        logger = logging.getLogger('heart_robot')
        logger.setLevel(self.level)
        logger.propagate = False

        # Re-initialising must not stack handlers
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)

        file_handler = logging.FileHandler(self._log_file(), encoding='utf-8')
        file_handler.setLevel(self.level)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s', datefmt='%Y-%m-%d %H:%M:%S'
        ))

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))

        logger.addHandler(file_handler)
        logger.addHandler(console_handler)
        return logger

    def _emit(self, level: int, event_type: str, action: str,
              who: Dict[str, Any], details: Dict[str, Any]) -> None:
        entry = {
            'timestamp': datetime.now().isoformat(),
            'event_type': event_type,
            'action': action,
            'user': who,
            'details': details
        }
        self.logger.log(level, json.dumps(entry, ensure_ascii=False, default=str))

    def log_user_action(self, request, action: str, mission_id: Optional[str] = None, **details):
        """
        Record an incoming player request.

        Args:
            request: Flask request object
            action: What the player asked for ('start_mission', 'submit_guess', ...)
            mission_id: Mission the request targets, if any
        """
        self._emit(logging.INFO, USER_ACTION, action, get_user_identity(request), {
            'mission_id': mission_id,
            'endpoint': request.endpoint,
            'method': request.method,
            **details
        })

    def log_server_response(self, request, action: str, success: bool,
                            response_data: Dict[str, Any], mission_id: Optional[str] = None, **details):
        """Record what was sent back. Failures are logged at ERROR level."""
        self._emit(
            logging.INFO if success else logging.ERROR,
            RESPONSE_SUCCESS if success else RESPONSE_ERROR,
            action,
            get_user_identity(request),
            {
                'mission_id': mission_id,
                'success': success,
                'error_code': response_data.get('error_code') if isinstance(response_data, dict) else None,
                'response': self._summarize(response_data),
                **details
            }
        )

    def log_game_event(self, mission_id: Optional[str], event: str, user_id: Optional[str], **details):
        """Record a mission lifecycle event raised outside any request."""
        self._emit(logging.INFO, GAME_EVENT, event, {'user_id': user_id}, {
            'mission_id': mission_id,
            **details
        })

    def log_error(self, request, error: Exception, action: str, mission_id: Optional[str] = None):
        """Record an unexpected exception raised while handling a request."""
        self._emit(logging.ERROR, ERROR, action, get_user_identity(request), {
            'mission_id': mission_id,
            'error_type': type(error).__name__,
            'error_message': str(error)
        })

    def _summarize(self, data: Any) -> Any:
        """Keep response logs small and free of tokens."""
        if not isinstance(data, dict):
            return {'data_type': type(data).__name__}

        summary = dict(data)
        if 'token' in summary:
            summary['token'] = '***'
        if isinstance(summary.get('mission'), dict):
            summary['mission'] = {k: summary['mission'].get(k) for k in _MISSION_LOG_FIELDS}
        if isinstance(summary.get('scores'), list):
            summary['scores'] = {'rows': len(summary['scores'])}
        return summary

    def get_log_stats(self) -> Dict[str, Any]:
        """Count today's entries per type, for the health endpoint."""
        log_file = self._log_file()
        if not log_file.exists():
            return {'error': 'No log file found for today'}

        counts = Counter()
        try:
            with open(log_file, 'r', encoding='utf-8') as f:
                for line in f:
                    _, _, payload = line.rpartition(' | ')
                    try:
                        counts[json.loads(payload).get('event_type', 'OTHER')] += 1
                    except ValueError:
                        counts['OTHER'] += 1
        except OSError as e:
            return {'error': f'Failed to get stats: {str(e)}'}

        return {
            'log_file': str(log_file),
            'file_size_mb': round(log_file.stat().st_size / (1024 * 1024), 2),
            'total_entries': sum(counts.values()),
            'user_actions': counts[USER_ACTION],
            'server_responses': counts[RESPONSE_SUCCESS] + counts[RESPONSE_ERROR],
            'game_events': counts[GAME_EVENT],
            'errors': counts[ERROR] + counts[RESPONSE_ERROR]
        }


# Global logger instance
game_logger = GameLogger(os.getenv('LOG_DIR', 'logs'), os.getenv('LOG_LEVEL', 'INFO'))
