"""
Services Package

Contains all business logic and service classes.
"""

from .auth_service import AuthService, get_auth_service, initialize_auth_service
from .mission_service import Mission, MissionService, get_mission_service, initialize_mission_service
from .puzzle_service import PuzzleService, HeartApiClient, FallbackPuzzleBank, PuzzleUnavailableError
from .score_service import ScoreService, get_score_service, initialize_score_service
from .storage import (
    KeyValueStore, PuzzleSecretStore, ResultHandoffStore, PreferenceStore,
    get_handoff_store, get_preference_store, initialize_local_storage
)
from .clock import SessionClock, BackgroundScheduler
from .aggregation import aggregate_scores

__all__ = [
    'AuthService', 'get_auth_service', 'initialize_auth_service',
    'Mission', 'MissionService', 'get_mission_service', 'initialize_mission_service',
    'PuzzleService', 'HeartApiClient', 'FallbackPuzzleBank', 'PuzzleUnavailableError',
    'ScoreService', 'get_score_service', 'initialize_score_service',
    'KeyValueStore', 'PuzzleSecretStore', 'ResultHandoffStore', 'PreferenceStore',
    'get_handoff_store', 'get_preference_store', 'initialize_local_storage',
    'SessionClock', 'BackgroundScheduler',
    'aggregate_scores'
]
