"""
Data Models Package

Contains all data models and schemas used throughout the application.
"""

from .game import (
    MissionState, PuzzleSource, ErrorCode, DifficultyProfile, PuzzleSession,
    GuessEvaluation, GameRunState, ResultSummary, MissionSnapshot
)
from .score import ScoreRecord, AggregatedScoreRow
from .user import User

__all__ = [
    'MissionState', 'PuzzleSource', 'ErrorCode', 'DifficultyProfile', 'PuzzleSession',
    'GuessEvaluation', 'GameRunState', 'ResultSummary', 'MissionSnapshot',
    'ScoreRecord', 'AggregatedScoreRow', 'User'
]
