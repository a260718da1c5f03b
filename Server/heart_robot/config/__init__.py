"""
Configuration Package

Contains all configuration-related files and settings.

This package separates two types of configuration:
- app_config.py: Flask application configuration (environment-based)
- game_settings.py: Difficulty profiles, scoring and feedback rules (business logic)
"""

from .app_config import Config, DevelopmentConfig, ProductionConfig, TestingConfig, config
from .game_settings import (
    DIFFICULTY_PROFILES, DEFAULT_LEVEL, resolve_difficulty,
    validate_difficulty_profiles, load_fallback_puzzles
)

__all__ = [
    # App configuration
    'Config', 'DevelopmentConfig', 'ProductionConfig', 'TestingConfig', 'config',
    # Game rules
    'DIFFICULTY_PROFILES', 'DEFAULT_LEVEL', 'resolve_difficulty',
    'validate_difficulty_profiles', 'load_fallback_puzzles'
]
