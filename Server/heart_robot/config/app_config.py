"""
Application Configuration

Server, storage, puzzle provider and logging settings, read from the
environment (or config.env next to this file) with defaults suitable for
local play.
"""

import os
from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), 'config.env'))


def _env_flag(name: str, default: str = 'False') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes')


class Config:
    """Base configuration shared by every environment."""

    # Flask / server
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = _env_flag('DEBUG')
    TESTING = False
    HOST = os.getenv('HOST', '127.0.0.1')
    PORT = int(os.getenv('PORT', 5000))

    # MongoDB holds accounts, login sessions and submitted scores
    MONGO_URI = os.getenv('MONGO_URI')
    MONGO_DB_NAME = os.getenv('MONGO_DB_NAME', 'heart_robot')

    # Accounts
    JWT_SECRET = os.getenv('JWT_SECRET')
    JWT_EXPIRATION_DAYS = int(os.getenv('JWT_EXPIRATION_DAYS', 7))

    # Heart API puzzle provider; the offline bank is off unless a file is given
    PUZZLE_API_URL = os.getenv('PUZZLE_API_URL', 'https://marcconrad.com/uob/heart/api.php')
    PUZZLE_API_TIMEOUT_SECONDS = float(os.getenv('PUZZLE_API_TIMEOUT_SECONDS', 5))
    PUZZLE_FALLBACK_FILE = os.getenv('PUZZLE_FALLBACK_FILE')

    # Pause between a correct answer and the next puzzle
    SETTLE_DELAY_SECONDS = float(os.getenv('SETTLE_DELAY_SECONDS', 1.1))

    # Scoreboard query sizes
    SCOREBOARD_LIMIT = int(os.getenv('SCOREBOARD_LIMIT', 25))
    USER_SCORES_LIMIT = int(os.getenv('USER_SCORES_LIMIT', 25))

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_DIR = os.getenv('LOG_DIR', 'logs')


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    """In-process tests: fixed JWT secret, no external services."""
    TESTING = True
    DEBUG = True
    JWT_SECRET = 'test-jwt-secret'
    MONGO_URI = None
    PUZZLE_FALLBACK_FILE = None


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
