"""
Game Configuration Constants Module

This module defines the mission rules: difficulty profiles, scoring values,
the cosmetic hearts/carrots split used on the scoreboard and the feedback
messages shown after a guess. All game parameters are centralized here to
enable easy modification.
"""

import json
import os
from typing import Dict, Final, List, Optional

from ..models.game import DifficultyProfile

# Difficulty profiles (time limit is per puzzle, attempts are per mission)
DIFFICULTY_PROFILES: Final[Dict[str, DifficultyProfile]] = {
    "Easy": DifficultyProfile(name="Easy", time_limit_seconds=40, attempt_budget=40, puzzles_required=5),
    "Medium": DifficultyProfile(name="Medium", time_limit_seconds=30, attempt_budget=30, puzzles_required=7),
    "Hard": DifficultyProfile(name="Hard", time_limit_seconds=20, attempt_budget=20, puzzles_required=10),
}

DEFAULT_LEVEL: Final[str] = "Easy"

# Scoring
FULL_SCORE: Final[int] = 100
PARTIAL_SCORE: Final[int] = 50
NO_SCORE: Final[int] = 0

# Scoreboard split of a total into carrots and hearts (display only)
CARROT_SHARE: Final[float] = 0.6
HEART_SHARE: Final[float] = 0.4

DEFAULT_PLAYER_NAME: Final[str] = "Heart Robot Player"
ANONYMOUS_PLAYER_NAME: Final[str] = "Anonymous"

# Player-facing messages
PUZZLE_PROMPT: Final[str] = "Count the hearts and carrots in the image."
FALLBACK_PUZZLE_PROMPT: Final[str] = "Offline puzzle loaded. Count the hearts and carrots!"
CORRECT_FEEDBACK: Final[str] = "Correct! Heart Robot approves!"
BOTH_WRONG_FEEDBACK: Final[str] = "Both the heart and carrot counts need another look."
HEART_WRONG_FEEDBACK: Final[str] = "The heart count is off."
CARROT_WRONG_FEEDBACK: Final[str] = "The carrot count is off."
INVALID_INPUT_MESSAGE: Final[str] = "Enter numbers for both the hearts and the carrots."
PUZZLE_UNAVAILABLE_MESSAGE: Final[str] = "Failed to start a new puzzle. Please try again."
SESSION_EXPIRED_MESSAGE: Final[str] = "Game session expired. Start a new puzzle."
VALIDATION_FAILED_MESSAGE: Final[str] = "Could not validate your answer."


def resolve_difficulty(name: Optional[str]) -> DifficultyProfile:
    """
    Maps a difficulty name to its profile.

    Unknown, empty or non-string names fall back to the Easy profile, this
    function never raises.
    """
    if isinstance(name, str) and name in DIFFICULTY_PROFILES:
        return DIFFICULTY_PROFILES[name]
    return DIFFICULTY_PROFILES[DEFAULT_LEVEL]


def validate_difficulty_profiles() -> bool:
    """
    Validates the difficulty table.

    Returns:
        bool: True if every profile passes the checks

    Raises:
        ValueError: If a profile is inconsistent with its key or has a
            non-positive parameter
    """
    if DEFAULT_LEVEL not in DIFFICULTY_PROFILES:
        raise ValueError(f"Default level '{DEFAULT_LEVEL}' has no profile")

    for key, profile in DIFFICULTY_PROFILES.items():
        if profile.name != key:
            raise ValueError(f"Profile registered as '{key}' is named '{profile.name}'")
        for field_name in ("time_limit_seconds", "attempt_budget", "puzzles_required"):
            if getattr(profile, field_name) <= 0:
                raise ValueError(f"Profile '{key}' has non-positive {field_name}")

    return True


def load_fallback_puzzles(file_path: Optional[str]) -> List[Dict]:
    """
    Load the offline puzzle bank from a JSON file.

    Args:
        file_path: Path to a JSON array of {"question", "solution", "carrots"}
            objects. None or empty disables the bank.

    Returns:
        List[Dict]: Validated puzzles (empty when disabled)

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the JSON is malformed or an entry is invalid
    """
    if not file_path:
        return []

    if not os.path.isfile(file_path):
        raise FileNotFoundError(f"Fallback puzzle file not found: {file_path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        try:
            puzzles = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {file_path}: {e}")

    if not isinstance(puzzles, list) or not puzzles:
        raise ValueError("Fallback puzzle file must contain a non-empty array")

    validated = []
    for index, puzzle in enumerate(puzzles):
        if not isinstance(puzzle, dict):
            raise ValueError(f"Fallback puzzle at index {index} is not an object")
        if not puzzle.get("question"):
            raise ValueError(f"Fallback puzzle at index {index} has no question image")
        for field_name in ("solution", "carrots"):
            value = puzzle.get(field_name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValueError(f"Fallback puzzle at index {index} has invalid {field_name}")
        validated.append({
            "question": puzzle["question"],
            "solution": puzzle["solution"],
            "carrots": puzzle["carrots"],
        })

    return validated


if __name__ == "__main__":

    try:
        validate_difficulty_profiles()
        print(" Difficulty profile validation passed")
    except ValueError as config_error:
        print(f" Configuration validation failed: {config_error}")
        exit(1)
