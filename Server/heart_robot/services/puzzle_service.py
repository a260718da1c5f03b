"""
Puzzle Service

Fetches counting puzzles from the Heart API, keeps their solutions
server-side and validates guesses against them.
"""

import json
import random
import time
import uuid
from typing import Any, Dict, List, Optional

import requests

from ..config.game_settings import (
    FULL_SCORE, PARTIAL_SCORE, NO_SCORE,
    PUZZLE_UNAVAILABLE_MESSAGE, SESSION_EXPIRED_MESSAGE
)
from ..models.game import ErrorCode, GuessEvaluation, PuzzleSession, PuzzleSource
from ..utils.game_logger import game_logger
from ..utils.helpers import error_result
from .storage import PuzzleSecretStore


class PuzzleUnavailableError(Exception):
    """The puzzle provider failed, timed out or sent a malformed payload."""


class HeartApiClient:
    """
    HTTP client for the Heart puzzle API.

    The timeout bounds the whole request: connecting, each read and the
    total time spent receiving the body.
    """

    def __init__(self, url: str, timeout: float = 5.0, clock=time.monotonic):
        self.url = url
        self.timeout = timeout
        self.clock = clock

    def fetch(self) -> Dict[str, Any]:
        """
        Fetch one puzzle.

        Returns:
            Dict with "question" (image reference), "solution" (hearts) and
            "carrots"

        Raises:
            PuzzleUnavailableError: On network failure, timeout, non-2xx
                status, invalid JSON or missing fields
        """
        deadline = self.clock() + self.timeout
        try:
            response = requests.get(self.url, timeout=(self.timeout, self.timeout), stream=True)
            try:
                response.raise_for_status()
                body = bytearray()
                for chunk in response.iter_content(chunk_size=1024):
                    if self.clock() > deadline:
                        raise PuzzleUnavailableError(f"Heart API timed out after {self.timeout}s")
                    body.extend(chunk)
            finally:
                response.close()
            payload = json.loads(bytes(body))
        except requests.Timeout as e:
            raise PuzzleUnavailableError(f"Heart API timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise PuzzleUnavailableError(f"Heart API request failed: {e}") from e
        except ValueError as e:
            raise PuzzleUnavailableError("Heart API returned invalid JSON") from e

        return _validate_payload(payload)


def _validate_payload(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict) or not payload.get("question"):
        raise PuzzleUnavailableError("Invalid response from Heart API")

    counts = {}
    for field_name in ("solution", "carrots"):
        value = payload.get(field_name)
        if value is None or isinstance(value, bool):
            raise PuzzleUnavailableError(f"Heart API response is missing '{field_name}'")
        try:
            counts[field_name] = int(value)
        except (TypeError, ValueError):
            raise PuzzleUnavailableError(f"Heart API response has a non-numeric '{field_name}'")

    return {
        "question": payload["question"],
        "solution": counts["solution"],
        "carrots": counts["carrots"],
    }


class FallbackPuzzleBank:
    """Offline puzzles served only when the live provider fails."""

    def __init__(self, puzzles: List[Dict[str, Any]], rng: Optional[random.Random] = None):
        self.puzzles = list(puzzles)
        self.rng = rng or random.Random()

    def __bool__(self) -> bool:
        return bool(self.puzzles)

    def draw(self) -> Dict[str, Any]:
        return dict(self.rng.choice(self.puzzles))


class PuzzleService:
    """
    Puzzle session client.

    This class handles:
    - Requesting puzzles from the provider (with an optional offline bank)
    - Storing each puzzle's solution under a fresh session id
    - Single-use validation of guesses and partial-credit scoring
    """

    def __init__(self, client: HeartApiClient, secrets: PuzzleSecretStore,
                 fallback: Optional[FallbackPuzzleBank] = None):
        self.client = client
        self.secrets = secrets
        self.fallback = fallback

    def request_puzzle(self, level: str) -> Dict[str, Any]:
        """
        Fetch a new puzzle for a mission.

        Args:
            level: Difficulty name (recorded for logging only)

        Returns:
            {"success": True, "puzzle": {...public fields...}} or a
            puzzle_unavailable failure
        """
        source = PuzzleSource.LIVE
        try:
            payload = self.client.fetch()
        except PuzzleUnavailableError as e:
            game_logger.logger.warning(f"Heart API unavailable ({level}): {e}")
            if not self.fallback:
                return error_result(ErrorCode.PUZZLE_UNAVAILABLE, PUZZLE_UNAVAILABLE_MESSAGE)
            payload = self.fallback.draw()
            source = PuzzleSource.FALLBACK

        session = PuzzleSession(
            session_id=str(uuid.uuid4()),
            puzzle_image_ref=payload["question"],
            heart_solution=payload["solution"],
            carrot_solution=payload["carrots"],
            source=source
        )
        self.secrets.put(session.session_id, session.heart_solution, session.carrot_solution)

        return {"success": True, "puzzle": session.public_view()}

    def validate_answer(self, session_id: str, heart_guess: int, carrot_guess: int,
                        reissue_on_miss: bool = False) -> Dict[str, Any]:
        """
        Check a guess against a puzzle session and consume the session.

        Args:
            session_id: Id returned by request_puzzle
            heart_guess: Parsed heart count
            carrot_guess: Parsed carrot count
            reissue_on_miss: On a wrong guess, store the same puzzle under a
                new session id so the player can try the picture again. The
                consumed id stays invalid.

        Returns:
            {"success": True, "evaluation": GuessEvaluation} plus
            "retry_session_id" when reissued, or a session_expired failure
            when the id is unknown or already used
        """
        secret = self.secrets.take(session_id) if session_id else None
        if secret is None:
            return error_result(ErrorCode.SESSION_EXPIRED, SESSION_EXPIRED_MESSAGE)

        heart_solution, carrot_solution = secret
        evaluation = evaluate_counts(heart_guess == heart_solution, carrot_guess == carrot_solution)
        result = {"success": True, "evaluation": evaluation}

        if reissue_on_miss and not evaluation.correct:
            retry_session_id = str(uuid.uuid4())
            self.secrets.put(retry_session_id, heart_solution, carrot_solution)
            result["retry_session_id"] = retry_session_id

        return result

    def discard(self, session_id: Optional[str]) -> None:
        """Drop a puzzle that will never be validated."""
        if session_id:
            self.secrets.discard(session_id)


def evaluate_counts(heart_correct: bool, carrot_correct: bool) -> GuessEvaluation:
    """Partial-credit scoring: both right 100, one right 50, none 0."""
    if heart_correct and carrot_correct:
        score = FULL_SCORE
    elif heart_correct or carrot_correct:
        score = PARTIAL_SCORE
    else:
        score = NO_SCORE

    return GuessEvaluation(
        heart_correct=heart_correct,
        carrot_correct=carrot_correct,
        correct=heart_correct and carrot_correct,
        score=score
    )
