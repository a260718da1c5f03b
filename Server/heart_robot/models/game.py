"""
Game Data Models

Contains all mission-related data structures and enums.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class MissionState(Enum):
    """Lifecycle states of a mission."""
    LOADING = "LOADING"
    ACTIVE = "ACTIVE"
    AWAITING_NEXT_PUZZLE = "AWAITING_NEXT_PUZZLE"
    FINISHED = "FINISHED"


class PuzzleSource(Enum):
    """Where a puzzle came from."""
    LIVE = "live"
    FALLBACK = "fallback"


class ErrorCode(Enum):
    """Error codes returned in failed service results."""
    PUZZLE_UNAVAILABLE = "puzzle_unavailable"
    SESSION_EXPIRED = "session_expired"
    INVALID_INPUT = "invalid_input"
    SCORE_SUBMISSION_FAILED = "score_submission_failed"
    AUTH_FAILED = "auth_failed"
    MISSION_NOT_FOUND = "mission_not_found"
    INVALID_STATE = "invalid_state"
    SERVICE_UNAVAILABLE = "service_unavailable"


@dataclass(frozen=True)
class DifficultyProfile:
    """Session parameters for one difficulty level."""
    name: str
    time_limit_seconds: int
    attempt_budget: int
    puzzles_required: int


@dataclass
class PuzzleSession:
    """A fetched puzzle. The solutions never leave the puzzle service."""
    session_id: str
    puzzle_image_ref: str
    heart_solution: int
    carrot_solution: int
    source: PuzzleSource = PuzzleSource.LIVE

    def public_view(self) -> Dict:
        """Puzzle data that is safe to send to the player."""
        return {
            "session_id": self.session_id,
            "question": self.puzzle_image_ref,
            "source": self.source.value,
        }


@dataclass
class GuessEvaluation:
    """Outcome of validating one guess against a puzzle session."""
    heart_correct: bool
    carrot_correct: bool
    correct: bool
    score: int


@dataclass
class GameRunState:
    """Mutable state of one mission, owned by its Mission instance."""
    level: DifficultyProfile
    time_remaining: int
    attempts_remaining: int
    puzzles_cleared: int = 0
    total_score: int = 0
    finished: bool = False
    abandoned: bool = False
    state: MissionState = MissionState.LOADING


@dataclass
class ResultSummary:
    """Summary handed from a finished mission to the scoreboard."""
    score: int
    puzzles_cleared: int
    level: str
    timestamp_millis: int

    def to_dict(self) -> Dict:
        return {
            "score": self.score,
            "puzzles_cleared": self.puzzles_cleared,
            "level": self.level,
            "timestamp_millis": self.timestamp_millis,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ResultSummary":
        return cls(
            score=int(data.get("score", 0)),
            puzzles_cleared=int(data.get("puzzles_cleared", 0)),
            level=data.get("level", "Easy"),
            timestamp_millis=int(data.get("timestamp_millis", 0)),
        )


@dataclass
class MissionSnapshot:
    """Client-facing mission state (never contains puzzle solutions)."""
    mission_id: str
    state: str
    level: str
    time_remaining: int
    attempts_remaining: int
    puzzles_cleared: int
    puzzles_required: int
    total_score: int
    finished: bool
    puzzle: Optional[Dict] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    history: List[Dict] = field(default_factory=list)
