"""
Score Data Models

Contains persisted score records and the rows of the aggregated scoreboard.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ScoreRecord:
    """One submitted mission result as stored in the score collection."""
    name: str
    level: str
    score: int
    attempts: int
    user_id: Optional[str]
    created_at: Optional[int] = None  # epoch millis


@dataclass
class AggregatedScoreRow:
    """One scoreboard row per (player, level); recomputed on every pass."""
    player_name: str
    level: str
    total_score: int
    total_attempts: int
    carrots: int
    hearts: int
    rank: int = 0
    last_played: Optional[int] = None  # epoch millis
    last_played_display: str = ""
