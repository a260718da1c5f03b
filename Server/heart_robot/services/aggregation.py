"""
Score Aggregation

Builds the ranked scoreboard from persisted score records, results kept on
the player's device and the summary of the mission that just finished.
Everything here is pure: the same inputs always give the same rows.
"""

import datetime
import math
from typing import Any, Dict, Iterable, List, Optional

from ..config.game_settings import ANONYMOUS_PLAYER_NAME, CARROT_SHARE, DEFAULT_LEVEL, HEART_SHARE
from ..models.game import ResultSummary
from ..models.score import AggregatedScoreRow


def split_total(total_score: int) -> Dict[str, int]:
    """Cosmetic split of a total into carrots and hearts."""
    return {
        "carrots": max(0, math.floor(round(total_score * CARROT_SHARE, 9))),
        "hearts": max(0, math.floor(round(total_score * HEART_SHARE, 9))),
    }


def format_last_played(timestamp_millis: Optional[int]) -> str:
    """Render a timestamp like "Oct 19, 2026, 02:05 PM" (UTC)."""
    if not timestamp_millis:
        return "Never"
    moment = datetime.datetime.fromtimestamp(timestamp_millis / 1000, tz=datetime.timezone.utc)
    return moment.strftime("%b %d, %Y, %I:%M %p")


def _number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


def _timestamp(raw: Dict[str, Any]) -> Optional[int]:
    for key in ("created_at", "createdAt", "timestamp_millis", "ts", "date"):
        value = raw.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
            return int(value)
    return None


def _new_row(name: str, level: str, total: int, attempts: int, last_played: Optional[int]) -> AggregatedScoreRow:
    split = split_total(total)
    return AggregatedScoreRow(
        player_name=name,
        level=level,
        total_score=total,
        total_attempts=attempts,
        carrots=split["carrots"],
        hearts=split["hearts"],
        last_played=last_played,
        last_played_display=format_last_played(last_played)
    )


def group_persisted_scores(rows: Iterable[Dict[str, Any]]) -> List[AggregatedScoreRow]:
    """
    Sum persisted records per (name, level).

    Invalid scores count as 0, non-positive attempts count as 0 and the
    newest timestamp becomes the row's last played time. Rows keep the
    order in which each (name, level) pair first appears.
    """
    grouped: Dict[tuple, Dict[str, Any]] = {}
    for raw in rows:
        raw = raw or {}
        name = raw.get("name") or ANONYMOUS_PLAYER_NAME
        level = raw.get("level") or DEFAULT_LEVEL
        key = (name, level)

        if key not in grouped:
            grouped[key] = {"total": 0, "attempts": 0, "last_played": None}
        entry = grouped[key]

        entry["total"] += int(_number(raw.get("score")))
        attempts = _number(raw.get("attempts"))
        entry["attempts"] += int(attempts) if attempts > 0 else 0

        played = _timestamp(raw)
        if played is not None and (entry["last_played"] is None or played > entry["last_played"]):
            entry["last_played"] = played

    return [
        _new_row(name, level, entry["total"], entry["attempts"], entry["last_played"])
        for (name, level), entry in grouped.items()
    ]


def merge_result(rows: List[AggregatedScoreRow], result: Dict[str, Any]) -> None:
    """Add one local result into its (name, level) row or start a new row."""
    name = result.get("name") or ANONYMOUS_PLAYER_NAME
    level = result.get("level") or DEFAULT_LEVEL
    add_score = int(_number(result.get("score")))

    for row in rows:
        if row.player_name == name and row.level == level:
            row.total_score += add_score
            split = split_total(row.total_score)
            row.carrots = split["carrots"]
            row.hearts = split["hearts"]
            return

    attempts = _number(result.get("attempts"))
    rows.append(_new_row(name, level, add_score, int(attempts) if attempts > 0 else 0, _timestamp(result)))


def rank_rows(rows: List[AggregatedScoreRow]) -> List[AggregatedScoreRow]:
    """Sort by total score (stable on ties) and number ranks 1..N."""
    ranked = sorted(rows, key=lambda row: row.total_score, reverse=True)
    for index, row in enumerate(ranked):
        row.rank = index + 1
    return ranked


def aggregate_scores(persisted_rows: Iterable[Dict[str, Any]],
                     local_results: Optional[Iterable[Dict[str, Any]]] = None,
                     current_summary: Optional[ResultSummary] = None,
                     player_name: Optional[str] = None) -> List[AggregatedScoreRow]:
    """
    Merge every score source into ranked standings.

    Args:
        persisted_rows: Records from the score store ({"name", "level",
            "score", "attempts", "created_at"})
        local_results: Results held by the client ({"name", "level",
            "score", "attempts", "ts"})
        current_summary: Summary of the mission that just finished
        player_name: Signed-in player the summary is credited to

    Returns:
        List[AggregatedScoreRow]: Rows ranked 1..N by total score
    """
    rows = group_persisted_scores(persisted_rows)

    to_merge = [dict(item) for item in (local_results or []) if isinstance(item, dict)]
    if current_summary is not None:
        to_merge.append({
            "name": player_name or ANONYMOUS_PLAYER_NAME,
            "level": current_summary.level or DEFAULT_LEVEL,
            "score": current_summary.score,
            "attempts": current_summary.puzzles_cleared,
            "ts": current_summary.timestamp_millis
        })

    for result in to_merge:
        merge_result(rows, result)

    return rank_rows(rows)
