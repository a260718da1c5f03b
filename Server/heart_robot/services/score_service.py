"""
Score Service

Persistent score store backed by a MongoDB collection: append a mission
result, list the top scores, list one player's recent scores.
"""

import datetime
from dataclasses import asdict
from typing import Any, Dict, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from ..config.game_settings import DEFAULT_LEVEL, DEFAULT_PLAYER_NAME
from ..models.game import ErrorCode
from ..models.score import ScoreRecord
from ..utils.game_logger import game_logger
from ..utils.helpers import error_result


def _to_millis(value: Any) -> Optional[int]:
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return None


def _to_number(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def format_score_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize a stored score document for the API and the aggregator."""
    return {
        "id": str(doc.get("_id")) if doc.get("_id") is not None else None,
        "name": doc.get("name") or DEFAULT_PLAYER_NAME,
        "level": doc.get("level") or DEFAULT_LEVEL,
        "score": _to_number(doc.get("score")),
        "attempts": _to_number(doc.get("attempts")),
        "user_id": doc.get("user_id"),
        "created_at": _to_millis(doc.get("created_at"))
    }


class ScoreService:
    """Reads and writes mission results in the scores collection."""

    def __init__(self, collection, top_limit: int = 25, user_limit: int = 25):
        self.collection = collection
        self.top_limit = top_limit
        self.user_limit = user_limit

        self.collection.create_index([("score", DESCENDING)])
        self.collection.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])

    def submit_score(self, score_data: Dict[str, Any], user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Append one mission result.

        Args:
            score_data: {"score", "level", "attempts", optional "name"}
            user: Signed-in player ({"id", "name", "email"}) or None

        Returns:
            {"success": True, "score": record} or a score_submission_failed failure
        """
        try:
            user = user or {}
            record = ScoreRecord(
                name=user.get("name") or user.get("email") or score_data.get("name") or DEFAULT_PLAYER_NAME,
                level=score_data.get("level") or DEFAULT_LEVEL,
                score=_to_number(score_data.get("score")),
                attempts=_to_number(score_data.get("attempts")),
                user_id=user.get("id")
            )
            document = asdict(record)
            document["created_at"] = datetime.datetime.now(datetime.timezone.utc)

            result = self.collection.insert_one(document)
            document["_id"] = result.inserted_id

            return {"success": True, "score": format_score_doc(document)}

        except PyMongoError as e:
            game_logger.logger.error(f"Error submitting score: {e}")
            return error_result(ErrorCode.SCORE_SUBMISSION_FAILED, f"Failed to submit score: {str(e)}")

    def get_scores(self, limit: Optional[int] = None) -> Dict[str, Any]:
        """Top scores, highest first."""
        try:
            cursor = self.collection.find({}).sort("score", DESCENDING).limit(limit or self.top_limit)
            return {"success": True, "scores": [format_score_doc(doc) for doc in cursor]}
        except PyMongoError as e:
            game_logger.logger.error(f"Error fetching scores: {e}")
            return error_result(ErrorCode.SERVICE_UNAVAILABLE, f"Failed to load scores: {str(e)}")

    def get_user_scores(self, user_id: str, limit: Optional[int] = None) -> Dict[str, Any]:
        """One player's most recent scores, newest first."""
        if not user_id:
            return error_result(ErrorCode.AUTH_FAILED, "User not authenticated")
        try:
            cursor = (self.collection.find({"user_id": user_id})
                      .sort("created_at", DESCENDING)
                      .limit(limit or self.user_limit))
            return {"success": True, "scores": [format_score_doc(doc) for doc in cursor]}
        except PyMongoError as e:
            game_logger.logger.error(f"Error fetching user scores: {e}")
            return error_result(ErrorCode.SERVICE_UNAVAILABLE, f"Failed to load user scores: {str(e)}")


# Global service instance
_score_service = None


def get_score_service() -> Optional[ScoreService]:
    """Get the global score service instance."""
    return _score_service


def initialize_score_service(collection, top_limit: int = 25, user_limit: int = 25) -> ScoreService:
    """Initialize the global score service instance."""
    global _score_service
    _score_service = ScoreService(collection, top_limit, user_limit)
    return _score_service
