"""
Local Storage Service

Small key-value stores that hold short-lived, per-player data: pending
puzzle solutions, the finished mission summary waiting for the scoreboard
and the chosen difficulty. Every reader that consumes an entry removes it.
"""

import threading
from typing import Any, Dict, Optional, Tuple

from ..config.game_settings import resolve_difficulty
from ..models.game import DifficultyProfile, ResultSummary


class KeyValueStore:
    """Thread-safe in-memory key-value area."""

    def __init__(self):
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def pop(self, key: str, default: Any = None) -> Any:
        """Read and remove an entry in one step."""
        with self._lock:
            return self._data.pop(key, default)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data


class PuzzleSecretStore:
    """Single-use storage for puzzle solutions keyed by puzzle session id."""

    PREFIX = "game_"

    def __init__(self, store: KeyValueStore):
        self.store = store

    def put(self, session_id: str, heart_solution: int, carrot_solution: int) -> None:
        self.store.set(f"{self.PREFIX}{session_id}", {
            "solution": heart_solution,
            "carrots": carrot_solution,
        })

    def take(self, session_id: str) -> Optional[Tuple[int, int]]:
        """Remove and return (hearts, carrots), or None if unknown or already used."""
        entry = self.store.pop(f"{self.PREFIX}{session_id}")
        if entry is None:
            return None
        return entry["solution"], entry["carrots"]

    def discard(self, session_id: str) -> None:
        self.store.delete(f"{self.PREFIX}{session_id}")


class ResultHandoffStore:
    """
    Single-slot handoff of a finished mission's summary to the scoreboard.

    Each owner has at most one pending summary. A second write replaces the
    first; read_and_clear is destructive so a summary is credited once.
    """

    PREFIX = "heart_robot_last_game:"

    def __init__(self, store: KeyValueStore):
        self.store = store

    def write(self, owner_id: str, summary: ResultSummary) -> None:
        self.store.set(f"{self.PREFIX}{owner_id}", summary.to_dict())

    def read_and_clear(self, owner_id: str) -> Optional[ResultSummary]:
        data = self.store.pop(f"{self.PREFIX}{owner_id}")
        if data is None:
            return None
        return ResultSummary.from_dict(data)


class PreferenceStore:
    """Remembers each player's selected difficulty."""

    PREFIX = "selectedLevel:"

    def __init__(self, store: KeyValueStore):
        self.store = store

    def set_level(self, owner_id: str, level: str) -> DifficultyProfile:
        profile = resolve_difficulty(level)
        self.store.set(f"{self.PREFIX}{owner_id}", profile.name)
        return profile

    def get_level(self, owner_id: str) -> DifficultyProfile:
        return resolve_difficulty(self.store.get(f"{self.PREFIX}{owner_id}"))


# Global store instances, all sharing one key-value area
_stores: Dict[str, Any] = {}


def get_handoff_store() -> Optional[ResultHandoffStore]:
    """Get the global result handoff store."""
    return _stores.get('handoff')


def get_preference_store() -> Optional[PreferenceStore]:
    """Get the global difficulty preference store."""
    return _stores.get('preferences')


def initialize_local_storage(store: Optional[KeyValueStore] = None) -> Dict[str, Any]:
    """Create the key-value area and the stores built on it."""
    if store is None:
        store = KeyValueStore()
    _stores.clear()
    _stores.update({
        'kv': store,
        'secrets': PuzzleSecretStore(store),
        'handoff': ResultHandoffStore(store),
        'preferences': PreferenceStore(store)
    })
    return dict(_stores)
