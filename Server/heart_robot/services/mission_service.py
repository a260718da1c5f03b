"""
Mission Service

Contains the mission state machine and the service that keeps one mission
per player.

A mission moves LOADING -> ACTIVE <-> AWAITING_NEXT_PUZZLE -> FINISHED.
Guesses, clock ticks and settle-delay callbacks can arrive from different
request handlers and background tasks, so every transition runs under the
mission's lock and the finish sequence is guarded by GameRunState.finished.
"""

import threading
import uuid
from dataclasses import asdict
from typing import Any, Callable, Dict, List, Optional

from ..config.game_settings import (
    resolve_difficulty, PUZZLE_PROMPT, FALLBACK_PUZZLE_PROMPT, CORRECT_FEEDBACK,
    BOTH_WRONG_FEEDBACK, HEART_WRONG_FEEDBACK, CARROT_WRONG_FEEDBACK,
    INVALID_INPUT_MESSAGE, VALIDATION_FAILED_MESSAGE
)
from ..models.game import (
    DifficultyProfile, ErrorCode, GameRunState, GuessEvaluation, MissionSnapshot,
    MissionState, PuzzleSource, ResultSummary
)
from ..utils.game_logger import game_logger
from ..utils.helpers import error_result, now_millis, parse_count
from .clock import ScheduledCall, SessionClock
from .puzzle_service import PuzzleService
from .storage import ResultHandoffStore

Notifier = Callable[[str, str, Dict[str, Any]], None]


def miss_feedback(evaluation: GuessEvaluation) -> str:
    """Tell the player which count was wrong."""
    if not evaluation.heart_correct and not evaluation.carrot_correct:
        return f"Almost! {BOTH_WRONG_FEEDBACK}"
    if not evaluation.heart_correct:
        return f"Almost! {HEART_WRONG_FEEDBACK}"
    return f"Almost! {CARROT_WRONG_FEEDBACK}"


class Mission:
    """
    One timed, multi-round play-through at a fixed difficulty.

    The mission owns its GameRunState, its SessionClock and the pending
    settle-delay callback. It never exposes puzzle solutions.
    """

    def __init__(self, mission_id: str, owner: Dict[str, Any], level: DifficultyProfile,
                 puzzle_service: PuzzleService, handoff_store: ResultHandoffStore, scheduler,
                 score_service=None, notifier: Optional[Notifier] = None,
                 settle_delay: float = 1.1):
        self.mission_id = mission_id
        self.owner = owner
        self.puzzle_service = puzzle_service
        self.handoff_store = handoff_store
        self.scheduler = scheduler
        self.score_service = score_service
        self.notifier = notifier
        self.settle_delay = settle_delay

        self.run = GameRunState(
            level=level,
            time_remaining=level.time_limit_seconds,
            attempts_remaining=level.attempt_budget
        )
        self._lock = threading.RLock()
        self.clock = SessionClock(
            scheduler,
            on_tick=self._on_clock_tick,
            on_expire=self._on_clock_expired,
            guard=self._lock
        )

        self.puzzle: Optional[Dict[str, Any]] = None
        self.message: Optional[str] = "Loading puzzle..."
        self.error: Optional[str] = None
        self.error_code: Optional[str] = None
        self.history: List[Dict[str, Any]] = []
        self.summary: Optional[ResultSummary] = None
        self.finish_reason: Optional[str] = None

        self._fetch_token = 0
        self._restart_clock_on_load = True
        self._settle_call: Optional[ScheduledCall] = None

    @property
    def owner_id(self) -> str:
        return self.owner["id"]

    @property
    def state(self) -> MissionState:
        return self.run.state

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self) -> Dict[str, Any]:
        """Load the first puzzle."""
        game_logger.log_game_event(self.mission_id, 'mission_started', self.owner_id,
                                   level=self.run.level.name)
        return self._load_puzzle(restart_clock=True)

    def retry(self) -> Dict[str, Any]:
        """Ask for a puzzle again after the provider failed."""
        with self._lock:
            if self.run.finished or self.run.abandoned:
                return self._invalid_state("Mission is no longer running")
            if self.run.state != MissionState.LOADING or self.error_code is None:
                return self._invalid_state("There is nothing to retry")
            restart_clock = self._restart_clock_on_load
        return self._load_puzzle(restart_clock=restart_clock)

    def submit_guess(self, heart_raw: Any, carrot_raw: Any) -> Dict[str, Any]:
        """
        Evaluate a guess for the current puzzle.

        Non-numeric input is rejected without spending an attempt. A
        correct guess scores and either finishes the mission or schedules
        the next puzzle; a wrong guess spends one attempt and keeps the
        same picture in play under a new puzzle session.
        """
        heart_guess = parse_count(heart_raw)
        carrot_guess = parse_count(carrot_raw)
        needs_replacement = False

        with self._lock:
            if self.run.finished or self.run.abandoned:
                return self._invalid_state("Mission is already over")
            if self.run.state != MissionState.ACTIVE:
                return self._invalid_state("Not accepting guesses right now")

            if heart_guess is None or carrot_guess is None:
                self.message = INVALID_INPUT_MESSAGE
                failure = error_result(ErrorCode.INVALID_INPUT, INVALID_INPUT_MESSAGE)
                failure["mission"] = self.snapshot_dict()
                return failure

            session_id = self.puzzle["session_id"] if self.puzzle else None
            result = self.puzzle_service.validate_answer(
                session_id, heart_guess, carrot_guess, reissue_on_miss=True
            )

            if not result["success"]:
                # The puzzle is gone; fetch another without touching attempts
                self.message = VALIDATION_FAILED_MESSAGE
                self.puzzle = None
                game_logger.log_game_event(self.mission_id, 'session_expired', self.owner_id,
                                           puzzle_session_id=session_id)
                failure = result
                needs_replacement = True
            else:
                evaluation = result["evaluation"]
                self.history.append({
                    "heart_guess": heart_guess,
                    "carrot_guess": carrot_guess,
                    **asdict(evaluation)
                })
                game_logger.log_game_event(
                    self.mission_id, 'guess_evaluated', self.owner_id,
                    correct=evaluation.correct, score=evaluation.score,
                    attempts_remaining=self.run.attempts_remaining
                )
                if evaluation.correct:
                    self._on_correct(evaluation)
                else:
                    self._on_miss(evaluation, result.get("retry_session_id"))

        if needs_replacement:
            self._load_puzzle(restart_clock=False)
            failure = dict(failure)
            failure["error"] = VALIDATION_FAILED_MESSAGE
            failure["mission"] = self.snapshot_dict()
            return failure

        return {
            "success": True,
            "evaluation": asdict(evaluation),
            "mission": self.snapshot_dict()
        }

    def abandon(self) -> bool:
        """
        Stop the mission because the player left it.

        Cancels the clock and any pending next-puzzle callback; late events
        for an abandoned mission are ignored. Nothing is submitted.
        """
        with self._lock:
            if self.run.finished or self.run.abandoned:
                return False
            self.run.abandoned = True
            self.clock.cancel()
            self._cancel_settle()
            self._fetch_token += 1
            if self.puzzle:
                self.puzzle_service.discard(self.puzzle["session_id"])
                self.puzzle = None
            game_logger.log_game_event(self.mission_id, 'mission_abandoned', self.owner_id,
                                       state=self.run.state.value,
                                       puzzles_cleared=self.run.puzzles_cleared)
            return True

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _load_puzzle(self, restart_clock: bool) -> Dict[str, Any]:
        with self._lock:
            if self.run.finished or self.run.abandoned:
                return self._invalid_state("Mission is no longer running")
            self.run.state = MissionState.LOADING
            self.clock.pause()
            self.puzzle = None
            self.error = None
            self.error_code = None
            self._restart_clock_on_load = restart_clock
            self._fetch_token += 1
            token = self._fetch_token

        # Network call runs without holding the lock
        result = self.puzzle_service.request_puzzle(self.run.level.name)

        with self._lock:
            if token != self._fetch_token or self.run.finished or self.run.abandoned:
                if result["success"]:
                    self.puzzle_service.discard(result["puzzle"]["session_id"])
                return self._invalid_state("Mission is no longer running")

            if not result["success"]:
                self.error = result["error"]
                self.error_code = result["error_code"]
                self.message = result["error"]
                game_logger.log_game_event(self.mission_id, 'puzzle_unavailable', self.owner_id,
                                           level=self.run.level.name)
                self._notify('mission_state', {'mission': self.snapshot_dict()})
                failure = dict(result)
                failure["mission"] = self.snapshot_dict()
                return failure

            self.puzzle = result["puzzle"]
            self.run.state = MissionState.ACTIVE
            if self.puzzle["source"] == PuzzleSource.FALLBACK.value:
                self.message = FALLBACK_PUZZLE_PROMPT
            else:
                self.message = PUZZLE_PROMPT
            game_logger.log_game_event(self.mission_id, 'puzzle_loaded', self.owner_id,
                                       source=self.puzzle["source"],
                                       puzzles_cleared=self.run.puzzles_cleared)

            if restart_clock:
                self.run.time_remaining = self.run.level.time_limit_seconds
                self.clock.start(self.run.level.time_limit_seconds)
            else:
                self.clock.resume()

            self._notify('mission_state', {'mission': self.snapshot_dict()})
            return {"success": True, "mission": self.snapshot_dict()}

    def _on_correct(self, evaluation: GuessEvaluation) -> None:
        self.clock.pause()
        self.run.puzzles_cleared += 1
        self.run.total_score += evaluation.score
        self.message = CORRECT_FEEDBACK
        self.puzzle = None

        if self.run.puzzles_cleared >= self.run.level.puzzles_required:
            self._finish("puzzles_cleared")
            return

        self.run.state = MissionState.AWAITING_NEXT_PUZZLE
        self._settle_call = self.scheduler.schedule(self.settle_delay, self._advance)
        self._notify('mission_state', {'mission': self.snapshot_dict()})

    def _on_miss(self, evaluation: GuessEvaluation, retry_session_id: Optional[str]) -> None:
        self.run.attempts_remaining = max(0, self.run.attempts_remaining - 1)
        self.message = miss_feedback(evaluation)

        if self.run.attempts_remaining == 0:
            if retry_session_id:
                self.puzzle_service.discard(retry_session_id)
            self._finish("attempts_exhausted")
            return

        self.puzzle = dict(self.puzzle, session_id=retry_session_id)
        self._notify('mission_state', {'mission': self.snapshot_dict()})

    def _advance(self) -> None:
        """Settle delay elapsed: fetch the next puzzle."""
        with self._lock:
            self._settle_call = None
            if self.run.finished or self.run.abandoned:
                return
            if self.run.state != MissionState.AWAITING_NEXT_PUZZLE:
                return
        self._load_puzzle(restart_clock=True)

    def _on_clock_tick(self, remaining: int) -> None:
        if self.run.finished or self.run.abandoned:
            return
        self.run.time_remaining = remaining
        self._notify('clock_tick', {'time_remaining': remaining})

    def _on_clock_expired(self) -> None:
        if self.run.finished or self.run.abandoned:
            return
        if self.run.state != MissionState.ACTIVE:
            return
        self.run.time_remaining = 0
        self.message = "Time's up!"
        self._finish("time_expired")

    def _finish(self, reason: str) -> bool:
        """
        Enter FINISHED. Runs once per mission; later calls return False.

        Order: stop the clock, hand the summary to the scoreboard, submit
        the score (best effort), tell the player to open the scoreboard.
        """
        if self.run.finished:
            return False
        self.run.finished = True
        self.run.state = MissionState.FINISHED
        self.finish_reason = reason

        self.clock.cancel()
        self._cancel_settle()
        if self.puzzle:
            self.puzzle_service.discard(self.puzzle["session_id"])
            self.puzzle = None

        self.summary = ResultSummary(
            score=self.run.total_score,
            puzzles_cleared=self.run.puzzles_cleared,
            level=self.run.level.name,
            timestamp_millis=now_millis()
        )
        self.handoff_store.write(self.owner_id, self.summary)

        self._submit_score()

        game_logger.log_game_event(
            self.mission_id, 'mission_finished', self.owner_id,
            reason=reason, level=self.run.level.name, total_score=self.run.total_score,
            puzzles_cleared=self.run.puzzles_cleared,
            attempts_remaining=self.run.attempts_remaining
        )
        self._notify('mission_finished', {
            'mission': self.snapshot_dict(),
            'summary': self.summary.to_dict(),
            'reason': reason,
            'navigate': 'scoreboard'
        })
        return True

    def _submit_score(self) -> None:
        if self.score_service is None:
            game_logger.logger.warning(
                f"Score store unavailable, mission {self.mission_id} result not persisted"
            )
            return

        result = self.score_service.submit_score({
            "score": self.summary.score,
            "level": self.summary.level,
            "attempts": self.summary.puzzles_cleared
        }, self.owner)

        if not result["success"]:
            game_logger.log_game_event(self.mission_id, 'score_submission_failed', self.owner_id,
                                       error=result.get("error"))

    def _cancel_settle(self) -> None:
        if self._settle_call is not None:
            self._settle_call.cancel()
            self._settle_call = None

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def snapshot(self) -> MissionSnapshot:
        with self._lock:
            return MissionSnapshot(
                mission_id=self.mission_id,
                state=self.run.state.value,
                level=self.run.level.name,
                time_remaining=self.run.time_remaining,
                attempts_remaining=self.run.attempts_remaining,
                puzzles_cleared=self.run.puzzles_cleared,
                puzzles_required=self.run.level.puzzles_required,
                total_score=self.run.total_score,
                finished=self.run.finished,
                puzzle=dict(self.puzzle) if self.puzzle else None,
                message=self.message,
                error=self.error,
                error_code=self.error_code,
                history=list(self.history)
            )

    def snapshot_dict(self) -> Dict[str, Any]:
        return asdict(self.snapshot())

    def _invalid_state(self, message: str) -> Dict[str, Any]:
        failure = error_result(ErrorCode.INVALID_STATE, message)
        failure["mission"] = self.snapshot_dict()
        return failure

    def _notify(self, event: str, payload: Dict[str, Any]) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier(self.mission_id, event, payload)
        except Exception as e:
            game_logger.logger.error(f"Failed to push '{event}' for mission {self.mission_id}: {e}")


class MissionService:
    """
    Keeps the running missions, at most one active mission per player.
    """

    def __init__(self, puzzle_service: PuzzleService, handoff_store: ResultHandoffStore,
                 scheduler, score_service=None, notifier: Optional[Notifier] = None,
                 settle_delay: float = 1.1):
        self.puzzle_service = puzzle_service
        self.handoff_store = handoff_store
        self.scheduler = scheduler
        self.score_service = score_service
        self.notifier = notifier
        self.settle_delay = settle_delay
        self.missions: Dict[str, Mission] = {}
        self.active_by_owner: Dict[str, str] = {}
        self._lock = threading.Lock()

    def start_mission(self, owner: Dict[str, Any], level_name: Optional[str]) -> Dict[str, Any]:
        """
        Create a mission for a player and load its first puzzle.

        Any mission the player still had running is abandoned first.
        """
        level = resolve_difficulty(level_name)
        mission = Mission(
            mission_id=str(uuid.uuid4()),
            owner=owner,
            level=level,
            puzzle_service=self.puzzle_service,
            handoff_store=self.handoff_store,
            scheduler=self.scheduler,
            score_service=self.score_service,
            notifier=self.notifier,
            settle_delay=self.settle_delay
        )

        # The player's previous mission, running or finished, is dropped here
        with self._lock:
            previous = self.missions.pop(self.active_by_owner.get(owner["id"]), None)
            self.missions[mission.mission_id] = mission
            self.active_by_owner[owner["id"]] = mission.mission_id
        if previous is not None:
            previous.abandon()

        result = mission.start()
        result["mission_id"] = mission.mission_id
        return result

    def get_mission(self, mission_id: str, owner_id: Optional[str] = None) -> Optional[Mission]:
        """Look up a mission; with owner_id, only that player's mission is returned."""
        mission = self.missions.get(mission_id)
        if mission is None:
            return None
        if owner_id is not None and mission.owner_id != owner_id:
            return None
        return mission

    def submit_guess(self, mission_id: str, owner_id: str, heart_raw: Any, carrot_raw: Any) -> Dict[str, Any]:
        mission = self.get_mission(mission_id, owner_id)
        if mission is None:
            return error_result(ErrorCode.MISSION_NOT_FOUND, "Mission not found")
        return mission.submit_guess(heart_raw, carrot_raw)

    def retry_puzzle(self, mission_id: str, owner_id: str) -> Dict[str, Any]:
        mission = self.get_mission(mission_id, owner_id)
        if mission is None:
            return error_result(ErrorCode.MISSION_NOT_FOUND, "Mission not found")
        return mission.retry()

    def abandon_mission(self, mission_id: str, owner_id: str) -> Dict[str, Any]:
        """Leave a mission and forget it."""
        mission = self.get_mission(mission_id, owner_id)
        if mission is None:
            return error_result(ErrorCode.MISSION_NOT_FOUND, "Mission not found")

        abandoned = mission.abandon()
        self.delete_mission(mission_id)
        return {"success": True, "abandoned": abandoned}

    def abandon_for_owner(self, owner_id: str) -> int:
        """Abandon and forget every mission of a player. Returns how many were still running."""
        with self._lock:
            owned = [m for m in self.missions.values() if m.owner_id == owner_id]
            for mission in owned:
                del self.missions[mission.mission_id]
            self.active_by_owner.pop(owner_id, None)
        return sum(1 for mission in owned if mission.abandon())

    def running_count(self) -> int:
        """Missions that are neither finished nor abandoned."""
        with self._lock:
            missions = list(self.missions.values())
        return sum(1 for m in missions if not (m.run.finished or m.run.abandoned))

    def delete_mission(self, mission_id: str) -> bool:
        with self._lock:
            mission = self.missions.pop(mission_id, None)
            if mission is None:
                return False
            if self.active_by_owner.get(mission.owner_id) == mission_id:
                del self.active_by_owner[mission.owner_id]
            return True

    def handle_auth_change(self, event: str, user: Optional[Dict[str, Any]]) -> None:
        """Signed-out players cannot keep playing."""
        if event == 'logout' and user:
            stopped = self.abandon_for_owner(user["id"])
            if stopped:
                game_logger.logger.info(f"Abandoned {stopped} mission(s) after logout of {user['id']}")


# Global service instance
_mission_service = None


def get_mission_service() -> Optional[MissionService]:
    """Get the global mission service instance."""
    return _mission_service


def initialize_mission_service(puzzle_service: PuzzleService, handoff_store: ResultHandoffStore,
                               scheduler, score_service=None, notifier: Optional[Notifier] = None,
                               settle_delay: float = 1.1) -> MissionService:
    """Initialize the global mission service instance."""
    global _mission_service
    _mission_service = MissionService(
        puzzle_service, handoff_store, scheduler,
        score_service=score_service, notifier=notifier, settle_delay=settle_delay
    )
    return _mission_service
