"""
Session Clock

A cancellable one-second countdown and the schedulers that drive it.

The clock never sleeps itself. It asks a scheduler to call it back after
each interval, so production code runs it on Flask-SocketIO background
tasks while tests advance a manual scheduler.
"""

from contextlib import nullcontext
from typing import Callable, Optional


class ScheduledCall:
    """Handle to a delayed callback; cancelling it suppresses the call."""

    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class BackgroundScheduler:
    """Runs delayed callbacks on Flask-SocketIO background tasks."""

    def __init__(self, socketio):
        self.socketio = socketio

    def schedule(self, delay: float, callback: Callable, *args) -> ScheduledCall:
        call = ScheduledCall()

        def _runner():
            self.socketio.sleep(delay)
            if not call.cancelled:
                callback(*args)

        self.socketio.start_background_task(_runner)
        return call


class SessionClock:
    """
    Countdown for one mission.

    start() arms the clock with a number of seconds; every tick removes one
    second and reports the remaining time. Reaching zero deactivates the
    clock and fires on_expire exactly once. pause() and cancel() stop the
    countdown; only a paused clock can be resumed.
    """

    def __init__(self, scheduler, on_tick: Optional[Callable[[int], None]] = None,
                 on_expire: Optional[Callable[[], None]] = None,
                 interval: float = 1.0, guard=None):
        self.scheduler = scheduler
        self.on_tick = on_tick
        self.on_expire = on_expire
        self.interval = interval
        self.guard = guard
        self.remaining = 0
        self.active = False
        self.cancelled = False
        self._pending: Optional[ScheduledCall] = None
        self._generation = 0

    def start(self, seconds: int) -> None:
        if self.cancelled:
            return
        self._clear_pending()
        self.remaining = max(0, int(seconds))
        self.active = False
        self.resume()

    def resume(self) -> None:
        if self.cancelled or self.active:
            return
        if self.remaining <= 0:
            self._expire()
            return
        self.active = True
        self._schedule_next()

    def pause(self) -> None:
        self.active = False
        self._clear_pending()

    def cancel(self) -> None:
        self.cancelled = True
        self.pause()

    def tick(self) -> None:
        """One interval elapsed."""
        if not self.active or self.cancelled:
            return
        self.remaining = max(0, self.remaining - 1)
        if self.on_tick:
            self.on_tick(self.remaining)
        if self.remaining == 0:
            self._expire()
        elif self.active:
            self._schedule_next()

    def _expire(self) -> None:
        self.active = False
        self._clear_pending()
        if self.on_expire:
            self.on_expire()

    def _schedule_next(self) -> None:
        self._clear_pending()
        self._pending = self.scheduler.schedule(self.interval, self._fire, self._generation)

    def _fire(self, generation: int) -> None:
        with self.guard if self.guard is not None else nullcontext():
            # Callbacks armed before the last pause or restart are stale
            if generation != self._generation:
                return
            self._pending = None
            self.tick()

    def _clear_pending(self) -> None:
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
