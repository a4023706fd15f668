import logging
import time
from typing import Callable, Optional

IDLE = 'idle'
RUNNING = 'running'
EXPIRED = 'expired'
CANCELLED = 'cancelled'


class TimerState:
    def __init__(self):
        self.state = IDLE
        self.last_sent: Optional[int] = None
        # bumped on every start so a stale worker loop exits on wake-up
        self.generation = 0


class TimerAuthority:
    """Single source of truth for every room's countdown.

    - ``start`` fixes ``expires_at`` from the room's immutable duration
    - a background worker (one per running room) calls ``tick`` every interval
    - ``tick`` broadcasts ``timerUpdate`` and, at zero, hands the room to
      ``on_expire`` (the match engine finalizes it)
    - no worker is spawned when ``spawn`` is None; tests drive ``tick`` directly
    """

    def __init__(self, emit: Callable, clock=time.time, spawn=None, sleep=time.sleep,
                 interval: float = 1.0, heartbeat_sec: int = 0, logger=None):
        self._emit = emit
        self._clock = clock
        self._spawn = spawn
        self._sleep = sleep
        self._interval = interval
        self._heartbeat_sec = heartbeat_sec
        self._log = logger or logging.getLogger(__name__)
        self.on_expire: Optional[Callable] = None

    def start(self, room) -> None:
        """Start the countdown. Caller holds ``room.lock``."""
        now = self._clock()
        timer = room.timer
        room.started_at = now
        room.expires_at = now + room.duration_sec
        timer.state = RUNNING
        timer.last_sent = room.duration_sec
        timer.generation += 1
        self._log.info(f"[timer-set] room={room.code} duration={room.duration_sec}s deadline={room.expires_at}")
        if self._spawn is not None:
            self._spawn(self._worker, room, timer.generation)

    def time_left(self, room) -> Optional[int]:
        return room.time_left(self._clock())

    def tick(self, room) -> bool:
        """Broadcast the remaining time; returns False once the timer is done."""
        with room.lock:
            timer = room.timer
            if timer.state != RUNNING:
                return False
            remaining = room.time_left(self._clock())
            if timer.last_sent is not None:
                remaining = min(remaining, timer.last_sent)
            timer.last_sent = remaining
            room.broadcast(self._emit, 'timerUpdate', {'timeLeft': remaining})
            if remaining > 0:
                return True
            timer.state = EXPIRED
            self._log.info(f"[timer-fire] room={room.code} state={room.state}")
            if self.on_expire is not None:
                self.on_expire(room)
            return False

    def cancel(self, room) -> None:
        """Stop ticking. Caller holds ``room.lock``."""
        if room.timer.state == RUNNING:
            room.timer.state = CANCELLED
            self._log.info(f"[timer-cancel] room={room.code} remaining={room.timer.last_sent}")

    def _worker(self, room, generation: int) -> None:
        since_heartbeat = 0.0
        while True:
            self._sleep(self._interval)
            if room.timer.generation != generation:
                return
            if not self.tick(room):
                return
            if self._heartbeat_sec:
                since_heartbeat += self._interval
                if since_heartbeat >= self._heartbeat_sec:
                    since_heartbeat = 0.0
                    self._log.info(f"[timer-heartbeat] room={room.code} remaining={room.timer.last_sent}s")
