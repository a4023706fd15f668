import logging
import math
import random
import string
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from arena.errors import InvalidParameter, NotFound
from .scoring import personalize
from .timers import TimerState

WAITING = 'waiting'
STARTED = 'started'
FINISHED = 'finished'
CLOSED = 'closed'

DIFFICULTIES = ('easy', 'medium', 'hard')
MODES = ('coding', 'trivia')


def normalize_code(code) -> str:
    return str(code or '').strip().upper()


def iso_timestamp(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace('+00:00', 'Z')


class Member:
    def __init__(self, identity: str, joined_at: float):
        self.identity = identity
        self.joined_at = joined_at
        self.connections = set()
        self.score = 0
        self.finished = False
        # coding: latest score produced by the judge for this member
        self.judged_score: Optional[int] = None
        # trivia
        self.correct_count: Optional[int] = None
        self.total_questions: Optional[int] = None
        self.submitted_at: Optional[float] = None
        self.speed_bonus = 0

    @property
    def active(self) -> bool:
        return bool(self.connections)

    def to_dict(self):
        return {
            'username': self.identity,
            'score': self.score,
            'finished': self.finished,
            'active': self.active,
        }


class Room:
    """A bounded-duration match instance.

    All mutation of a room, its members and its timer happens while holding
    ``room.lock``.
    """

    def __init__(self, code, mode, difficulty, duration_sec, creator, problem=None,
                 allow_list=None, created_at=None):
        self.code = code
        self.mode = mode
        self.difficulty = difficulty
        self.duration_sec = duration_sec
        self.creator = creator
        self.problem = problem
        self.allow_list = set(allow_list) if allow_list else None
        self.created_at = created_at if created_at is not None else time.time()
        self.members: Dict[str, Member] = {}
        self.state = WAITING
        self.started_at: Optional[float] = None
        self.expires_at: Optional[float] = None
        self.finished_at: Optional[float] = None
        self.results: Optional[dict] = None
        self.timer = TimerState()
        self.lock = threading.RLock()

    @property
    def started(self) -> bool:
        return self.state != WAITING

    @property
    def invite_only(self) -> bool:
        return self.allow_list is not None

    def member(self, identity: str) -> Optional[Member]:
        return self.members.get(identity)

    def member_names(self) -> List[str]:
        return list(self.members)

    def connection_ids(self, exclude: Iterable[str] = ()) -> List[str]:
        skip = set(exclude)
        sids = []
        for m in self.members.values():
            if m.identity in skip:
                continue
            sids.extend(sorted(m.connections))
        return sids

    def broadcast(self, emit: Callable, event: str, payload, exclude: Iterable[str] = ()) -> None:
        for sid in self.connection_ids(exclude):
            emit(event, payload, sid)

    def time_left(self, now: float) -> Optional[int]:
        if self.expires_at is None:
            return None
        if self.state in (FINISHED, CLOSED):
            return 0
        return max(0, math.ceil(self.expires_at - now))

    def members_payload(self):
        return [m.to_dict() for m in self.members.values()]

    def to_dict(self, now: float, viewer: Optional[str] = None):
        payload = {
            'code': self.code,
            'mode': self.mode,
            'difficulty': self.difficulty,
            'durationSec': self.duration_sec,
            'problem': self.problem.to_public_dict() if self.problem else None,
            'timeLeft': self.time_left(now),
            'expiresAt': iso_timestamp(self.expires_at),
            'started': self.started,
            'state': self.state,
            'members': self.members_payload(),
        }
        if self.results is not None:
            member = self.member(viewer) if viewer else None
            payload['results'] = personalize(self.results, member) if member else dict(self.results)
        return payload


class RoomStore:
    """In-memory table of active rooms, keyed by code."""

    def __init__(self, timers, emit, problems=None, clock=time.time, code_length=6,
                 durations=(300, 600, 900), grace_sec=60, waiting_ttl_sec=1800,
                 logger=None, rng=None):
        self._timers = timers
        self._emit = emit
        self._problems = problems
        self._clock = clock
        self._code_length = code_length
        self._durations = tuple(durations)
        self._grace_sec = grace_sec
        self._waiting_ttl_sec = waiting_ttl_sec
        self._log = logger or logging.getLogger(__name__)
        self._rng = rng or random.SystemRandom()
        self._lock = threading.Lock()
        self._rooms: Dict[str, Room] = {}
        self.on_close: List[Callable[[Room], None]] = []

    @property
    def allowed_durations(self):
        return self._durations

    def create_room(self, difficulty, duration_sec, creator, allow=None, mode='coding') -> Room:
        difficulty = str(difficulty or '').lower()
        if difficulty not in DIFFICULTIES:
            raise InvalidParameter(f'difficulty must be one of {", ".join(DIFFICULTIES)}')
        if mode not in MODES:
            raise InvalidParameter(f'mode must be one of {", ".join(MODES)}')
        try:
            duration_sec = int(duration_sec)
        except (TypeError, ValueError):
            raise InvalidParameter('durationSec must be an integer')
        if duration_sec <= 0 or duration_sec not in self._durations:
            allowed = ', '.join(str(d) for d in self._durations)
            raise InvalidParameter(f'durationSec must be one of {allowed}')

        problem = None
        if mode == 'coding':
            if self._problems is None:
                raise InvalidParameter('No problem source configured')
            problem = self._problems.pick(difficulty, rng=self._rng)
            if problem is None:
                raise InvalidParameter(f'No {difficulty} problems available')

        allow_list = {a for a in (allow or ()) if a and a != creator} or None
        with self._lock:
            code = self._fresh_code()
            room = Room(code, mode, difficulty, duration_sec, creator, problem=problem,
                        allow_list=allow_list, created_at=self._clock())
            self._rooms[code] = room
        self._log.info(
            f"[room-create] code={code} mode={mode} difficulty={difficulty} "
            f"duration={duration_sec}s creator={creator} allow={sorted(allow_list or [])}"
        )
        return room

    def get_room(self, code) -> Room:
        room = self._rooms.get(normalize_code(code))
        if room is None or room.state == CLOSED:
            raise NotFound('Room not found')
        return room

    def rooms(self) -> List[Room]:
        with self._lock:
            return list(self._rooms.values())

    def find_active_room(self, identity: str, problem_id=None) -> Optional[Room]:
        for room in self.rooms():
            if room.state != STARTED or room.mode != 'coding' or identity not in room.members:
                continue
            if problem_id is None or (room.problem and room.problem.id == str(problem_id)):
                return room
        return None

    def close_room(self, code) -> None:
        room = self._rooms.get(normalize_code(code))
        if room is not None:
            self.close(room)

    def close(self, room: Room) -> bool:
        """Close a room; returns False if it was already closed."""
        with room.lock:
            if room.state == CLOSED:
                return False
            previous = room.state
            room.state = CLOSED
            self._timers.cancel(room)
            room.broadcast(self._emit, 'roomClosed', {'roomCode': room.code})
        with self._lock:
            if self._rooms.get(room.code) is room:
                del self._rooms[room.code]
        self._log.info(f"[room-close] code={room.code} from_state={previous}")
        for hook in list(self.on_close):
            hook(room)
        return True

    def sweep(self, now: Optional[float] = None) -> List[str]:
        """Close finished rooms past their grace period and stale waiting rooms."""
        now = self._clock() if now is None else now
        closed = []
        for room in self.rooms():
            with room.lock:
                stale = (
                    (room.state == FINISHED and room.finished_at is not None
                     and now - room.finished_at >= self._grace_sec)
                    or (room.state == WAITING and now - room.created_at >= self._waiting_ttl_sec)
                )
            if stale and self.close(room):
                closed.append(room.code)
        if closed:
            self._log.info(f"[sweep] closed={closed}")
        return closed

    def _fresh_code(self) -> str:
        alphabet = string.ascii_uppercase + string.digits
        while True:
            code = ''.join(self._rng.choice(alphabet) for _ in range(self._code_length))
            if code not in self._rooms:
                return code
