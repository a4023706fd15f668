import logging
import threading
import time

from flask import current_app

from arena.errors import InvalidParameter, InvalidRoomState, NotAllowed
from .judge import JudgeGateway
from .notifications import Invitation, NotificationRelay
from .problems import ProblemCatalog
from .rooms.connections import ConnectionRegistry
from .rooms.engine import MatchEngine, StartPolicy
from .rooms.membership import MembershipManager
from .rooms.store import WAITING, RoomStore
from .rooms.timers import TimerAuthority


class ArenaServices:
    """One isolated set of room/match services.

    ``emit(event, payload, sid)`` is the only path to the transport, and
    ``spawn``/``sleep`` run background work (Socket.IO background tasks in the
    app; None in tests, which drive ticks and sweeps by hand).
    """

    def __init__(self, config, emit, logger=None, clock=time.time, spawn=None, sleep=time.sleep,
                 problems=None, judge_transport=None, rng=None):
        log = logger or logging.getLogger('arena')
        self.config = config
        self.clock = clock
        self._spawn = spawn
        self._sleep = sleep
        self._sweeper_lock = threading.Lock()
        self._sweeper_started = False

        self.problems = problems if problems is not None else ProblemCatalog.from_dir(config.get('PROBLEMS_PATH'))
        self.registry = ConnectionRegistry(emit, clock=clock, logger=log)
        self.timers = TimerAuthority(
            emit, clock=clock, spawn=spawn, sleep=sleep,
            interval=float(config.get('TIMER_TICK_SEC', 1)),
            heartbeat_sec=int(config.get('TIMER_HEARTBEAT_SEC', 0)),
            logger=log,
        )
        self.store = RoomStore(
            self.timers, emit, problems=self.problems, clock=clock,
            code_length=int(config.get('ROOM_CODE_LENGTH', 6)),
            durations=config.get('ROOM_DURATIONS_SEC', (300, 600, 900)),
            grace_sec=int(config.get('ROOM_CLOSE_GRACE_SEC', 60)),
            waiting_ttl_sec=int(config.get('WAITING_ROOM_TTL_SEC', 1800)),
            logger=log, rng=rng,
        )
        self.engine = MatchEngine(
            self.store, self.timers, emit,
            policy=StartPolicy(config.get('MIN_PLAYERS', 2)),
            clock=clock,
            score_source=config.get('SCORE_SOURCE', 'judge'),
            trivia_points=int(config.get('TRIVIA_POINTS_PER_CORRECT', 10)),
            trivia_all_correct_bonus=int(config.get('TRIVIA_ALL_CORRECT_BONUS', 10)),
            trivia_speed_bonus=int(config.get('TRIVIA_SPEED_BONUS', 10)),
            logger=log,
        )
        self.notifications = NotificationRelay(
            self.registry, ttl_sec=int(config.get('INVITATION_TTL_SEC', 300)), clock=clock, logger=log
        )
        self.membership = MembershipManager(
            self.store, self.engine, self.registry, emit,
            notifications=self.notifications, clock=clock, logger=log,
        )
        self.judge = JudgeGateway(
            self.problems,
            base_url=config.get('JUDGE0_URL', 'https://ce.judge0.com'),
            api_key=config.get('JUDGE0_API_KEY'),
            timeout=float(config.get('JUDGE_TIMEOUT_SEC', 30)),
            hidden_case_weight=int(config.get('HIDDEN_CASE_WEIGHT', 20)),
            transport=judge_transport,
            logger=log,
        )

        # Invitations for a room are stale once it starts or closes
        self.engine.on_started.append(self._forget_invitations)
        self.store.on_close.append(self._forget_invitations)

    def create_room(self, creator: str, difficulty, duration_sec, allow_username=None, mode='coding'):
        allow_username = _username(allow_username, 'allowUsername')
        room = self.store.create_room(
            difficulty, duration_sec, creator,
            allow=[allow_username] if allow_username else None,
            mode=mode,
        )
        for target in sorted(room.allow_list or ()):
            self.notifications.notify(Invitation(room.code, creator, target, mode=room.mode))
        return room

    def invite(self, code, inviter: str, target: str) -> int:
        target = _username(target, 'username')
        if target is None:
            raise InvalidParameter('username is required')
        room = self.store.get_room(code)
        with room.lock:
            if inviter != room.creator and inviter not in room.members:
                raise NotAllowed('Only room members can invite')
            if room.invite_only and target not in room.allow_list:
                raise NotAllowed('That user is not on the invite list')
            if room.state != WAITING:
                raise InvalidRoomState('Room has already started')
        return self.notifications.notify(Invitation(room.code, inviter, target, mode=room.mode))

    def ensure_sweeper(self) -> bool:
        if self._spawn is None:
            return False
        with self._sweeper_lock:
            if self._sweeper_started:
                return False
            self._sweeper_started = True
        self._spawn(self.engine.run_sweeper, self._sleep, float(self.config.get('SWEEP_INTERVAL_SEC', 10)))
        return True

    def _forget_invitations(self, room) -> None:
        self.notifications.forget_room(room.code)


def _username(value, field):
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidParameter(f'{field} must be a string')
    return value.strip() or None


def get_services() -> ArenaServices:
    return current_app.extensions['arena']
