import logging
import time

from arena.errors import InvalidRoomState, NotAllowed, NotFound
from .store import CLOSED, FINISHED, WAITING, Member


class MembershipManager:
    """Join/leave/reconnect for rooms.

    Membership belongs to an identity; connections come and go. A member who
    drops after the room started keeps their seat and score and may rejoin on
    a new connection.
    """

    def __init__(self, store, engine, registry, emit, notifications=None, clock=time.time, logger=None):
        self._store = store
        self._engine = engine
        self._registry = registry
        self._emit = emit
        self._notifications = notifications
        self._clock = clock
        self._log = logger or logging.getLogger(__name__)

    def join(self, code, identity: str, sid: str) -> dict:
        room = self._store.get_room(code)
        with room.lock:
            if room.state == CLOSED:
                raise NotFound('Room not found')
            member = room.member(identity)
            fresh = member is None
            if fresh:
                if room.invite_only and identity != room.creator and identity not in room.allow_list:
                    raise NotAllowed('This room is invite-only')
                if room.state != WAITING:
                    raise InvalidRoomState('Room has already started')
                member = Member(identity, self._clock())
                room.members[identity] = member
            member.connections.add(sid)
            self._registry.subscribe(sid, room.code)
            if fresh:
                room.broadcast(self._emit, 'userJoined', {'username': identity}, exclude=[identity])
                room.broadcast(self._emit, 'membersUpdated', room.members_payload())
                self._engine.maybe_start(room)
            ack = self._state(room)
        if fresh and self._notifications is not None:
            self._notifications.dismiss(identity, room.code)
        self._log.info(f"[join] code={room.code} identity={identity} sid={sid} fresh={fresh} state={room.state}")
        return ack

    def leave(self, code, identity: str, sid: str = None) -> bool:
        """Drop one connection (or all when ``sid`` is None) from a room."""
        try:
            room = self._store.get_room(code)
        except NotFound:
            if sid is not None:
                self._registry.unsubscribe(sid, str(code or '').upper())
            return False
        with room.lock:
            member = room.member(identity)
            if member is None:
                return False
            dropped = set(member.connections) if sid is None else {sid} & member.connections
            member.connections -= dropped
            for s in dropped:
                self._registry.unsubscribe(s, room.code)
            removed = room.state == WAITING and not member.active
            if removed:
                del room.members[identity]
            room.broadcast(self._emit, 'membersUpdated', room.members_payload())
        self._log.info(f"[leave] code={room.code} identity={identity} removed={removed} state={room.state}")
        self._engine.close_if_abandoned(room)
        return True

    def acknowledge(self, code, identity: str, sid: str) -> bool:
        """Client finished tearing down its results view."""
        return self.leave(code, identity, sid)

    def disconnect(self, sid: str) -> None:
        conn = self._registry.unregister(sid)
        if conn is None:
            return
        for code in sorted(conn.rooms):
            self.leave(code, conn.identity, sid)

    def _state(self, room) -> dict:
        return {
            'success': True,
            'roomCode': room.code,
            'mode': room.mode,
            'members': room.member_names(),
            'timeLeft': room.time_left(self._clock()),
            'started': room.started,
            'finished': room.state == FINISHED,
        }
