import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Set

from arena.errors import NetworkError


class Connection:
    """A live Socket.IO connection and the rooms it has subscribed to."""

    def __init__(self, sid: str, identity: str, connected_at: float):
        self.sid = sid
        self.identity = identity
        self.connected_at = connected_at
        self.rooms: Set[str] = set()


class ConnectionRegistry:
    """Maps live connections to authenticated identities.

    Every connection owns its room subscriptions; they are handed back on
    unregister so callers can tear down membership for a dropped socket.
    """

    def __init__(self, emit: Callable[[str, object, str], None], clock=time.time, logger=None):
        self._emit = emit
        self._clock = clock
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._by_sid: Dict[str, Connection] = {}
        self._by_identity: Dict[str, Set[str]] = {}

    def register(self, sid: str, identity: str) -> Connection:
        with self._lock:
            conn = Connection(sid, identity, self._clock())
            self._by_sid[sid] = conn
            self._by_identity.setdefault(identity, set()).add(sid)
        self._log.info(f"[connect] sid={sid} identity={identity}")
        return conn

    def unregister(self, sid: str) -> Optional[Connection]:
        with self._lock:
            conn = self._by_sid.pop(sid, None)
            if conn is None:
                return None
            sids = self._by_identity.get(conn.identity)
            if sids is not None:
                sids.discard(sid)
                if not sids:
                    self._by_identity.pop(conn.identity, None)
        self._log.info(f"[disconnect] sid={sid} identity={conn.identity} rooms={sorted(conn.rooms)}")
        return conn

    def identity_of(self, sid: str) -> str:
        conn = self._by_sid.get(sid)
        if conn is None:
            raise NetworkError('Connection is not registered')
        return conn.identity

    def connections_of(self, identity: str) -> List[str]:
        with self._lock:
            return sorted(self._by_identity.get(identity, ()))

    def is_online(self, identity: str) -> bool:
        return bool(self._by_identity.get(identity))

    def subscribe(self, sid: str, code: str) -> None:
        with self._lock:
            conn = self._by_sid.get(sid)
            if conn is not None:
                conn.rooms.add(code)

    def unsubscribe(self, sid: str, code: str) -> None:
        with self._lock:
            conn = self._by_sid.get(sid)
            if conn is not None:
                conn.rooms.discard(code)

    def send(self, identity: str, event: str, payload) -> int:
        sids = self.connections_of(identity)
        for sid in sids:
            self._emit(event, payload, sid)
        return len(sids)
