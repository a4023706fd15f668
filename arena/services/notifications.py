import logging
import threading
import time
from typing import Dict, List, Tuple

INVITE_EVENTS = {
    'coding': 'friendInvited',
    'trivia': 'friendInvitedTrivia',
}


class Invitation:
    def __init__(self, room_code: str, inviter: str, target: str, mode: str = 'coding', created_at: float = None):
        self.room_code = room_code
        self.inviter = inviter
        self.target = target
        self.mode = mode
        self.created_at = created_at

    def to_dict(self):
        return {'roomCode': self.room_code, 'inviterUsername': self.inviter}


class NotificationRelay:
    """Best-effort, at-most-once invitation delivery.

    Invitations go to every live connection of the target and are dropped
    when the target is offline. While a delivered invitation for the same
    (target, room) is pending and unexpired, further sends are suppressed.
    """

    def __init__(self, registry, ttl_sec: int = 300, clock=time.time, logger=None):
        self._registry = registry
        self._ttl_sec = ttl_sec
        self._clock = clock
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._pending: Dict[Tuple[str, str], Invitation] = {}

    def notify(self, invitation: Invitation) -> int:
        key = (invitation.target, invitation.room_code)
        now = self._clock()
        with self._lock:
            existing = self._pending.get(key)
            if existing is not None and now - existing.created_at < self._ttl_sec:
                self._log.info(f"[invite-dup] room={invitation.room_code} target={invitation.target}")
                return 0
            if not self._registry.is_online(invitation.target):
                self._pending.pop(key, None)
                self._log.info(f"[invite-drop] room={invitation.room_code} target={invitation.target} offline")
                return 0
            invitation.created_at = now
            self._pending[key] = invitation
        event = INVITE_EVENTS.get(invitation.mode, INVITE_EVENTS['coding'])
        delivered = self._registry.send(invitation.target, event, invitation.to_dict())
        self._log.info(f"[invite] room={invitation.room_code} from={invitation.inviter} to={invitation.target} connections={delivered}")
        return delivered

    def dismiss(self, target: str, room_code: str) -> bool:
        with self._lock:
            return self._pending.pop((target, room_code), None) is not None

    def forget_room(self, room_code: str) -> None:
        with self._lock:
            for key in [k for k in self._pending if k[1] == room_code]:
                del self._pending[key]

    def pending_for(self, target: str) -> List[Invitation]:
        now = self._clock()
        with self._lock:
            return [
                inv for (t, _), inv in self._pending.items()
                if t == target and now - inv.created_at < self._ttl_sec
            ]
