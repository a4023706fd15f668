import logging
import time
from typing import Callable, List

from arena.errors import InvalidParameter, InvalidRoomState, NotAllowed
from .scoring import apply_speed_bonus, personalize, summarize, trivia_base_score
from .store import FINISHED, STARTED, WAITING, iso_timestamp


class StartPolicy:
    """When a waiting room may start.

    Invite-only rooms start once the creator and every allow-listed identity
    have joined; open rooms start at ``min_players`` members.
    """

    def __init__(self, min_players: int = 2):
        self.min_players = max(1, int(min_players))

    def satisfied(self, room) -> bool:
        if not room.members:
            return False
        if room.invite_only:
            required = set(room.allow_list) | {room.creator}
            return required.issubset(room.members)
        return len(room.members) >= self.min_players


class MatchEngine:
    """Room lifecycle: waiting -> started -> finished -> closed."""

    def __init__(self, store, timers, emit: Callable, policy: StartPolicy = None, clock=time.time,
                 score_source: str = 'judge', trivia_points: int = 10,
                 trivia_all_correct_bonus: int = 10, trivia_speed_bonus: int = 10, logger=None):
        self._store = store
        self._timers = timers
        self._emit = emit
        self.policy = policy or StartPolicy()
        self._clock = clock
        self._score_source = score_source
        self._trivia_points = trivia_points
        self._trivia_all_correct_bonus = trivia_all_correct_bonus
        self._trivia_speed_bonus = trivia_speed_bonus
        self._log = logger or logging.getLogger(__name__)
        self.on_started: List[Callable] = []
        self.on_finalized: List[Callable] = []
        timers.on_expire = self._on_timer_expired

    # ---- start ----

    def maybe_start(self, room) -> bool:
        """Start the room if its start condition holds. Caller holds ``room.lock``."""
        if room.state != WAITING or not self.policy.satisfied(room):
            return False
        room.state = STARTED
        self._timers.start(room)
        payload = {
            'timeLeft': room.time_left(self._clock()),
            'expiresAt': iso_timestamp(room.expires_at),
        }
        room.broadcast(self._emit, 'battleStarted', payload)
        self._log.info(f"[room-start] code={room.code} members={room.member_names()} timeLeft={payload['timeLeft']}")
        self._run_hooks(self.on_started, room)
        return True

    # ---- scoring ----

    def record_score(self, code, identity: str, score) -> int:
        """Replace a coding member's score with the latest graded submission."""
        score = self._validate_score(score)
        room = self._store.get_room(code)
        with room.lock:
            if room.mode != 'coding':
                raise InvalidParameter('Scores in trivia rooms come from trivia submissions')
            member = self._require_playing(room, identity)
            member.judged_score = score
            member.score = score
            room.broadcast(self._emit, 'membersUpdated', room.members_payload())
        self._log.info(f"[score] code={room.code} member={identity} score={score}")
        return score

    def sync_score(self, code, identity: str, claimed) -> int:
        """Handle a client-reported score (the ``updateScore`` event)."""
        if self._score_source == 'client':
            return self.record_score(code, identity, claimed)
        room = self._store.get_room(code)
        with room.lock:
            member = self._require_playing(room, identity)
            if member.judged_score is None:
                raise InvalidParameter('No graded submission for this member')
            if claimed != member.judged_score:
                self._log.warning(
                    f"[score-mismatch] code={room.code} member={identity} claimed={claimed} judged={member.judged_score}"
                )
            member.score = member.judged_score
            room.broadcast(self._emit, 'membersUpdated', room.members_payload())
            return member.score

    def submit_trivia(self, code, identity: str, correct_count, total_questions) -> int:
        try:
            correct_count = int(correct_count)
            total_questions = int(total_questions)
        except (TypeError, ValueError):
            raise InvalidParameter('correctCount and totalQuestions must be integers')
        if total_questions <= 0 or not 0 <= correct_count <= total_questions:
            raise InvalidParameter('correctCount must be between 0 and totalQuestions')

        room = self._store.get_room(code)
        with room.lock:
            if room.mode != 'trivia':
                raise InvalidParameter('Not a trivia room')
            member = self._require_playing(room, identity)
            if member.submitted_at is not None:
                raise InvalidRoomState('Trivia results already submitted')
            member.correct_count = correct_count
            member.total_questions = total_questions
            member.submitted_at = self._clock()
            member.score = trivia_base_score(
                correct_count, total_questions, self._trivia_points, self._trivia_all_correct_bonus
            )
            member.finished = True
            score = member.score
            room.broadcast(self._emit, 'membersUpdated', room.members_payload())
            self._log.info(f"[trivia-submit] code={room.code} member={identity} correct={correct_count}/{total_questions} score={score}")
            self._finalize_if_complete(room)
        return score

    def finish(self, code, identity: str) -> None:
        room = self._store.get_room(code)
        with room.lock:
            member = room.member(identity)
            if member is None:
                raise NotAllowed('Not a member of this room')
            if room.state != STARTED:
                raise InvalidRoomState(f'Room is {room.state}')
            if member.finished:
                return
            member.finished = True
            room.broadcast(self._emit, 'membersUpdated', room.members_payload())
            self._log.info(f"[finish] code={room.code} member={identity} score={member.score}")
            self._finalize_if_complete(room)

    # ---- finalization ----

    def finalize(self, room, reason: str) -> bool:
        """Compute and broadcast final results. Runs at most once per room."""
        with room.lock:
            if room.state != STARTED:
                return False
            room.state = FINISHED
            room.finished_at = self._clock()
            self._timers.cancel(room)
            members = list(room.members.values())
            if room.mode == 'trivia':
                awarded = apply_speed_bonus(members, self._trivia_speed_bonus)
                if awarded is not None:
                    self._log.info(f"[speed-bonus] code={room.code} member={awarded.identity}")
            results = summarize(room.code, room.mode, members)
            results['reason'] = reason
            results['finishedAt'] = iso_timestamp(room.finished_at)
            room.results = results

            event = 'triviaResults' if room.mode == 'trivia' else 'codingResults'
            for member in members:
                payload = personalize(results, member)
                for sid in sorted(member.connections):
                    self._emit(event, payload, sid)
            room.broadcast(self._emit, 'membersUpdated', room.members_payload())
            self._log.info(
                f"[finalize] code={room.code} reason={reason} leaderboard={results['leaderboard']} tie={results['isTie']}"
            )
            self._run_hooks(self.on_finalized, room, results)
        return True

    def close_if_abandoned(self, room) -> bool:
        """Close a finished room once none of its members is connected."""
        with room.lock:
            if room.state != FINISHED or any(m.active for m in room.members.values()):
                return False
        return self._store.close(room)

    def sweep(self):
        return self._store.sweep()

    def run_sweeper(self, sleep, interval: float) -> None:
        while True:
            sleep(interval)
            try:
                self.sweep()
            except Exception:
                self._log.exception("[sweep] failed")

    # ---- helpers ----

    def _on_timer_expired(self, room) -> None:
        self.finalize(room, 'timer')

    def _finalize_if_complete(self, room) -> None:
        if room.members and all(m.finished for m in room.members.values()):
            self.finalize(room, 'all_finished')

    def _require_playing(self, room, identity: str):
        member = room.member(identity)
        if member is None:
            raise NotAllowed('Not a member of this room')
        if room.state != STARTED:
            raise InvalidRoomState(f'Room is {room.state}')
        if member.finished:
            raise InvalidRoomState('You have already finished')
        return member

    @staticmethod
    def _validate_score(score) -> int:
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise InvalidParameter('score must be a number')
        if not 0 <= score <= 100:
            raise InvalidParameter('score must be between 0 and 100')
        return int(round(score))

    def _run_hooks(self, hooks, *args) -> None:
        for hook in list(hooks):
            try:
                hook(*args)
            except Exception:
                self._log.exception(f"[hook-failed] hook={getattr(hook, '__name__', hook)}")
