"""Match history: the stats store fed by room finalization."""
from datetime import datetime, timezone
from functools import partial

from arena import db
from arena.models import MatchRecord
from arena.services.rooms.scoring import match_result


def _dt(ts):
    return datetime.fromtimestamp(ts, tz=timezone.utc) if ts is not None else None


def record_results(app, room, results) -> None:
    """Persist one MatchRecord per member. Called from finalization, possibly
    on a timer background task, so it pushes its own app context."""
    with app.app_context():
        try:
            for member in room.members.values():
                opponents = [name for name in room.members if name != member.identity]
                db.session.add(MatchRecord(
                    room_code=room.code,
                    mode=room.mode,
                    username=member.identity,
                    opponent_username=', '.join(opponents) or None,
                    points=member.score,
                    result=match_result(results, member.identity),
                    started_at=_dt(room.started_at),
                    finished_at=_dt(room.finished_at),
                ))
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
    app.logger.info(f"[stats] recorded room={room.code} members={len(room.members)}")


def results_recorder(app):
    return partial(record_results, app)


def match_history(username: str) -> dict:
    rows = (MatchRecord.query
            .filter_by(username=username)
            .order_by(MatchRecord.finished_at.desc(), MatchRecord.id.desc())
            .all())
    return {
        'totalPoints': sum(r.points for r in rows),
        'matches': [r.to_dict() for r in rows],
    }
