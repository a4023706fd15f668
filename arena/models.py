from arena import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class MatchRecord(db.Model):
    """One member's outcome in a finalized room."""
    __tablename__ = 'match_record'
    id = db.Column(db.Integer, primary_key=True)
    room_code = db.Column(db.String(16), nullable=False, index=True)
    mode = db.Column(db.String(16), nullable=False, default='coding')
    username = db.Column(db.String(64), nullable=False, index=True)
    opponent_username = db.Column(db.String(256), nullable=True)
    points = db.Column(db.Integer, nullable=False, default=0)
    result = db.Column(db.String(8), nullable=False)  # win, loss, tie
    started_at = db.Column(db.DateTime, nullable=True)
    finished_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': str(self.id),
            'roomCode': self.room_code,
            'mode': self.mode,
            'startedAt': self.started_at.isoformat() if self.started_at else None,
            'opponentUsername': self.opponent_username,
            'points': self.points,
            'result': self.result,
        }
