import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///arena.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173').split(',')
    # Room policy
    ROOM_DURATIONS_SEC = [int(v) for v in os.environ.get('ROOM_DURATIONS_SEC', '300,600,900').split(',')]
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    # Minimum members for open rooms to start (invite-only rooms wait for the invitees)
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
    # Timers (seconds)
    TIMER_TICK_SEC = float(os.environ.get('TIMER_TICK_SEC', '1'))
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
    ROOM_CLOSE_GRACE_SEC = int(os.environ.get('ROOM_CLOSE_GRACE_SEC', '60'))
    WAITING_ROOM_TTL_SEC = int(os.environ.get('WAITING_ROOM_TTL_SEC', '1800'))
    SWEEP_INTERVAL_SEC = int(os.environ.get('SWEEP_INTERVAL_SEC', '10'))
    INVITATION_TTL_SEC = int(os.environ.get('INVITATION_TTL_SEC', '300'))
    # 'judge' keeps the server-graded score authoritative; 'client' trusts updateScore
    SCORE_SOURCE = os.environ.get('SCORE_SOURCE', 'judge')
    # Judge0
    JUDGE0_URL = os.environ.get('JUDGE0_URL', 'https://ce.judge0.com')
    JUDGE0_API_KEY = os.environ.get('JUDGE0_API_KEY')
    JUDGE_TIMEOUT_SEC = float(os.environ.get('JUDGE_TIMEOUT_SEC', '30'))
    HIDDEN_CASE_WEIGHT = int(os.environ.get('HIDDEN_CASE_WEIGHT', '20'))
    PROBLEMS_PATH = os.environ.get('PROBLEMS_PATH')
    # Trivia scoring
    TRIVIA_POINTS_PER_CORRECT = int(os.environ.get('TRIVIA_POINTS_PER_CORRECT', '10'))
    TRIVIA_ALL_CORRECT_BONUS = int(os.environ.get('TRIVIA_ALL_CORRECT_BONUS', '10'))
    TRIVIA_SPEED_BONUS = int(os.environ.get('TRIVIA_SPEED_BONUS', '10'))
