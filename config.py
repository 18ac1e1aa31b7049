import os


def _csv(value):
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Origins allowed to open a Socket.IO connection (comma separated)
    CORS_ALLOWED_ORIGINS = _csv(os.environ.get(
        'CORS_ALLOWED_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173',
    ))
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Idle room eviction (seconds)
    ROOM_INACTIVITY_TIMEOUT_SEC = int(os.environ.get('ROOM_INACTIVITY_TIMEOUT_SEC', str(2 * 60 * 60)))
    CLEANUP_INTERVAL_SEC = int(os.environ.get('CLEANUP_INTERVAL_SEC', str(30 * 60)))
    # Quiz scoring: a correct answer earns base + bonus * (remaining / limit)
    SCORE_BASE = int(os.environ.get('SCORE_BASE', '600'))
    SCORE_BONUS = int(os.environ.get('SCORE_BONUS', '400'))
    DEFAULT_TIME_LIMIT_SEC = int(os.environ.get('DEFAULT_TIME_LIMIT_SEC', '20'))
    AVATAR_POOL_SIZE = int(os.environ.get('AVATAR_POOL_SIZE', '12'))
    LEADERBOARD_TOP_N = int(os.environ.get('LEADERBOARD_TOP_N', '5'))
    MAX_NAME_LENGTH = int(os.environ.get('MAX_NAME_LENGTH', '24'))
    REACTIONS = _csv(os.environ.get('REACTIONS', '👍,❤️,😂,😮,👏'))
    # Countdowns and the idle sweep are not started in TESTING unless enabled
    ENABLE_TIMERS_IN_TESTS = False
