from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ALLOWED_ORIGINS') or []
    if allowed_origins == ['*']:
        allowed_origins = '*'
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from quizhost.services import QuizHost
    from quizhost.services.broadcast import BroadcastGateway
    from quizhost.services.cycle import QuestionCycleController
    from quizhost.services.registry import RoomRegistry
    from quizhost.services.scheduler import CountdownScheduler
    from quizhost.services.sessions import SessionResolver

    cfg = flask_app.config
    timers_enabled = not cfg.get('TESTING') or cfg.get('ENABLE_TIMERS_IN_TESTS', False)
    gateway = BroadcastGateway(socketio, namespace=cfg.get('SOCKETIO_NAMESPACE', '/'))
    registry = RoomRegistry(
        gateway=gateway,
        inactivity_timeout=cfg.get('ROOM_INACTIVITY_TIMEOUT_SEC', 2 * 60 * 60),
        logger=flask_app.logger,
    )
    sessions = SessionResolver(
        registry,
        gateway,
        avatar_pool_size=cfg.get('AVATAR_POOL_SIZE', 12),
        max_name_length=cfg.get('MAX_NAME_LENGTH', 24),
        leaderboard_top_n=cfg.get('LEADERBOARD_TOP_N', 5),
        logger=flask_app.logger,
    )
    cycle = QuestionCycleController(
        registry,
        gateway,
        CountdownScheduler(socketio, autostart=timers_enabled),
        score_base=cfg.get('SCORE_BASE', 600),
        score_bonus=cfg.get('SCORE_BONUS', 400),
        leaderboard_top_n=cfg.get('LEADERBOARD_TOP_N', 5),
        reactions=cfg.get('REACTIONS', ()),
        logger=flask_app.logger,
    )
    flask_app.extensions['quizhost'] = QuizHost(registry, gateway, sessions, cycle)

    from quizhost.main import main
    flask_app.register_blueprint(main)

    # Register Socket.IO event handlers
    from quizhost.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=cfg.get('SOCKETIO_NAMESPACE', '/'))

    if timers_enabled:
        socketio.start_background_task(registry.run_sweeper, socketio, cfg.get('CLEANUP_INTERVAL_SEC', 30 * 60))

    return flask_app
