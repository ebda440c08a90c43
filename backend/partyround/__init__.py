from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS', [])

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One game per app; the scheduler lock serializes handlers and timers
    from partyround.services.games import BackgroundScheduler, GameContext, ManualScheduler
    if flask_app.config.get('TESTING'):
        scheduler = ManualScheduler()
    else:
        scheduler = BackgroundScheduler(socketio)
    game = GameContext(scheduler, config=flask_app.config)
    flask_app.extensions['partyround'] = game

    from partyround.main import main
    flask_app.register_blueprint(main)

    from partyround.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/game')

    # Register Socket.IO event handlers and wire state broadcasts
    from partyround.socketio_events import make_broadcaster, register_socketio_handlers
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')
    game.set_listener(make_broadcaster(flask_app, game, namespace))
    register_socketio_handlers(namespace=namespace)

    return flask_app
