from __future__ import annotations

import logging
import os
import secrets

import flask
import flask_socketio

from mmg.configurations.game_config import GameConfig
from mmg.server.game_service import MarketGameService
from mmg.server.namespace import MarketGameNamespace


def setup_logger(name, log_file, level=logging.INFO):
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler = logging.FileHandler(log_file)
    handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.addHandler(handler)
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger


logger = logging.getLogger(__name__)


def create_app(
    config: GameConfig,
) -> tuple[flask.Flask, flask_socketio.SocketIO, MarketGameService]:
    """Build the Flask app, its Socket.IO server and the game service behind it.

    The background heartbeat loop is not started here; ``run`` starts it.
    """
    app = flask.Flask(__name__)
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", secrets.token_hex(16))
    app.config["DEBUG"] = config.debug

    socketio = flask_socketio.SocketIO(
        app,
        cors_allowed_origins=config.cors_allowed_origins,
        logger=config.debug,
    )

    service = MarketGameService(config=config, socketio=socketio)
    socketio.on_namespace(MarketGameNamespace("/", service=service))

    @app.route("/")
    def index():
        return flask.jsonify({"status": "ok", **service.status()})

    return app, socketio, service


def run(config: GameConfig):
    global logger
    logger = setup_logger("mmg", "./mmglog.log", level=logging.DEBUG if config.debug else logging.INFO)

    app, socketio, service = create_app(config)
    service.start()
    logger.info("Heartbeat monitor started")

    print("\n" + "=" * 70)
    print("Market-making game server")
    print("=" * 70)
    print(f"  Mode:            {config.mode}")
    print(f"  Local:           http://localhost:{config.port}")
    print(f"  Allowed origins: {', '.join(config.cors_allowed_origins)}")
    print(f"  Risk-free step:  {config.rf_step:.6f} per {config.round_duration_s}s round")
    print("=" * 70 + "\n")

    try:
        socketio.run(
            app,
            log_output=config.debug,
            port=config.port,
            host=config.host,
        )
    finally:
        service.shutdown()
