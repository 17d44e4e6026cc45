# backend/tournament_draw/app.py

import logging

from flask import Flask, jsonify
from flask_cors import CORS

from .config import LOG_LEVEL
from .routes_health import bp_health
from .api.draw import bp_draw

logger = logging.getLogger(__name__)


def create_app():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(__name__)

    CORS(app, resources={r"/*": {"origins": "*"}})

    app.register_blueprint(bp_health)
    app.register_blueprint(bp_draw)

    @app.errorhandler(Exception)
    def handle_error(e):
        logger.exception("unhandled error")
        return jsonify({"ok": False, "error": str(e)}), 500

    return app
