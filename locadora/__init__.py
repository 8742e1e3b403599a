import logging
import time

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from .config import get_settings
from .controllers.rentals import bp as rentals_bp
from .models.store import Store
from .services.responses import format_error

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    pkg_logger = logging.getLogger("locadora")
    pkg_logger.setLevel(level.upper())
    if not pkg_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        pkg_logger.addHandler(handler)


def create_app(config: dict | None = None):
    app = Flask(__name__)
    app.config.update(get_settings().flask_config())
    app.config.update(config or {})
    configure_logging(app.config["LOG_LEVEL"])

    # STORE in config wins (tests); DATA_PATH gets a private file-backed store
    store = app.config.get("STORE")
    if store is None:
        data_path = app.config.get("DATA_PATH")
        store = Store(data_path) if data_path else Store.instance()
    app.extensions["locadora.store"] = store

    app.register_blueprint(rentals_bp)
    _register_request_logging(app)
    _register_error_handlers(app)
    return app


def _register_request_logging(app: Flask) -> None:
    @app.before_request
    def _start_timer():
        g.started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = g.get("started")
        duration = (time.perf_counter() - started) * 1000 if started else 0.0
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(level, "%s %s - %s - %.1fms",
                   request.method, request.path, response.status_code, duration)
        return response


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return jsonify({
            "success": False,
            "error": exc.description or exc.name,
            "code": exc.name.upper().replace(" ", "_"),
        }), exc.code

    @app.errorhandler(Exception)
    def _unhandled(exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify(format_error(exc, app.config["EXPOSE_ERROR_DETAILS"])), 500
