from __future__ import annotations

import atexit
import logging
import threading
from dataclasses import replace
from typing import Any

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from growcare.blueprints.api import care_api
from growcare.config import load_config, setup_logging


def create_app(
    config_overrides: dict[str, Any] | None = None,
    *,
    dispatcher: Any = None,
    plant_directory: Any = None,
) -> Flask:
    """Build the Flask app around one ServiceContainer.

    ``config_overrides`` maps AppConfig field names to values and is applied
    on top of the environment before validation.
    """
    config = load_config()
    if config_overrides:
        config = replace(config, **config_overrides)

    setup_logging(debug=config.DEBUG)

    flask_app = Flask(__name__)
    flask_app.config.update(config.as_flask_config())

    from growcare.services.container import ServiceContainer

    container = ServiceContainer.build(config, dispatcher=dispatcher, plant_directory=plant_directory)
    flask_app.config["CONTAINER"] = container
    container.database.init_app(flask_app)

    _shutdown_lock = threading.Lock()
    _shutdown_done = False

    def _graceful_shutdown(reason: str = "unknown") -> None:
        nonlocal _shutdown_done
        with _shutdown_lock:
            if _shutdown_done:
                return
            _shutdown_done = True
        logging.info("Graceful shutdown initiated (%s)", reason)
        try:
            container.shutdown()
        except Exception as exc:
            logging.warning("Error during graceful shutdown: %s", exc)

    atexit.register(_graceful_shutdown, "atexit")
    flask_app.extensions["growcare_shutdown"] = _graceful_shutdown

    # Domain errors raised outside safe_route still get the JSON envelope.
    @flask_app.errorhandler(Exception)
    def _handle_unhandled(exc):
        if not request.path.startswith("/api/"):
            raise exc
        from growcare.domain.exceptions import GrowCareError
        from growcare.utils.http import error_response, safe_error

        if isinstance(exc, HTTPException):
            status = int(exc.code or 500)
            if status >= 500:
                return safe_error(exc, status, context="http-exception")
            return error_response(exc.description or "Request failed", status)

        if isinstance(exc, GrowCareError):
            status = exc.http_status
            if status >= 500:
                return safe_error(exc, status, context=type(exc).__name__)
            return error_response(str(exc) or "Request failed", status)

        return safe_error(exc, 500, context="unhandled")

    flask_app.register_blueprint(care_api)

    @flask_app.get("/api/health")
    def health():
        from growcare.utils.http import success_response

        return success_response(
            {
                "status": "ok",
                "scheduler": container.scheduler.get_status(),
                "pending_notifications": container.batcher.pending_count(),
            }
        )

    logging.getLogger(__name__).info("GrowCare app created (%s)", config.environment)
    return flask_app


__all__ = ["create_app"]
