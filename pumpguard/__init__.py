from __future__ import annotations

import atexit
import contextlib
import logging
import signal
import threading
from typing import Any, Callable, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from pumpguard.blueprints.api import pump_api
from pumpguard.config import load_config, setup_logging
from pumpguard.extensions import init_extensions, socketio
from pumpguard.hardware.pump_driver import PumpDriver
from pumpguard.hardware.sensors import SensorSampler

__version__ = "1.0.0"


def create_app(
    config_overrides: dict[str, Any] | None = None,
    *,
    sampler: Optional[SensorSampler] = None,
    driver: Optional[PumpDriver] = None,
    clock: Optional[Callable[[], int]] = None,
    start_loop: bool = False,
) -> Flask:
    """
    Build the Flask app and the service container behind it.

    Args:
        config_overrides: ``AppConfig`` attribute overrides (case-insensitive).
        sampler, driver, clock: Collaborator overrides; hardware defaults
            are used when omitted.
        start_loop: Start the control loop thread and install shutdown hooks.
    """
    config = load_config()
    if config_overrides:
        for key, value in config_overrides.items():
            setattr(config, key if hasattr(config, key) else key.lower(), value)
        config.__post_init__()

    setup_logging(config)

    flask_app = Flask(__name__)
    flask_app.config.update(config.as_flask_config())

    init_extensions(flask_app, config.socketio_cors_origins)

    from pumpguard.services.container import ServiceContainer
    from pumpguard.utils.emitters import StatusEmitter

    container = ServiceContainer.build(config, sampler=sampler, driver=driver, clock=clock)
    container.loop.add_listener(StatusEmitter(socketio, min_interval_ms=config.status_push_ms))
    flask_app.config["CONTAINER"] = container

    if start_loop:
        _install_shutdown_hooks(container)
        container.start()

    flask_app.register_blueprint(pump_api, url_prefix="/api")

    @flask_app.get("/health")
    def health():
        return jsonify({"status": "ok", "version": __version__}), 200

    # Global JSON error handler for /api/ routes, no stack traces to clients
    @flask_app.errorhandler(Exception)
    def _handle_unhandled(exc):
        if not request.path.startswith("/api/"):
            if isinstance(exc, HTTPException):
                return exc
            raise exc
        from pumpguard.utils.http import exception_response

        return exception_response(exc, request.path)

    return flask_app


def _install_shutdown_hooks(container) -> None:
    """Stop the pump and save history on interpreter exit, SIGINT or SIGTERM."""
    lock = threading.Lock()

    def _graceful_shutdown(reason: str = "unknown") -> None:
        with lock:
            if getattr(container, "_shutdown_complete", False):
                return
            logging.info("Graceful shutdown initiated (%s)", reason)
            container.shutdown()

    def _signal_handler(signum: int, _frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logging.info("Received %s, shutting down", sig_name)
        _graceful_shutdown(sig_name)
        raise SystemExit(0)

    atexit.register(_graceful_shutdown, "atexit")

    # signal.signal only works from the main thread
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(OSError, ValueError):
            signal.signal(sig, _signal_handler)
