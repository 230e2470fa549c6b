"""JSON envelope shared by every ``/api`` response.

Success::

    {"ok": true, "data": {...}, "error": null}

Failure::

    {"ok": false, "data": null,
     "error": {"message": "...", "timestamp": "...", "details": {...}}}

Server-side failures (5xx) never echo the exception text; it is logged.
"""
from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Optional

from flask import Response, jsonify
from werkzeug.exceptions import HTTPException

from pumpguard.domain.exceptions import PumpGuardError
from pumpguard.utils.time import iso_now

logger = logging.getLogger(__name__)

PUBLIC_SERVER_ERRORS = {
    503: "Pump controller temporarily unavailable",
}
DEFAULT_SERVER_ERROR = "Pump controller error"


def _envelope(
    status: int, *, data: Any = None, error: Optional[dict] = None, message: Optional[str] = None
) -> Response:
    body: dict[str, Any] = {"ok": error is None, "data": data, "error": error}
    if message is not None:
        body["message"] = message
    response = jsonify(body)
    response.status_code = status
    return response


def success_response(data: Any = None, status: int = 200, *, message: Optional[str] = None) -> Response:
    return _envelope(status, data=data, message=message)


def error_response(message: str, status: int = 400, *, details: Optional[dict] = None) -> Response:
    error: dict[str, Any] = {"message": message, "timestamp": iso_now()}
    if details:
        error["details"] = details
    return _envelope(status, error=error)


def exception_response(exc: BaseException, context: str = "") -> Response:
    """Map an exception raised while serving ``/api`` to an error envelope.

    ``HTTPException`` keeps its code, ``PumpGuardError`` uses ``http_status``
    and its ``detail``; anything else is a 500.
    """
    if isinstance(exc, HTTPException):
        status, text, details = int(exc.code or 500), exc.description, None
    elif isinstance(exc, PumpGuardError):
        status, text, details = exc.http_status, str(exc), exc.detail or None
    else:
        status, text, details = 500, "", None

    if status >= 500:
        logger.error("API %s failed with %s: %s", context or "request", status, exc, exc_info=exc)
        return error_response(PUBLIC_SERVER_ERRORS.get(status, DEFAULT_SERVER_ERROR), status)
    return error_response(text or context or "Request failed", status, details=details)


def safe_route(context: str) -> Callable:
    """Turn any exception escaping a pump API view into an error envelope.

    Usage::

        @pump_api.get("/status")
        @safe_route("read pump status")
        def get_status():
            ...
    """

    def decorator(view: Callable) -> Callable:
        @functools.wraps(view)
        def wrapper(*args: Any, **kwargs: Any) -> Response:
            try:
                return view(*args, **kwargs)
            except Exception as exc:
                return exception_response(exc, context)

        return wrapper

    return decorator
