"""
Blueprint Common Utilities
==========================

Shared helpers for the API routes: container access, request parsing and
the response envelope.
"""
from __future__ import annotations

import logging

from flask import current_app, request

from pumpguard.utils.http import error_response, success_response

logger = logging.getLogger("api._common")


def get_container():
    """
    Get the service container from Flask app config.

    Raises:
        RuntimeError: If container is not configured
    """
    container = current_app.config.get("CONTAINER")
    if not container:
        raise RuntimeError("ServiceContainer not found in app config")
    return container


def get_json() -> dict:
    """JSON request body, or an empty dict when absent or not an object."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def success(data=None, status: int = 200, *, message: str | None = None):
    return success_response(data, status, message=message)


def fail(message: str, status: int = 400, *, details: dict | None = None):
    return error_response(message, status, details=details)
