"""
Pump API Module
Status snapshot, config and event endpoints under ``/api``.
"""

from __future__ import annotations

from flask import Blueprint, Response

from pumpguard.utils.http import error_response

# Create blueprint here to avoid circular imports
pump_api = Blueprint("pump_api", __name__)


@pump_api.errorhandler(404)
def not_found(error) -> Response:
    return error_response("Resource not found", 404)


@pump_api.errorhandler(405)
def method_not_allowed(error) -> Response:
    return error_response("Method not allowed", 405)


# Import route modules to register their endpoints (must be after blueprint creation)
from . import config, events, status

_ = (config, events, status)

__all__ = ["pump_api"]
