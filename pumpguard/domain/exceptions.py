"""Exception hierarchy for PumpGuard.

Nothing in the control path raises these; they are used at the edges
(app config, snapshot files, hardware) where a caller can react. Request
validation errors come from pydantic, not from this hierarchy.

Hierarchy
---------
::

    PumpGuardError (base, maps to 500)
    ├── ConfigurationError  (500, missing / invalid app config)
    ├── StorageError        (500, persistence failure)
    └── SensorReadError     (503, sampler could not produce a reading)
"""

from __future__ import annotations


class PumpGuardError(Exception):
    """Base exception for all PumpGuard errors.

    Parameters
    ----------
    message:
        Human-readable description.
    detail:
        Optional machine-readable context attached for structured logging.
    """

    http_status: int = 500

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


class ConfigurationError(PumpGuardError):
    """Application configuration is missing or invalid."""


class StorageError(PumpGuardError):
    """A persisted blob could not be read or written."""


class SensorReadError(PumpGuardError):
    """The sensor sampler failed to produce a reading (HTTP 503)."""

    http_status: int = 503
