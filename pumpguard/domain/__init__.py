"""
Domain Objects
==============
Pure data model for the pump controller: configuration snapshot, runtime
state, actuator command and the telemetry ring buffer.
"""

from pumpguard.domain.exceptions import (
    ConfigurationError,
    PumpGuardError,
    SensorReadError,
    StorageError,
)
from pumpguard.domain.history import HistoryRecorder, HistorySample, HistoryState, HistoryView
from pumpguard.domain.pump import ControllerEvent, PumpCommand, PumpConfig, PumpRuntime, TickResult

__all__ = [
    "ConfigurationError",
    "ControllerEvent",
    "HistoryRecorder",
    "HistorySample",
    "HistoryState",
    "HistoryView",
    "PumpCommand",
    "PumpConfig",
    "PumpGuardError",
    "PumpRuntime",
    "SensorReadError",
    "StorageError",
    "TickResult",
]
