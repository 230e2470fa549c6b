"""
Pump Enumerations
=================

Operating modes and derived states of the pump controller.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any


class PumpMode(IntEnum):
    """Operator-selected mode. Persisted and exchanged as an integer."""

    OFF = 0
    AUTO = 1
    ON = 2

    def __str__(self) -> str:
        return self.name

    @classmethod
    def coerce(cls, value: Any, default: PumpMode | None = None) -> PumpMode:
        """Map an int, numeric string or mode name to a PumpMode.

        Unknown values fall back to ``default`` (AUTO when not given).
        """
        fallback = cls.AUTO if default is None else default
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            raw = value.strip()
            if raw.upper() in cls.__members__:
                return cls[raw.upper()]
            try:
                value = int(raw)
            except ValueError:
                return fallback
        if isinstance(value, bool) or not isinstance(value, int):
            return fallback
        try:
            return cls(value)
        except ValueError:
            return fallback


class PumpState(str, Enum):
    """State reported to the status surface."""

    OFF = "off"
    ON = "on"
    LOCKOUT = "lockout"

    def __str__(self) -> str:
        return self.value
