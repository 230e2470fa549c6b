from enum import Enum


class PumpEvent(str, Enum):
    """Event names written to the audit event log."""

    PUMP_ON = "PUMP_ON"
    PUMP_OFF = "PUMP_OFF"
    LOCKOUT_ENTER = "LOCKOUT_ENTER"
    LOCKOUT_CLEAR = "LOCKOUT_CLEAR"
    CONFIG_CHANGED = "CONFIG_CHANGED"
    SYSTEM = "SYSTEM"

    def __str__(self) -> str:
        return self.value
