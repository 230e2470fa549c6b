"""
Pump Domain Objects
===================
Dataclasses for the pump decision engine.

``PumpConfig`` is the validated, immutable tuning snapshot. ``PumpRuntime`` is
the mutable state owned by the control loop; the controller never mutates the
instance it receives and hands back a new one each tick.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from pumpguard.constants import SOFT_RAMP_MS
from pumpguard.enums import PumpEvent, PumpMode, PumpState

# camelCase persisted / wire key -> dataclass attribute
CONFIG_KEYS: Dict[str, str] = {
    "dryOn": "dry_on",
    "wetOff": "wet_off",
    "pumpPwm": "pump_pwm",
    "softRamp": "soft_ramp",
    "minOnMs": "min_on_ms",
    "minOffMs": "min_off_ms",
    "limitWindowSec": "limit_window_sec",
    "maxOnSecInWindow": "max_on_sec_in_window",
    "logPeriodMs": "log_period_ms",
    "mode": "mode",
}

# Older config files wrote the log period under this name
CONFIG_KEY_ALIASES: Dict[str, str] = {"soilLogPeriodMs": "logPeriodMs"}

_TRUE_STRINGS = {"1", "true", "t", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "f", "no", "off"}


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValueError(f"{key} must be an integer, got {value!r}")


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"{key} must be a boolean, got {value!r}")


@dataclass(frozen=True)
class PumpConfig:
    """Tunable thresholds for the pump controller.

    Soil thresholds are raw ADC units; a higher reading means drier soil.
    """

    dry_on: int = 2500  # soil >= dry_on turns the pump on (AUTO)
    wet_off: int = 2200  # soil <= wet_off turns the pump off (AUTO)
    pump_pwm: int = 180  # 0..255
    soft_ramp: bool = True

    # minimum on/off dwell to prevent chattering
    min_on_ms: int = 5000
    min_off_ms: int = 5000

    # within limit_window_sec the pump may run at most max_on_sec_in_window
    limit_window_sec: int = 600
    max_on_sec_in_window: int = 60

    log_period_ms: int = 10000
    mode: PumpMode = PumpMode.AUTO

    @property
    def limit_window_ms(self) -> int:
        return self.limit_window_sec * 1000

    @property
    def max_on_ms_in_window(self) -> int:
        return self.max_on_sec_in_window * 1000

    def to_mapping(self) -> Dict[str, Any]:
        """Render with camelCase keys; mode as its integer value."""
        data: Dict[str, Any] = {}
        for key, attr in CONFIG_KEYS.items():
            value = getattr(self, attr)
            data[key] = int(value) if attr == "mode" else value
        return data

    def merged(self, changes: Mapping[str, Any]) -> "PumpConfig":
        """Return a copy with recognized camelCase ``changes`` applied.

        Unknown keys are ignored. Values are coerced but not range-checked;
        run the result through ``ConfigStore.validate``.

        Raises:
            ValueError: A recognized key carries a value of the wrong type.
        """
        updates: Dict[str, Any] = {}
        for raw_key, value in changes.items():
            key = CONFIG_KEY_ALIASES.get(raw_key, raw_key)
            attr = CONFIG_KEYS.get(key)
            if attr is None or value is None:
                continue
            if attr == "mode":
                updates[attr] = PumpMode.coerce(value)
            elif attr == "soft_ramp":
                updates[attr] = _coerce_bool(key, value)
            else:
                updates[attr] = _coerce_int(key, value)
        return replace(self, **updates) if updates else self

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PumpConfig":
        """Build from camelCase keys on top of the compiled defaults."""
        return cls().merged(data)

    def diff(self, other: "PumpConfig") -> Dict[str, Tuple[Any, Any]]:
        """camelCase key -> (self value, other value) for every differing field."""
        mine, theirs = self.to_mapping(), other.to_mapping()
        return {key: (mine[key], theirs[key]) for key in mine if mine[key] != theirs[key]}


@dataclass
class PumpRuntime:
    """Latest samples and controller state. Timestamps are u32 ticks."""

    soil_now: int = 0
    temp_tenths_c: Optional[int] = None
    load_pct: int = 0

    pump_on: bool = False
    lockout: bool = False

    last_pump_change_ms: int = 0
    window_start_ms: int = 0
    on_time_this_window_ms: int = 0

    last_log_ms: int = 0
    last_tick_ms: Optional[int] = None

    @classmethod
    def at_boot(cls, now_ms: int) -> "PumpRuntime":
        """Fresh state for a controller that starts at ``now_ms``."""
        return cls(last_pump_change_ms=now_ms, window_start_ms=now_ms, last_log_ms=now_ms)

    @property
    def state(self) -> PumpState:
        if self.lockout:
            return PumpState.LOCKOUT
        return PumpState.ON if self.pump_on else PumpState.OFF

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data


@dataclass(frozen=True)
class PumpCommand:
    """Actuator setpoint produced by one controller tick.

    ``ramp_ms`` > 0 asks the driver to rise linearly from 0 to ``duty`` over
    that many milliseconds instead of stepping.
    """

    pump_on: bool
    duty: int
    ramp_ms: int = 0

    @classmethod
    def off(cls) -> "PumpCommand":
        return cls(pump_on=False, duty=0)

    @classmethod
    def for_state(cls, config: PumpConfig, pump_on: bool, just_turned_on: bool) -> "PumpCommand":
        if not pump_on:
            return cls.off()
        ramp_ms = SOFT_RAMP_MS if (config.soft_ramp and just_turned_on) else 0
        return cls(pump_on=True, duty=config.pump_pwm, ramp_ms=ramp_ms)

    def duty_at(self, elapsed_ms: int) -> int:
        """Duty to drive ``elapsed_ms`` after the command was issued."""
        if self.ramp_ms <= 0 or elapsed_ms >= self.ramp_ms:
            return self.duty
        if elapsed_ms <= 0:
            return 0
        return self.duty * elapsed_ms // self.ramp_ms


@dataclass(frozen=True)
class ControllerEvent:
    """State change emitted by a controller tick for the audit log."""

    event: PumpEvent
    detail: str = ""


@dataclass(frozen=True)
class TickResult:
    """Output of ``PumpController.tick``."""

    runtime: PumpRuntime
    command: PumpCommand
    events: Tuple[ControllerEvent, ...] = field(default_factory=tuple)

    @property
    def event_names(self) -> Tuple[PumpEvent, ...]:
        return tuple(e.event for e in self.events)

