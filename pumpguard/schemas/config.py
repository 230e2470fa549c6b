"""
Config Schemas
==============

Request schemas for the pump config endpoints.

Only types are checked here. Range clamping and the ``dryOn > wetOff``
repair are left to ``ConfigStore.validate`` so every entry point shares
one set of rules.
"""

from typing import Any, Dict, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pumpguard.enums import PumpMode


class ConfigUpdateRequest(BaseModel):
    """Partial pump config update; omitted fields keep their current value."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={"example": {"dryOn": 2600, "wetOff": 2300, "mode": 1, "softRamp": True}},
    )

    dry_on: Optional[int] = Field(default=None, alias="dryOn", description="Soil ADC value that starts the pump")
    wet_off: Optional[int] = Field(default=None, alias="wetOff", description="Soil ADC value that stops the pump")
    pump_pwm: Optional[int] = Field(default=None, alias="pumpPwm", description="Pump duty 0-255")
    soft_ramp: Optional[bool] = Field(default=None, alias="softRamp")
    min_on_ms: Optional[int] = Field(default=None, alias="minOnMs")
    min_off_ms: Optional[int] = Field(default=None, alias="minOffMs")
    limit_window_sec: Optional[int] = Field(default=None, alias="limitWindowSec")
    max_on_sec_in_window: Optional[int] = Field(default=None, alias="maxOnSecInWindow")
    log_period_ms: Optional[int] = Field(
        default=None,
        alias="logPeriodMs",
        validation_alias=AliasChoices("logPeriodMs", "soilLogPeriodMs", "log_period_ms"),
    )
    mode: Optional[Union[int, str]] = Field(default=None, description="0=OFF, 1=AUTO, 2=ON or the mode name")

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, v):
        """Accept an integer, a numeric string or a mode name."""
        if v is None or isinstance(v, PumpMode):
            return v
        if isinstance(v, bool):
            raise ValueError("mode must be 0, 1, 2 or OFF/AUTO/ON")
        if isinstance(v, int):
            return v
        if isinstance(v, str):
            raw = v.strip()
            if raw.upper() in PumpMode.__members__:
                return int(PumpMode[raw.upper()])
            try:
                return int(raw)
            except ValueError:
                pass
        raise ValueError("mode must be 0, 1, 2 or OFF/AUTO/ON")

    @classmethod
    def from_form(cls, args: Dict[str, Any]) -> "ConfigUpdateRequest":
        """Build from query/form arguments; empty values are treated as absent."""
        return cls.model_validate({k: v for k, v in args.items() if v not in (None, "")})

    def to_changes(self) -> Dict[str, Any]:
        """camelCase changes for ``ConfigStore.update``."""
        return self.model_dump(by_alias=True, exclude_none=True)


class EventsQuery(BaseModel):
    """Query parameters for the recent-events endpoint."""

    limit: Optional[int] = Field(default=None, ge=0, le=1000)
