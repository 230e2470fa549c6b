"""
ConfigStore: load, validate and persist the pump configuration.

The store owns the single current ``PumpConfig`` reference. The control loop
reads ``current`` at the start of every tick; API handlers change it only
through ``update()``, which always validates before saving. Swapping the
reference is the only mutation, so a reader sees either the old or the new
snapshot, never a mix.

Persisted as a JSON object with camelCase keys::

    {"dryOn": 2500, "wetOff": 2200, "pumpPwm": 180, "softRamp": true, ...}
"""
from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from infrastructure.storage.files import read_json, write_json_atomic
from pumpguard.constants import PWM_MAX, ConfigLimits
from pumpguard.domain.exceptions import StorageError
from pumpguard.domain.pump import PumpConfig
from pumpguard.enums import PumpEvent, PumpMode

if TYPE_CHECKING:
    from infrastructure.logging.event_log import EventLog

logger = logging.getLogger(__name__)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class ConfigStore:
    """Persistent holder of the validated pump configuration."""

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        event_log: Optional["EventLog"] = None,
        defaults: Optional[PumpConfig] = None,
    ):
        """
        Args:
            path: JSON file backing the config. None keeps it in memory only.
            event_log: Sink for CONFIG_CHANGED events (optional).
            defaults: Compiled defaults used when nothing valid is persisted.
        """
        self.path = Path(path) if path is not None else None
        self.event_log = event_log
        self.defaults = self.validate(defaults or PumpConfig())
        self._current = self.defaults
        self.last_save_ok: Optional[bool] = None

    @property
    def current(self) -> PumpConfig:
        return self._current

    def load(self) -> PumpConfig:
        """
        Load the persisted config, falling back to defaults.

        Missing or unreadable files and values of the wrong type are not
        fatal; they are logged and the compiled defaults are used instead.
        Whatever is loaded is passed through ``validate``.
        """
        config = self.defaults
        if self.path is None:
            logger.debug("No config path configured, using defaults")
        else:
            try:
                config = PumpConfig.from_mapping(read_json(self.path))
                logger.info("Pump config loaded from %s", self.path)
            except FileNotFoundError:
                logger.info("No persisted config at %s, using defaults", self.path)
            except (StorageError, ValueError) as exc:
                logger.warning("Persisted config at %s is unreadable (%s), using defaults", self.path, exc)

        self._current = self.validate(config)
        return self._current

    def reload(self) -> PumpConfig:
        """Forced reload from disk, recording the change if any."""
        before = self._current
        after = self.load()
        self._record_change(before, after, source="reload")
        return after

    @staticmethod
    def validate(config: PumpConfig) -> PumpConfig:
        """
        Clamp every field to its documented range.

        ``wet_off >= dry_on`` is repaired by widening the gap below ``dry_on``;
        an unknown mode becomes AUTO.
        """
        dry_on = _clamp(config.dry_on, ConfigLimits.HYSTERESIS_MIN_GAP, ConfigLimits.ADC_MAX)
        wet_off = _clamp(config.wet_off, 0, ConfigLimits.ADC_MAX)
        if wet_off >= dry_on:
            wet_off = dry_on - ConfigLimits.HYSTERESIS_MIN_GAP

        limit_window_sec = _clamp(
            config.limit_window_sec, ConfigLimits.MIN_LIMIT_WINDOW_SEC, ConfigLimits.MAX_LIMIT_WINDOW_SEC
        )

        validated = replace(
            config,
            dry_on=dry_on,
            wet_off=wet_off,
            pump_pwm=_clamp(config.pump_pwm, 0, PWM_MAX),
            soft_ramp=bool(config.soft_ramp),
            min_on_ms=_clamp(config.min_on_ms, ConfigLimits.MIN_DWELL_MS, ConfigLimits.MAX_DURATION_MS),
            min_off_ms=_clamp(config.min_off_ms, ConfigLimits.MIN_DWELL_MS, ConfigLimits.MAX_DURATION_MS),
            limit_window_sec=limit_window_sec,
            max_on_sec_in_window=_clamp(config.max_on_sec_in_window, ConfigLimits.MIN_MAX_ON_SEC, limit_window_sec),
            log_period_ms=_clamp(config.log_period_ms, ConfigLimits.MIN_LOG_PERIOD_MS, ConfigLimits.MAX_DURATION_MS),
            mode=PumpMode.coerce(config.mode),
        )
        if validated != config:
            logger.warning("Pump config repaired: %s", config.diff(validated))
        return validated

    def save(self, config: PumpConfig) -> bool:
        if self.path is None:
            self.last_save_ok = False
            return False
        try:
            write_json_atomic(self.path, config.to_mapping())
        except StorageError as exc:
            logger.error("Failed to save pump config to %s: %s", self.path, exc)
            self.last_save_ok = False
            return False
        logger.info("Pump config saved to %s", self.path)
        self.last_save_ok = True
        return True

    def update(self, changes: Mapping[str, Any]) -> PumpConfig:
        """
        Apply partial camelCase ``changes``: merge, validate, save, swap.

        The new config takes effect even when saving fails; the failure is
        logged and the old file stays on disk.

        Raises:
            ValueError: A recognized key has a value of the wrong type.
        """
        before = self._current
        after = self.validate(before.merged(changes))
        self.save(after)
        self._current = after
        self._record_change(before, after, source="update")
        return after

    def _record_change(self, before: PumpConfig, after: PumpConfig, *, source: str) -> None:
        changes = before.diff(after)
        if not changes:
            return
        detail = " ".join(f"{key} {old}->{new}" for key, (old, new) in changes.items())
        logger.info("Pump config changed (%s): %s", source, detail)
        if self.event_log is not None:
            self.event_log.record(PumpEvent.CONFIG_CHANGED, detail)
