"""
PumpController: soil-moisture hysteresis with dwell and duty-cycle limits.

Rules, in precedence order:
1. Duty-cycle limiter. The rolling window resets once ``limit_window_sec``
   has elapsed; on-time accrues while the pump runs; reaching the budget
   forces the pump off and latches LOCKOUT until the next window reset.
   This overrides every mode, including forced ON.
2. OFF mode: pump off.
3. ON mode: pump on.
4. AUTO mode: turn on at ``soil >= dry_on`` after ``min_off_ms`` off,
   turn off at ``soil <= wet_off`` after ``min_on_ms`` on, otherwise hold.
5. Every on/off transition stamps ``last_pump_change_ms`` and emits an event.

The controller keeps no state of its own: everything it needs comes in
through ``tick()`` and everything it decides goes out in the ``TickResult``.
It assumes the config has already passed ``ConfigStore.validate``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional

from pumpguard.domain.pump import ControllerEvent, PumpCommand, PumpConfig, PumpRuntime, TickResult
from pumpguard.enums import PumpEvent, PumpMode
from pumpguard.utils.ticks import ticks, ticks_diff

logger = logging.getLogger(__name__)


class PumpController:
    """Pure decision engine for the irrigation pump."""

    def tick(
        self,
        config: PumpConfig,
        now_ms: int,
        soil_reading: Optional[int],
        runtime: PumpRuntime,
    ) -> TickResult:
        """
        Compute the next pump state.

        Args:
            config: Validated configuration snapshot.
            now_ms: Current u32 tick value.
            soil_reading: Raw soil ADC value, or None when the sensor produced
                no reading. A missing reading holds the previous ON/AUTO
                decision and leaves the dwell timer untouched. It is not a
                strict hold of ``pump_on`` in every mode: OFF mode turns a
                running pump off even when the reading is missing. Duty-cycle
                accounting and the lockout still run.
            runtime: State returned by the previous tick. Not modified.

        Returns:
            TickResult with the new runtime, the actuator command and the
            state-change events of this tick.
        """
        now_ms = ticks(now_ms)
        rt = replace(runtime)
        events: List[ControllerEvent] = []
        was_on = runtime.pump_on

        elapsed_ms = 0 if rt.last_tick_ms is None else ticks_diff(now_ms, rt.last_tick_ms)
        rt.last_tick_ms = now_ms
        if soil_reading is not None:
            rt.soil_now = soil_reading

        if not self._enforce_duty_limit(config, now_ms, elapsed_ms, rt, events):
            self._apply_mode(config, now_ms, soil_reading, rt)

        if rt.pump_on != was_on:
            rt.last_pump_change_ms = now_ms
            event = PumpEvent.PUMP_ON if rt.pump_on else PumpEvent.PUMP_OFF
            events.append(ControllerEvent(event, self._transition_detail(config, rt)))
            logger.info("Pump %s (mode=%s soil=%s)", "ON" if rt.pump_on else "OFF", config.mode, rt.soil_now)

        command = PumpCommand.for_state(config, rt.pump_on, just_turned_on=rt.pump_on and not was_on)
        return TickResult(runtime=rt, command=command, events=tuple(events))

    def _enforce_duty_limit(
        self,
        config: PumpConfig,
        now_ms: int,
        elapsed_ms: int,
        rt: PumpRuntime,
        events: List[ControllerEvent],
    ) -> bool:
        """Apply rule 1. Returns True when the limiter owns this tick."""
        if ticks_diff(now_ms, rt.window_start_ms) >= config.limit_window_ms:
            rt.window_start_ms = now_ms
            rt.on_time_this_window_ms = 0
            if rt.lockout:
                rt.lockout = False
                events.append(ControllerEvent(PumpEvent.LOCKOUT_CLEAR, "window reset"))
                logger.info("Duty-cycle lockout cleared at window reset")

        if rt.pump_on:
            rt.on_time_this_window_ms += elapsed_ms

        budget_ms = config.max_on_ms_in_window
        if not rt.lockout and rt.on_time_this_window_ms < budget_ms:
            return False

        rt.on_time_this_window_ms = min(rt.on_time_this_window_ms, budget_ms)
        rt.pump_on = False
        if not rt.lockout:
            rt.lockout = True
            detail = f"on_time_ms={rt.on_time_this_window_ms} budget_ms={budget_ms} window_s={config.limit_window_sec}"
            events.append(ControllerEvent(PumpEvent.LOCKOUT_ENTER, detail))
            logger.warning("Duty-cycle budget exhausted, pump locked out (%s)", detail)
        return True

    def _apply_mode(self, config: PumpConfig, now_ms: int, soil: Optional[int], rt: PumpRuntime) -> None:
        if config.mode == PumpMode.OFF:
            rt.pump_on = False
            return
        if soil is None:
            return
        if config.mode == PumpMode.ON:
            rt.pump_on = True
            return

        since_change_ms = ticks_diff(now_ms, rt.last_pump_change_ms)
        if not rt.pump_on:
            if soil >= config.dry_on and since_change_ms >= config.min_off_ms:
                rt.pump_on = True
        elif soil <= config.wet_off and since_change_ms >= config.min_on_ms:
            rt.pump_on = False

    @staticmethod
    def _transition_detail(config: PumpConfig, rt: PumpRuntime) -> str:
        return f"mode={config.mode} soil={rt.soil_now} on_time_ms={rt.on_time_this_window_ms}"
