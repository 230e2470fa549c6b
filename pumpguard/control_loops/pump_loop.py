"""
PumpControlLoop: the single writer of pump runtime state.

One tick runs, to completion and without yielding:

    sensor read -> PumpController.tick -> pump driver -> event log
    -> (every log_period_ms) history append + soil log point
    -> (every history_save_ms) history snapshot

The loop owns ``PumpRuntime`` and the ``HistoryRecorder``. Other threads
(the HTTP API) never touch them; they read the immutable ``StatusSnapshot``
republished after each tick, and change tuning only through
``ConfigStore.update``, which the loop picks up on its next tick.

"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from pumpguard.controllers.pump_controller import PumpController
from pumpguard.domain.exceptions import SensorReadError
from pumpguard.domain.history import HistoryRecorder, HistorySample
from pumpguard.domain.pump import PumpCommand, PumpConfig, PumpRuntime, TickResult
from pumpguard.enums import PumpEvent
from pumpguard.hardware.pump_driver import PumpDriver
from pumpguard.hardware.sensors import SensorSample, SensorSampler
from pumpguard.utils.ticks import MonotonicTicks, ticks_diff

if TYPE_CHECKING:
    from infrastructure.logging.event_log import EventLog, SoilLog
    from infrastructure.storage.config_store import ConfigStore
    from infrastructure.storage.history_store import HistoryStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusSnapshot:
    """Read-only view of the loop state after a tick."""

    config: PumpConfig
    runtime: PumpRuntime
    command: PumpCommand
    history: Dict[str, list]
    ticks_ms: int

    def to_dict(self) -> Dict[str, Any]:
        rt, cfg = self.runtime, self.config
        return {
            "soil": rt.soil_now,
            "temp_c": None if rt.temp_tenths_c is None else rt.temp_tenths_c / 10.0,
            "load_pct": rt.load_pct,
            "pump_on": rt.pump_on,
            "lockout": rt.lockout,
            "state": rt.state.value,
            "duty": self.command.duty,
            "mode": int(cfg.mode),
            "window_sec": cfg.limit_window_sec,
            "max_on_sec_window": cfg.max_on_sec_in_window,
            "on_time_window_ms": rt.on_time_this_window_ms,
            "ticks_ms": self.ticks_ms,
            "hist_soil": list(self.history["soil"]),
            "hist_temp": list(self.history["temp_c"]),
            "hist_load": list(self.history["load_pct"]),
        }


class PumpControlLoop:
    """Cooperative control loop for one pump."""

    def __init__(
        self,
        config_store: "ConfigStore",
        sampler: SensorSampler,
        driver: PumpDriver,
        history: HistoryRecorder,
        *,
        event_log: Optional["EventLog"] = None,
        soil_log: Optional["SoilLog"] = None,
        history_store: Optional["HistoryStore"] = None,
        clock: Optional[Callable[[], int]] = None,
        controller: Optional[PumpController] = None,
        history_save_ms: int = 60_000,
    ):
        """
        Args:
            config_store: Source of the current validated config.
            sampler: Sensor collaborator read once per tick.
            driver: Pump actuator.
            history: Telemetry ring buffer owned by this loop.
            event_log: Audit sink for controller events (optional).
            soil_log: CSV sink for periodic data points (optional).
            history_store: Snapshot target for the ring buffer (optional).
            clock: u32 millisecond tick source; MonotonicTicks by default.
            controller: Decision engine; a fresh PumpController by default.
            history_save_ms: Interval between history snapshots.
        """
        self.config_store = config_store
        self.sampler = sampler
        self.driver = driver
        self.history = history
        self.event_log = event_log
        self.soil_log = soil_log
        self.history_store = history_store
        self.clock = clock or MonotonicTicks()
        self.controller = controller or PumpController()
        self.history_save_ms = history_save_ms

        now = self.clock()
        self.runtime = PumpRuntime.at_boot(now)
        self._last_history_save_ms = now
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._closed = False
        self._listeners: List[Callable[[StatusSnapshot, TickResult], None]] = []
        self._snapshot = self._build_snapshot(config_store.current, PumpCommand.off(), now)

    @property
    def snapshot(self) -> StatusSnapshot:
        return self._snapshot

    def tick_once(self) -> TickResult:
        """Run one full tick and publish a new snapshot."""
        config = self.config_store.current
        now = self.clock()
        sample = self._read_sensor()

        result = self.controller.tick(config, now, sample.soil_raw, self.runtime)
        runtime = replace(result.runtime, temp_tenths_c=sample.temp_tenths_c, load_pct=sample.load_pct)

        self.driver.apply(result.command)

        if self.event_log is not None:
            for event in result.events:
                self.event_log.record(event.event, event.detail, ts_ms=now)

        if ticks_diff(now, runtime.last_log_ms) >= config.log_period_ms:
            runtime.last_log_ms = now
            self.history.append(HistorySample(runtime.soil_now, runtime.temp_tenths_c, runtime.load_pct))
            if self.soil_log is not None:
                self.soil_log.log_point(
                    now, runtime.soil_now, runtime.pump_on, runtime.lockout, runtime.on_time_this_window_ms
                )

        if self.history_store is not None and ticks_diff(now, self._last_history_save_ms) >= self.history_save_ms:
            self._last_history_save_ms = now
            self.history_store.save(self.history)

        self.runtime = runtime
        self._snapshot = self._build_snapshot(config, result.command, now)
        for listener in self._listeners:
            try:
                listener(self._snapshot, result)
            except Exception:
                logger.exception("Pump tick listener %r failed", listener)
        return result

    def tick_safely(self) -> Optional[TickResult]:
        """Run one tick; on any failure force the pump off and keep the loop alive."""
        try:
            return self.tick_once()
        except Exception:
            logger.exception("Pump control tick failed, forcing pump off")
            self._force_off("tick_failed")
            return None

    def _force_off(self, reason: str) -> None:
        self.driver.stop()
        if not self.runtime.pump_on:
            return
        now = self.clock()
        self.runtime = replace(self.runtime, pump_on=False, last_pump_change_ms=now)
        self._snapshot = self._build_snapshot(self._snapshot.config, PumpCommand.off(), now)
        if self.event_log is not None:
            self.event_log.record(PumpEvent.PUMP_OFF, reason, ts_ms=now)

    def add_listener(self, listener: Callable[[StatusSnapshot, TickResult], None]) -> None:
        """Call ``listener(snapshot, result)`` at the end of every tick, on the loop thread."""
        self._listeners.append(listener)

    def _read_sensor(self) -> SensorSample:
        try:
            return self.sampler.read()
        except SensorReadError as exc:
            logger.warning("Sensor read failed, holding pump state: %s", exc)
        except Exception:
            logger.exception("Sensor sampler raised unexpectedly, holding pump state")
        return SensorSample.missing(load_pct=self.runtime.load_pct)

    def _build_snapshot(self, config: PumpConfig, command: PumpCommand, now: int) -> StatusSnapshot:
        return StatusSnapshot(
            config=config,
            runtime=replace(self.runtime),
            command=command,
            history=self.history.series(),
            ticks_ms=now,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run_forever(self, tick_ms: int = 1000) -> None:
        """Tick every ``tick_ms`` until ``stop()`` is called."""
        self._closed = False
        logger.info("Pump control loop started (tick=%s ms)", tick_ms)
        if self.event_log is not None:
            self.event_log.record(PumpEvent.SYSTEM, "control_loop_start", ts_ms=self.clock())
        try:
            while not self._stop.is_set():
                self.tick_safely()
                self._stop.wait(tick_ms / 1000.0)
        finally:
            self._shutdown()

    def start(self, tick_ms: int = 1000) -> threading.Thread:
        """Run the loop in a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run_forever, kwargs={"tick_ms": tick_ms}, name="pump-control-loop", daemon=True
        )
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop ticking, force the pump off and save the history."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        self._shutdown()

    def _shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.info("Pump control loop stopping: pump off, saving history")
        self.driver.stop()
        if self.history_store is not None:
            self.history_store.save(self.history)
        if self.event_log is not None:
            self.event_log.record(PumpEvent.SYSTEM, "control_loop_stop", ts_ms=self.clock())
