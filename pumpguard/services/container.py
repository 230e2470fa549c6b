from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from infrastructure.logging.event_log import EventLog, SoilLog
from infrastructure.storage.config_store import ConfigStore
from infrastructure.storage.history_store import HistoryStore
from pumpguard.config import AppConfig
from pumpguard.control_loops.pump_loop import PumpControlLoop
from pumpguard.domain.history import HistoryRecorder
from pumpguard.enums import PumpEvent
from pumpguard.hardware.pump_driver import GpioPwmPumpDriver, PumpDriver, RecordingPumpDriver
from pumpguard.hardware.sensors import Ads1115SoilSampler, SensorSampler
from pumpguard.utils.ticks import MonotonicTicks

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Owns the control loop and every collaborator it writes to.

    HTTP handlers reach the pump only through ``loop.snapshot`` (read) and
    ``config_store.update`` / ``config_store.reload`` (write).
    """

    config: AppConfig
    event_log: EventLog
    soil_log: SoilLog
    config_store: ConfigStore
    history: HistoryRecorder
    history_store: HistoryStore
    loop: PumpControlLoop
    _shutdown_complete: bool = field(default=False, init=False)

    @classmethod
    def build(
        cls,
        config: AppConfig,
        *,
        sampler: Optional[SensorSampler] = None,
        driver: Optional[PumpDriver] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> "ServiceContainer":
        """
        Boot sequence: load config, restore history, wire the loop.

        Persistence problems never stop the boot; the stores fall back to
        defaults / an empty buffer and log why.
        """
        clock = clock or MonotonicTicks()
        event_log = EventLog(config.events_path, clock=clock, tail_size=config.event_tail_size)
        soil_log = SoilLog(config.soil_log_path)

        config_store = ConfigStore(config.config_path, event_log=event_log)
        pump_config = config_store.load()

        history = HistoryRecorder(config.history_capacity)
        history_store = HistoryStore(config.history_path, config.history_capacity)
        restored = history_store.load(history)

        if driver is None:
            driver = GpioPwmPumpDriver(config.pump_gpio_pin) if config.pump_gpio_pin >= 0 else RecordingPumpDriver()
        if sampler is None:
            sampler = Ads1115SoilSampler()

        loop = PumpControlLoop(
            config_store,
            sampler,
            driver,
            history,
            event_log=event_log,
            soil_log=soil_log,
            history_store=history_store,
            clock=clock,
            history_save_ms=config.history_save_ms,
        )

        event_log.record(
            PumpEvent.SYSTEM,
            f"boot mode={pump_config.mode} history={'restored' if restored else 'empty'}",
        )
        logger.info("PumpGuard services ready (config=%s, history=%s)", config.config_path, config.history_path)
        return cls(
            config=config,
            event_log=event_log,
            soil_log=soil_log,
            config_store=config_store,
            history=history,
            history_store=history_store,
            loop=loop,
        )

    def start(self) -> None:
        self.loop.start(self.config.tick_ms)

    def shutdown(self) -> None:
        """Stop the loop (pump off, history saved) and close the log files."""
        if self._shutdown_complete:
            return
        self._shutdown_complete = True
        self.loop.stop()
        if isinstance(self.loop.driver, GpioPwmPumpDriver):
            self.loop.driver.cleanup()
        self.event_log.close()
        self.soil_log.close()
        logger.info("PumpGuard services stopped")
