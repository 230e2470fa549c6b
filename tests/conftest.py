"""
Shared test fixtures for the PumpGuard test suite.

Provides:
- The concrete pump config used throughout (2500/2200 band, 5 s dwell)
- Runtime factories with a dwell that is already satisfied
- A hand-driven tick clock and in-memory stores / sinks
- A Flask app wired to fake hardware

Usage:
    def test_example(controller, pump_config, idle_runtime):
        result = controller.tick(pump_config, 0, 2600, idle_runtime())
        assert result.runtime.pump_on
"""

from __future__ import annotations

import logging

import pytest

from infrastructure.logging.event_log import EventLog
from infrastructure.storage.config_store import ConfigStore
from pumpguard.controllers.pump_controller import PumpController
from pumpguard.domain.pump import PumpConfig, PumpRuntime
from pumpguard.enums import PumpMode
from pumpguard.hardware.pump_driver import RecordingPumpDriver
from pumpguard.hardware.sensors import StaticSensorSampler
from pumpguard.utils.ticks import ManualTicks, ticks

# ---------------------------------------------------------------------------
# Logging, keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("infrastructure").setLevel(logging.WARNING)
logging.getLogger("pumpguard").setLevel(logging.WARNING)


# ========================== Controller Fixtures ============================


@pytest.fixture()
def pump_config() -> PumpConfig:
    return PumpConfig(
        dry_on=2500,
        wet_off=2200,
        pump_pwm=180,
        soft_ramp=True,
        min_on_ms=5000,
        min_off_ms=5000,
        limit_window_sec=600,
        max_on_sec_in_window=60,
        log_period_ms=10000,
        mode=PumpMode.AUTO,
    )


@pytest.fixture()
def idle_runtime():
    """Factory: pump off, last change long enough ago, window starting at ``now_ms``."""

    def _make(now_ms: int = 0, **overrides) -> PumpRuntime:
        runtime = PumpRuntime(
            last_pump_change_ms=ticks(now_ms - 60_000),
            window_start_ms=ticks(now_ms),
            last_log_ms=ticks(now_ms),
        )
        for key, value in overrides.items():
            setattr(runtime, key, value)
        return runtime

    return _make


@pytest.fixture()
def controller() -> PumpController:
    return PumpController()


# ========================== Collaborator Fixtures ==========================


@pytest.fixture()
def clock() -> ManualTicks:
    return ManualTicks(0)


@pytest.fixture()
def event_log(clock) -> EventLog:
    return EventLog(None, clock=clock)


@pytest.fixture()
def config_store(event_log) -> ConfigStore:
    return ConfigStore(None, event_log=event_log)


@pytest.fixture()
def sampler() -> StaticSensorSampler:
    return StaticSensorSampler(soil_raw=2400, temp_tenths_c=215, load_pct=12)


@pytest.fixture()
def driver() -> RecordingPumpDriver:
    return RecordingPumpDriver()


# ========================== Flask Fixtures =================================


@pytest.fixture()
def app(tmp_path, clock, sampler, driver):
    from pumpguard import create_app

    app = create_app(
        {"data_dir": str(tmp_path / "var"), "log_dir": str(tmp_path / "logs")},
        sampler=sampler,
        driver=driver,
        clock=clock,
    )
    app.config["TESTING"] = True
    yield app
    app.config["CONTAINER"].shutdown()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def container(app):
    return app.config["CONTAINER"]
