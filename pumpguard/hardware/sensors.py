"""
Sensor samplers feeding the control loop.

A sampler returns one ``SensorSample`` per tick. ``soil_raw`` or
``temp_tenths_c`` set to None means "no reading"; the controller holds its
previous decision in that case.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

import psutil

from pumpguard.domain.exceptions import SensorReadError

logger = logging.getLogger(__name__)

THERMAL_ZONE_PATH = Path("/sys/class/thermal/thermal_zone0/temp")


@dataclass(frozen=True)
class SensorSample:
    soil_raw: Optional[int]
    temp_tenths_c: Optional[int] = None
    load_pct: int = 0

    @classmethod
    def missing(cls, load_pct: int = 0) -> "SensorSample":
        return cls(soil_raw=None, temp_tenths_c=None, load_pct=load_pct)


class SensorSampler(ABC):
    """Interface for anything that produces periodic sensor readings."""

    @abstractmethod
    def read(self) -> SensorSample:
        """
        Produce the current reading.

        Raises:
            SensorReadError: The hardware could not be read at all.
        """


class StaticSensorSampler(SensorSampler):
    """Returns whatever was last set. Useful for bench setups and tests."""

    def __init__(self, soil_raw: Optional[int] = 0, temp_tenths_c: Optional[int] = None, load_pct: int = 0):
        self.sample = SensorSample(soil_raw, temp_tenths_c, load_pct)

    def set(self, soil_raw: Optional[int], temp_tenths_c: Optional[int] = None, load_pct: int = 0) -> None:
        self.sample = SensorSample(soil_raw, temp_tenths_c, load_pct)

    def read(self) -> SensorSample:
        return self.sample


class ScriptedSensorSampler(SensorSampler):
    """Replays a fixed sequence of readings, then repeats the last one.

    Plain integers in ``readings`` are taken as soil values.
    """

    def __init__(self, readings: Iterable[Union[int, None, SensorSample]]):
        self._samples: List[SensorSample] = [
            r if isinstance(r, SensorSample) else SensorSample(soil_raw=r) for r in readings
        ]
        if not self._samples:
            raise ValueError("ScriptedSensorSampler needs at least one reading")
        self._position = 0

    @property
    def exhausted(self) -> bool:
        return self._position >= len(self._samples)

    def read(self) -> SensorSample:
        if self.exhausted:
            return self._samples[-1]
        sample = self._samples[self._position]
        self._position += 1
        return sample


class CallableSensorSampler(SensorSampler):
    """Adapts a zero-argument function returning ``(soil, temp, load)``."""

    def __init__(self, func: Callable[[], tuple]):
        self._func = func

    def read(self) -> SensorSample:
        try:
            soil_raw, temp_tenths_c, load_pct = self._func()
        except (OSError, RuntimeError, ValueError, TypeError) as exc:
            raise SensorReadError(f"Sensor read failed: {exc}") from exc
        return SensorSample(soil_raw, temp_tenths_c, load_pct)


def read_cpu_temp_tenths(path: Path = THERMAL_ZONE_PATH) -> Optional[int]:
    """Board temperature in tenths of a degree C, None when unavailable."""
    try:
        return int(path.read_text().strip()) // 100
    except (OSError, ValueError):
        return None


def read_cpu_load_pct() -> int:
    """Whole-system CPU load since the previous call, 0..100."""
    return max(0, min(100, round(psutil.cpu_percent(interval=None))))


class Ads1115SoilSampler(SensorSampler):
    """
    Capacitive soil probe on an ADS1115 channel, plus board temperature and
    CPU load.

    The 16-bit ADS1115 value is scaled down to the 12-bit range the
    thresholds are expressed in.

    Attributes:
        channel (int): ADS1115 input (0..3).
        address (int): I2C address of the ADC.
    """

    def __init__(self, channel: int = 0, address: int = 0x48, retries: int = 3):
        self.channel = channel
        self.address = address
        self.retries = retries
        self._analog_in = self._setup_adc()
        psutil.cpu_percent(interval=None)  # prime the load counter

    def _setup_adc(self):
        """Imports the ADC libraries only when running on a Raspberry Pi."""
        try:
            import adafruit_ads1x15.ads1115 as ADS  # type: ignore
            import board  # type: ignore
            import busio  # type: ignore
            from adafruit_ads1x15.analog_in import AnalogIn  # type: ignore
        except (ImportError, NotImplementedError, RuntimeError):
            logger.error("ADS1115 libraries not available. Soil readings will be reported as missing.")
            return None
        try:
            adc = ADS.ADS1115(busio.I2C(board.SCL, board.SDA), address=self.address)
        except (OSError, ValueError, RuntimeError) as exc:
            logger.error("Failed to initialize ADS1115 at 0x%02X: %s", self.address, exc)
            return None
        logger.info("Soil sensor on ADS1115 0x%02X channel %s", self.address, self.channel)
        return AnalogIn(adc, self.channel)

    def _read_soil(self) -> Optional[int]:
        if self._analog_in is None:
            return None
        for attempt in range(self.retries):
            try:
                return self._analog_in.value >> 4
            except OSError as exc:
                logger.warning("Soil sensor read failed (attempt %s): %s", attempt + 1, exc)
        return None

    def read(self) -> SensorSample:
        return SensorSample(
            soil_raw=self._read_soil(),
            temp_tenths_c=read_cpu_temp_tenths(),
            load_pct=read_cpu_load_pct(),
        )
