# Description: PWM pump drivers.
#
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from pumpguard.constants import PUMP_PWM_FREQUENCY_HZ, PWM_MAX, SOFT_RAMP_STEPS
from pumpguard.domain.pump import PumpCommand

logger = logging.getLogger(__name__)


class PumpDriver(ABC):
    """
    Abstract base class for pump actuators.

    Methods:
        apply(command): Drive the pump to the commanded duty (0..255),
            following the soft ramp when the command carries one.
        stop(): Force the pump off.
    """

    def __init__(self, sleep: Callable[[float], None] = time.sleep):
        self.duty = 0
        self._sleep = sleep

    @abstractmethod
    def _write_duty(self, duty: int) -> None:
        """Push a raw 0..255 duty to the hardware."""

    def apply(self, command: PumpCommand) -> None:
        if command.ramp_ms > 0 and command.duty > 0:
            self._ramp(command)
        elif command.duty != self.duty:
            self._set(command.duty)

    def stop(self) -> None:
        self._set(0)

    def _ramp(self, command: PumpCommand) -> None:
        step_ms = command.ramp_ms / SOFT_RAMP_STEPS
        logger.debug("Soft ramp to %s over %s ms", command.duty, command.ramp_ms)
        for step in range(1, SOFT_RAMP_STEPS + 1):
            self._set(command.duty_at(round(step * step_ms)))
            if step < SOFT_RAMP_STEPS:
                self._sleep(step_ms / 1000.0)

    def _set(self, duty: int) -> None:
        duty = max(0, min(PWM_MAX, duty))
        self._write_duty(duty)
        self.duty = duty


class RecordingPumpDriver(PumpDriver):
    """
    In-memory driver that records every duty written.

    Used by the simulator and on hosts without pump hardware.
    """

    def __init__(self, sleep: Callable[[float], None] = lambda _seconds: None):
        super().__init__(sleep=sleep)
        self.writes: List[int] = []
        self.commands: List[PumpCommand] = []

    def apply(self, command: PumpCommand) -> None:
        self.commands.append(command)
        super().apply(command)

    def _write_duty(self, duty: int) -> None:
        self.writes.append(duty)


class GpioPwmPumpDriver(PumpDriver):
    """
    Drives the pump MOSFET with Raspberry Pi software PWM.

    Attributes:
        pin (int): BCM pin wired to the MOSFET gate.
        frequency (int): PWM frequency in Hz.
    """

    def __init__(self, pin: int, frequency: int = PUMP_PWM_FREQUENCY_HZ, sleep: Callable[[float], None] = time.sleep):
        super().__init__(sleep=sleep)
        self.pin = pin
        self.frequency = frequency
        self.GPIO = self._setup_gpio()
        self._pwm: Optional[object] = None
        if self.GPIO:
            self.GPIO.setmode(self.GPIO.BCM)
            self.GPIO.setup(self.pin, self.GPIO.OUT)
            self._pwm = self.GPIO.PWM(self.pin, self.frequency)
            self._pwm.start(0)
            logger.info("Pump PWM on GPIO %s at %s Hz", self.pin, self.frequency)
        else:
            logger.warning("GPIO is not available. Pump on GPIO %s will not be driven.", self.pin)

    def _setup_gpio(self):
        """Imports GPIO only when running on a Raspberry Pi."""
        try:
            import RPi.GPIO as GPIO  # type: ignore

            return GPIO
        except (ImportError, RuntimeError):
            logger.error("GPIO not available. Running in non-Raspberry Pi environment.")
            return None

    def _write_duty(self, duty: int) -> None:
        if self._pwm is not None:
            self._pwm.ChangeDutyCycle(duty * 100.0 / PWM_MAX)

    def cleanup(self) -> None:
        """Stops PWM and releases the pin."""
        self.stop()
        if self._pwm is not None:
            self._pwm.stop()
            self.GPIO.cleanup(self.pin)
            self._pwm = None
