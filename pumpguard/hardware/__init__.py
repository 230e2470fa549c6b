from pumpguard.hardware.pump_driver import GpioPwmPumpDriver, PumpDriver, RecordingPumpDriver
from pumpguard.hardware.sensors import (
    Ads1115SoilSampler,
    CallableSensorSampler,
    ScriptedSensorSampler,
    SensorSample,
    SensorSampler,
    StaticSensorSampler,
)

__all__ = [
    "Ads1115SoilSampler",
    "CallableSensorSampler",
    "GpioPwmPumpDriver",
    "PumpDriver",
    "RecordingPumpDriver",
    "ScriptedSensorSampler",
    "SensorSample",
    "SensorSampler",
    "StaticSensorSampler",
]
