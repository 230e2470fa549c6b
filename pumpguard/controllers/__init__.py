"""
Controllers Package
===================

Decision engines of the control layer.

    SensorSampler -> PumpController.tick() -> PumpCommand -> PumpDriver
"""

from pumpguard.controllers.pump_controller import PumpController

__all__ = ["PumpController"]
