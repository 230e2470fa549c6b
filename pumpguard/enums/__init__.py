"""
Enums Module
============

Enumeration types shared by the controller, storage and API layers.
"""

from pumpguard.enums.events import PumpEvent
from pumpguard.enums.pump import PumpMode, PumpState

__all__ = ["PumpEvent", "PumpMode", "PumpState"]
