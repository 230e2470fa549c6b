"""
Control Loops
=============

Tick-driven loops that own runtime state and wire the decision engine to
its sensor, actuator and log collaborators.
"""

from pumpguard.control_loops.pump_loop import PumpControlLoop, StatusSnapshot

__all__ = ["PumpControlLoop", "StatusSnapshot"]
