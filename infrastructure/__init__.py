"""Persistence and log sinks used by the pump control loop."""
