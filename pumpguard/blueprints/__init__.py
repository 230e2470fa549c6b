"""HTTP blueprints for the PumpGuard status/config surface."""
