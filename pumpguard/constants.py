"""
Application Constants
=====================

Centralized limits and compiled defaults for the pump controller.

Usage:
    from pumpguard.constants import ConfigLimits, DEFAULT_HISTORY_CAPACITY
"""

# =============================================================================
# Clock
# =============================================================================

TICKS_BITS = 32
TICKS_MASK = (1 << TICKS_BITS) - 1
# Longest duration that survives a counter wrap when compared with ticks_diff()
TICKS_MAX_DURATION_MS = (1 << (TICKS_BITS - 1)) - 1


# =============================================================================
# Actuator
# =============================================================================

PWM_MAX = 255
SOFT_RAMP_MS = 1000
SOFT_RAMP_STEPS = 20
PUMP_PWM_FREQUENCY_HZ = 1000


# =============================================================================
# Config validation ranges
# =============================================================================


class ConfigLimits:
    """Ranges enforced by ConfigStore.validate()."""

    ADC_MAX = 4095
    HYSTERESIS_MIN_GAP = 50

    MIN_DWELL_MS = 1000
    MAX_DURATION_MS = TICKS_MAX_DURATION_MS

    MIN_LIMIT_WINDOW_SEC = 5
    MAX_LIMIT_WINDOW_SEC = TICKS_MAX_DURATION_MS // 1000
    MIN_MAX_ON_SEC = 1

    MIN_LOG_PERIOD_MS = 5000


# =============================================================================
# Telemetry
# =============================================================================

DEFAULT_HISTORY_CAPACITY = 240  # 40 minutes at a 10 s log period
MAX_HISTORY_CAPACITY = 0xFFFF  # index is persisted as u16
HISTORY_MAGIC = 0xB0B0B0B0
TEMP_MISSING_SENTINEL = -32768  # INT16_MIN in the history snapshot

EVENT_TAIL_DEFAULT = 100
