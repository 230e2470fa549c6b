from pumpguard.utils.ticks import ManualTicks, MonotonicTicks, ticks, ticks_add, ticks_diff

__all__ = ["ManualTicks", "MonotonicTicks", "ticks", "ticks_add", "ticks_diff"]
