from infrastructure.logging.event_log import CsvLogSink, EventLog, EventRecord, SoilLog

__all__ = ["CsvLogSink", "EventLog", "EventRecord", "SoilLog"]
