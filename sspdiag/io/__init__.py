"""Data IO helpers."""

from .reader import EventRecord, EventTables, MissingColumnsError, iter_events, read_event_tables

__all__ = [
    "EventRecord",
    "EventTables",
    "MissingColumnsError",
    "iter_events",
    "read_event_tables",
]
