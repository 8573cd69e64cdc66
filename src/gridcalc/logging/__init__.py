"""Structured event logging for gridcalc.

Provides the event schema, a filesystem NDJSON sink, and emit helpers
that never raise.
"""

from gridcalc.logging.events import (
    EventLevel,
    EventType,
    GridEvent,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    set_project_dir,
    truncate_context,
)
from gridcalc.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "GridEvent",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "set_project_dir",
    "truncate_context",
]
