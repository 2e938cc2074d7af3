"""
FIREDESK Event Stream Module
Append-only operational memory of every committed coordinator command.
"""
from .routes import register_eventstream_routes
from .emitter import emit_event
from .models import init_eventstream_schema, query_events

__all__ = [
    "register_eventstream_routes",
    "emit_event",
    "init_eventstream_schema",
    "query_events",
]
