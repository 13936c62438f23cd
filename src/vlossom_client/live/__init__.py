"""Live session tracking over server-sent events."""

from .sse import ServerSentEvent, parse_sse
from .updates import LiveEventType, LiveUpdateEvent, LiveUpdatesClient, LiveUpdatesError, LiveUpdatesState

__all__ = [
    "LiveEventType",
    "LiveUpdateEvent",
    "LiveUpdatesClient",
    "LiveUpdatesError",
    "LiveUpdatesState",
    "ServerSentEvent",
    "parse_sse",
]
