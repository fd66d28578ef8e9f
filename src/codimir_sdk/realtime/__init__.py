"""Server-to-client event feeds (text/event-stream)."""

from .channels import (
    DataLineParser,
    EventChannel,
    ManualEventChannel,
    NativeEventChannel,
    SSEMessage,
    SSEOptions,
    StreamOpener,
    create_event_channel,
)
from .sse import Subscription, subscribe_sse, subscribe_typed_events

__all__ = [
    "SSEOptions",
    "SSEMessage",
    "StreamOpener",
    "DataLineParser",
    "EventChannel",
    "ManualEventChannel",
    "NativeEventChannel",
    "create_event_channel",
    "Subscription",
    "subscribe_sse",
    "subscribe_typed_events",
]
