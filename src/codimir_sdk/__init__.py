"""codimir_sdk package exports."""

from .client import CodimirClient, create_client_from_env, create_codimir_client
from .core import (
    ApiError,
    ClientSettings,
    Diagnostic,
    DiagnosticSink,
    ErrorCode,
    LoggingSink,
    RetryConfig,
    Transport,
    TransportConfig,
    setup_logging,
)
from .endpoints import TicketsApi
from .models import (
    ConnectionEvent,
    CreateTicketInput,
    EntityUpdatedEvent,
    Event,
    GenericEvent,
    HeartbeatEvent,
    ListTicketsParams,
    Ticket,
    TicketPage,
    TicketUpdatedEvent,
    UpdateTicketInput,
    parse_event,
)
from .realtime import (
    SSEMessage,
    SSEOptions,
    Subscription,
    subscribe_sse,
    subscribe_typed_events,
)

SDK_VERSION = "0.1.0"

DEFAULT_CONFIG = {
    "timeout_ms": 15_000,
    "retry": {"attempts": 2, "min_delay_ms": 300, "factor": 2},
}

__all__ = [
    # Client
    "CodimirClient",
    "create_codimir_client",
    "create_client_from_env",
    "TicketsApi",
    # Transport
    "Transport",
    "TransportConfig",
    "RetryConfig",
    "ClientSettings",
    # Errors
    "ApiError",
    "ErrorCode",
    # Models
    "Ticket",
    "TicketPage",
    "CreateTicketInput",
    "UpdateTicketInput",
    "ListTicketsParams",
    "Event",
    "ConnectionEvent",
    "HeartbeatEvent",
    "EntityUpdatedEvent",
    "TicketUpdatedEvent",
    "GenericEvent",
    "parse_event",
    # Real-time
    "SSEOptions",
    "SSEMessage",
    "Subscription",
    "subscribe_sse",
    "subscribe_typed_events",
    # Observability
    "setup_logging",
    "Diagnostic",
    "DiagnosticSink",
    "LoggingSink",
    # Constants
    "SDK_VERSION",
    "DEFAULT_CONFIG",
]
