"""Core request/response layer for codimir-sdk (no endpoints, no realtime)."""

from .auth import TokenProvider, token_source
from .config import ClientSettings, load_env_config
from .errors import (
    ApiError,
    ErrorCode,
    default_error_code,
    error_from_exception,
    error_from_response,
)
from .executor import ExchangeResult, RequestExecutor
from .logging import LogfmtFormatter, setup_logging
from .observability import Diagnostic, DiagnosticSink, LoggingSink, log_event
from .retry import (
    IDEMPOTENT_METHODS,
    RetryConfig,
    RetryController,
    RetryDecision,
    decide,
    is_idempotent,
    is_retryable_status,
)
from .transport import DEFAULT_TIMEOUT_MS, Transport, TransportConfig

__all__ = [
    # Transport
    "Transport",
    "TransportConfig",
    "DEFAULT_TIMEOUT_MS",
    "RequestExecutor",
    "ExchangeResult",
    # Retry
    "RetryConfig",
    "RetryController",
    "RetryDecision",
    "IDEMPOTENT_METHODS",
    "decide",
    "is_idempotent",
    "is_retryable_status",
    # Errors
    "ApiError",
    "ErrorCode",
    "default_error_code",
    "error_from_response",
    "error_from_exception",
    # Auth
    "TokenProvider",
    "token_source",
    # Config
    "ClientSettings",
    "load_env_config",
    # Logging / observability
    "setup_logging",
    "LogfmtFormatter",
    "log_event",
    "Diagnostic",
    "DiagnosticSink",
    "LoggingSink",
]
