from __future__ import annotations

from typing import Any, Dict, Optional

import httpx


class ErrorCode:
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    BAD_GATEWAY = "BAD_GATEWAY"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    GATEWAY_TIMEOUT = "GATEWAY_TIMEOUT"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    MAX_RETRIES_EXCEEDED = "MAX_RETRIES_EXCEEDED"
    INVALID_RESPONSE = "INVALID_RESPONSE"


STATUS_CODES: Dict[int, str] = {
    400: ErrorCode.BAD_REQUEST,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    429: ErrorCode.RATE_LIMITED,
    500: ErrorCode.INTERNAL_ERROR,
    502: ErrorCode.BAD_GATEWAY,
    503: ErrorCode.SERVICE_UNAVAILABLE,
    504: ErrorCode.GATEWAY_TIMEOUT,
}

TIMEOUT_STATUS = 408
NETWORK_ERROR_STATUS = 500


class ApiError(Exception):
    """
    The one error shape the SDK raises.
    - `status` is always an HTTP-range integer (100-599)
    - `code` is stable and safe to branch on
    - `details` carries the server payload verbatim when there is one
    """

    def __init__(
        self,
        message: str,
        status: int,
        code: str,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details

    def __repr__(self) -> str:
        return (
            f"ApiError(message={self.message!r}, status={self.status}, "
            f"code={self.code!r})"
        )

    def is_(self, code: str) -> bool:
        return self.code == code

    def is_client_error(self) -> bool:
        return 400 <= self.status < 500

    def is_server_error(self) -> bool:
        return self.status >= 500

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"error": error, "status": self.status}


def default_error_code(status: int) -> str:
    return STATUS_CODES.get(status, ErrorCode.UNKNOWN_ERROR)


def _valid_status(status: Any) -> bool:
    return isinstance(status, int) and 100 <= status <= 599


def error_from_response(status: int, payload: Optional[Any] = None) -> ApiError:
    """Build an ApiError from an HTTP failure status and its (parsed) body."""
    message: Optional[str] = None
    code: Optional[str] = None
    details: Optional[Any] = None

    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            if isinstance(err.get("message"), str):
                message = err["message"]
            if isinstance(err.get("code"), str):
                code = err["code"]
            details = err.get("details")
        elif isinstance(err, str) and err:
            message = err
        if message is None and isinstance(payload.get("message"), str):
            message = payload["message"]

    if not _valid_status(status):
        return ApiError(
            message or f"HTTP {status}",
            NETWORK_ERROR_STATUS,
            code or ErrorCode.UNKNOWN_ERROR,
            details,
        )

    return ApiError(
        message or f"HTTP {status}",
        status,
        code or default_error_code(status),
        details,
    )


def error_from_exception(exc: BaseException) -> ApiError:
    """Map a local failure (no HTTP response) onto an ApiError."""
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, (TimeoutError, httpx.TimeoutException)):
        return ApiError("Request timeout", TIMEOUT_STATUS, ErrorCode.TIMEOUT)
    message = str(exc) or type(exc).__name__
    return ApiError(message, NETWORK_ERROR_STATUS, ErrorCode.NETWORK_ERROR)


__all__ = [
    "ApiError",
    "ErrorCode",
    "STATUS_CODES",
    "TIMEOUT_STATUS",
    "NETWORK_ERROR_STATUS",
    "default_error_code",
    "error_from_response",
    "error_from_exception",
]
