from __future__ import annotations

from dataclasses import dataclass

# Methods whose repetition leaves the server in the same end state.
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "PUT", "DELETE"})

# Status used for failures that never produced a response (DNS, reset, timeout).
NO_RESPONSE_STATUS = 0


@dataclass(frozen=True)
class RetryConfig:
    attempts: int = 2  # extra attempts after the first one
    min_delay_ms: int = 300  # 300, 600, 1200...
    factor: float = 2.0

    def __post_init__(self) -> None:
        if self.attempts < 0:
            raise ValueError("retry attempts must be >= 0")
        if self.min_delay_ms < 0:
            raise ValueError("retry min_delay_ms must be >= 0")
        if self.factor < 0:
            raise ValueError("retry factor must be >= 0")


@dataclass(frozen=True)
class RetryDecision:
    should_retry: bool
    delay_ms: int = 0


def is_idempotent(method: str) -> bool:
    return method.upper() in IDEMPOTENT_METHODS


def is_retryable_status(status: int) -> bool:
    return (
        status == NO_RESPONSE_STATUS or status == 429 or 500 <= status <= 599
    )


def backoff_delay_ms(config: RetryConfig, attempt_index: int) -> int:
    return int(round(config.min_delay_ms * (config.factor**attempt_index)))


def decide(
    method: str, status: int, attempt_index: int, config: RetryConfig
) -> RetryDecision:
    """
    Decide whether a failed attempt may be repeated.
    - POST/PATCH are never retried: a transient 5xx may already have applied
      the write
    - only 429, 5xx and no-response failures qualify
    - attempt_index is zero-based; the budget is config.attempts retries
    """
    if not is_idempotent(method):
        return RetryDecision(should_retry=False)
    if not is_retryable_status(status):
        return RetryDecision(should_retry=False)
    if attempt_index >= config.attempts:
        return RetryDecision(should_retry=False)
    return RetryDecision(
        should_retry=True, delay_ms=backoff_delay_ms(config, attempt_index)
    )


class RetryController:
    """Binds a RetryConfig so the transport only passes per-attempt facts."""

    def __init__(self, config: RetryConfig | None = None):
        self.config = config if config is not None else RetryConfig()

    @property
    def max_attempts(self) -> int:
        return self.config.attempts

    def decide(self, method: str, status: int, attempt_index: int) -> RetryDecision:
        return decide(method, status, attempt_index, self.config)


__all__ = [
    "IDEMPOTENT_METHODS",
    "NO_RESPONSE_STATUS",
    "RetryConfig",
    "RetryDecision",
    "RetryController",
    "backoff_delay_ms",
    "decide",
    "is_idempotent",
    "is_retryable_status",
]
