from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

from .retry import RetryConfig
from .transport import DEFAULT_TIMEOUT_MS

DEFAULT_RECONNECT_DELAY_MS = 5_000


def _read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip().replace("_", ""))
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _read_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def load_env_config(*, use_dotenv: bool = True) -> Tuple[str, str]:
    """Load Codimir base URL and API key from environment (optional .env)."""
    if use_dotenv:
        load_dotenv()
    base_url = os.getenv("CODIMIR_API_URL", "").strip()
    api_key = os.getenv("CODIMIR_API_KEY", "").strip()
    return base_url, api_key


@dataclass(frozen=True)
class ClientSettings:
    """Everything a client needs, as read from CODIMIR_* variables."""

    base_url: str
    api_key: Optional[str] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    retry: RetryConfig = field(default_factory=RetryConfig)
    reconnect_delay_ms: int = DEFAULT_RECONNECT_DELAY_MS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, *, use_dotenv: bool = True) -> "ClientSettings":
        base_url, api_key = load_env_config(use_dotenv=use_dotenv)
        if not base_url:
            raise ValueError("Missing CODIMIR_API_URL in environment.")

        timeout_ms = _read_int_env("CODIMIR_TIMEOUT_MS", DEFAULT_TIMEOUT_MS)
        if timeout_ms <= 0:
            raise ValueError("CODIMIR_TIMEOUT_MS must be greater than zero")

        reconnect_delay_ms = _read_int_env(
            "CODIMIR_SSE_RECONNECT_MS", DEFAULT_RECONNECT_DELAY_MS
        )
        if reconnect_delay_ms < 0:
            raise ValueError("CODIMIR_SSE_RECONNECT_MS must be >= 0")

        defaults = RetryConfig()
        retry = RetryConfig(
            attempts=_read_int_env("CODIMIR_RETRY_ATTEMPTS", defaults.attempts),
            min_delay_ms=_read_int_env(
                "CODIMIR_RETRY_MIN_DELAY_MS", defaults.min_delay_ms
            ),
            factor=_read_float_env("CODIMIR_RETRY_FACTOR", defaults.factor),
        )

        return cls(
            base_url=base_url,
            api_key=api_key or None,
            timeout_ms=timeout_ms,
            retry=retry,
            reconnect_delay_ms=reconnect_delay_ms,
            log_level=os.getenv("CODIMIR_LOG_LEVEL", "INFO").strip() or "INFO",
        )


__all__ = ["ClientSettings", "DEFAULT_RECONNECT_DELAY_MS", "load_env_config"]
