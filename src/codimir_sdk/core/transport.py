from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .auth import TokenProvider, token_source
from .errors import ApiError, ErrorCode, error_from_exception
from .executor import RequestExecutor
from .retry import RetryConfig, RetryController

T = TypeVar("T", bound=BaseModel)

DEFAULT_TIMEOUT_MS = 15_000
USER_AGENT = "codimir-sdk-python"

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class TransportConfig:
    base_url: str
    token: TokenProvider = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    retry: RetryConfig = field(default_factory=RetryConfig)

    def __post_init__(self) -> None:
        base_url = (self.base_url or "").strip().rstrip("/")
        if not base_url:
            raise ValueError("base_url must be provided.")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be greater than zero")
        object.__setattr__(self, "base_url", base_url)


class Transport:
    """
    Shared HTTP transport for the Codimir JSON API.
    - Injects the bearer token per attempt
    - Bounds every attempt with timeout_ms
    - Retries idempotent calls on 429/5xx/network failures with backoff
    - Raises ApiError for every failure; returns parsed JSON (None on 204)
    """

    def __init__(
        self,
        config: TransportConfig,
        *,
        http: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self.log = logger or logging.getLogger("codimir_sdk.transport")
        self._get_token = token_source(config.token)
        self._sleep = sleep
        self.retry = RetryController(config.retry)

        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(
            base_url=config.base_url,
            headers={"User-Agent": USER_AGENT},
            timeout=config.timeout_ms / 1000,
        )
        self.executor = RequestExecutor(
            self.http, timeout_ms=config.timeout_ms, logger=self.log
        )

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def has_auth(self) -> bool:
        return self.config.token is not None

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.config.base_url}{path}"

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        method = method.upper()
        url = self.url_for(path)
        attempt = 0

        while attempt <= self.retry.max_attempts:
            try:
                token = await self._get_token()
            except Exception as exc:
                raise error_from_exception(exc) from exc
            result = await self.executor.execute(
                method, url, body, token=token, params=params, attempt=attempt
            )
            if result.ok:
                return None if result.no_content else result.value

            decision = self.retry.decide(method, result.status, attempt)
            if not decision.should_retry:
                raise result.to_error() from result.exception

            self.log.info(
                "transport.retry",
                extra={
                    "method": method,
                    "path": path,
                    "status": result.status,
                    "attempt": attempt,
                    "delay_ms": decision.delay_ms,
                },
            )
            await self._sleep(decision.delay_ms / 1000)
            attempt += 1

        # Unreachable: the controller refuses once attempt == max_attempts.
        raise ApiError(
            "Max retry attempts exceeded", 500, ErrorCode.MAX_RETRIES_EXCEEDED
        )

    async def request_model(
        self,
        model: Type[T],
        method: str,
        path: str,
        body: Any = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> T:
        payload = await self.request(method, path, body, params=params)
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise ApiError(
                f"Response did not match model {model.__name__}",
                502,
                ErrorCode.INVALID_RESPONSE,
                exc.errors(include_url=False),
            ) from exc

    async def get(self, path: str, *, params: Optional[Mapping[str, Any]] = None):
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Any = None):
        return await self.request("POST", path, body)

    async def put(self, path: str, body: Any = None):
        return await self.request("PUT", path, body)

    async def patch(self, path: str, body: Any = None):
        return await self.request("PATCH", path, body)

    async def delete(self, path: str):
        return await self.request("DELETE", path)


__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "Transport",
    "TransportConfig",
]
