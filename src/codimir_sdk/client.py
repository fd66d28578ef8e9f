from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from codimir_sdk.core.auth import TokenProvider
from codimir_sdk.core.config import DEFAULT_RECONNECT_DELAY_MS, ClientSettings
from codimir_sdk.core.errors import ApiError
from codimir_sdk.core.observability import DiagnosticSink
from codimir_sdk.core.retry import RetryConfig
from codimir_sdk.core.transport import DEFAULT_TIMEOUT_MS, Transport, TransportConfig
from codimir_sdk.endpoints.tickets import TicketsApi
from codimir_sdk.realtime import SSEOptions, Subscription, subscribe_typed_events
from codimir_sdk.realtime.sse import EventHandler

EVENTS_STREAM_PATH = "/api/v1/events/stream"


class CodimirClient:
    """
    Entry point for the Codimir API.
    - `tickets` wraps the ticket endpoints
    - `subscribe()` opens the real-time event feed with the same credentials
    - all calls go through one Transport (auth, timeouts, retries, errors)

    Example:
        async with CodimirClient("https://api.codimir.dev", token=get_key) as c:
            ticket = await c.tickets.create({"title": "Fix login issue"})
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: TokenProvider = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        retry: Optional[RetryConfig] = None,
        http: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
        sink: Optional[DiagnosticSink] = None,
        reconnect_delay_ms: int = DEFAULT_RECONNECT_DELAY_MS,
    ):
        if not base_url:
            raise ValueError("base_url is required")

        config = TransportConfig(
            base_url=base_url,
            token=token,
            timeout_ms=timeout_ms,
            retry=retry if retry is not None else RetryConfig(),
        )
        self.transport = Transport(config, http=http, logger=logger)
        self.tickets = TicketsApi(self.transport)
        self.sink = sink
        self.reconnect_delay_ms = reconnect_delay_ms
        self._subscriptions: List[Subscription] = []

    @classmethod
    def from_settings(cls, settings: ClientSettings, **kwargs: Any) -> "CodimirClient":
        kwargs.setdefault("reconnect_delay_ms", settings.reconnect_delay_ms)
        return cls(
            settings.base_url,
            token=settings.api_key,
            timeout_ms=settings.timeout_ms,
            retry=settings.retry,
            **kwargs,
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> "CodimirClient":
        return cls.from_settings(ClientSettings.from_env(), **kwargs)

    async def aclose(self) -> None:
        # Feeds share transport.http, so they go first.
        subscriptions, self._subscriptions = self._subscriptions, []
        for sub in subscriptions:
            await sub.aclose()
        await self.transport.aclose()

    async def __aenter__(self) -> "CodimirClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def test_connection(self) -> None:
        try:
            await self.tickets.list({"limit": 1})
        except ApiError as exc:
            raise ApiError(
                f"Failed to connect to Codimir API: {exc.message}",
                exc.status,
                exc.code,
                exc.details,
            ) from exc

    def get_config(self) -> Dict[str, Any]:
        return {
            "base_url": self.transport.base_url,
            "has_auth": self.transport.has_auth,
        }

    def subscribe(
        self,
        on_event: Optional[EventHandler] = None,
        *,
        handlers: Optional[Mapping[str, EventHandler]] = None,
        path: str = EVENTS_STREAM_PATH,
        mode: str = "auto",
    ) -> Subscription:
        """
        Open the typed event feed on this client's base URL and token.
        The feed is cancelled when the client is closed.
        """
        options = SSEOptions(
            url=self.transport.url_for(path),
            token=self.transport.config.token,
            reconnect_delay_ms=self.reconnect_delay_ms,
            mode=mode,
        )
        sub = subscribe_typed_events(
            options,
            on_event,
            handlers=handlers,
            http=self.transport.http,
            sink=self.sink,
        )
        self._subscriptions = [s for s in self._subscriptions if not s.closed]
        self._subscriptions.append(sub)
        return sub


def create_codimir_client(base_url: str, token: TokenProvider = None) -> CodimirClient:
    return CodimirClient(base_url, token=token)


def create_client_from_env(**kwargs: Any) -> CodimirClient:
    """Create a CodimirClient from CODIMIR_* environment variables."""
    return CodimirClient.from_env(**kwargs)


__all__ = [
    "CodimirClient",
    "EVENTS_STREAM_PATH",
    "create_codimir_client",
    "create_client_from_env",
]
