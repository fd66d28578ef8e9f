"""
Event channels: one persistent server-to-client text/event-stream feed.

Two variants share the same contract and are picked once, when the
subscription is created:
- NativeEventChannel parses the full SSE grammar with httpx-sse and resumes
  with Last-Event-ID / the server's retry hint.
- ManualEventChannel reads raw bytes from any stream opener and only
  understands `data: ` lines. It reconnects after a fixed delay.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncContextManager,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
)
from urllib.parse import urlsplit

import httpx
from httpx_sse import aconnect_sse

from codimir_sdk.core.auth import TokenProvider, bearer_headers, token_source
from codimir_sdk.core.config import DEFAULT_RECONNECT_DELAY_MS
from codimir_sdk.core.errors import error_from_response
from codimir_sdk.core.observability import DiagnosticSink, LoggingSink, emit

DATA_PREFIX = "data: "
EVENT_STREAM = "text/event-stream"

# Streams stay open indefinitely; only connecting is bounded.
STREAM_TIMEOUT = httpx.Timeout(10.0, read=None)

MODES = ("auto", "native", "manual")

# Floor for the server's `retry:` hint; 0 would reconnect in a tight loop.
MIN_SERVER_RETRY_MS = 100


@dataclass(frozen=True)
class SSEOptions:
    url: str
    token: TokenProvider = None
    headers: Mapping[str, str] = field(default_factory=dict)
    reconnect_delay_ms: int = DEFAULT_RECONNECT_DELAY_MS
    mode: str = "auto"

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("url must be provided.")
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {self.mode!r}")
        if self.reconnect_delay_ms < 0:
            raise ValueError("reconnect_delay_ms must be >= 0")

    @property
    def origin(self) -> str:
        parts = urlsplit(self.url)
        return f"{parts.scheme}://{parts.netloc}" if parts.netloc else ""


@dataclass(frozen=True)
class SSEMessage:
    """One data frame as received; `data` is still text."""

    data: str
    event: str = "message"
    id: str = ""
    origin: str = ""


Deliver = Callable[[SSEMessage], Awaitable[None]]
IsActive = Callable[[], bool]
Sleep = Callable[[float], Awaitable[Any]]


class ByteStream(Protocol):
    status_code: int

    def aiter_bytes(self) -> AsyncIterator[bytes]: ...


StreamOpener = Callable[[str, Mapping[str, str]], AsyncContextManager[ByteStream]]


def httpx_stream_opener(http: httpx.AsyncClient) -> StreamOpener:
    def _open(url: str, headers: Mapping[str, str]):
        return http.stream("GET", url, headers=dict(headers), timeout=STREAM_TIMEOUT)

    return _open


class DataLineParser:
    """
    Incremental `data: ` line splitter.
    Bytes may arrive cut anywhere, including inside a UTF-8 sequence or a line.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[str]:
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        payloads: List[str] = []
        for line in lines:
            if line.endswith("\r"):
                line = line[:-1]
            if line.startswith(DATA_PREFIX):
                payloads.append(line[len(DATA_PREFIX) :])
        return payloads


class EventChannel(ABC):
    mode: str = ""

    def __init__(
        self,
        options: SSEOptions,
        *,
        sink: Optional[DiagnosticSink] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.options = options
        self.sink = sink or LoggingSink()
        self._get_token = token_source(options.token)
        self._sleep = sleep

    async def build_headers(self) -> Dict[str, str]:
        headers = {
            **self.options.headers,
            "Accept": EVENT_STREAM,
            "Cache-Control": "no-cache",
        }
        headers.update(bearer_headers(await self._get_token()))
        return headers

    def reconnect_delay_ms(self) -> int:
        return self.options.reconnect_delay_ms

    async def run(self, deliver: Deliver, is_active: IsActive) -> None:
        """Keep the feed open until is_active() turns false."""
        while is_active():
            try:
                await self.read_once(deliver, is_active)
                if is_active():
                    emit(
                        self.sink,
                        "sse.stream_closed",
                        url=self.options.url,
                        mode=self.mode,
                    )
            except Exception as exc:
                emit(
                    self.sink,
                    "sse.connection_error",
                    logging.WARNING,
                    url=self.options.url,
                    mode=self.mode,
                    error_type=type(exc).__name__,
                    code=getattr(exc, "code", None),
                    error=str(exc),
                )

            if not is_active():
                break
            delay_ms = self.reconnect_delay_ms()
            emit(
                self.sink,
                "sse.reconnect_scheduled",
                url=self.options.url,
                mode=self.mode,
                delay_ms=delay_ms,
            )
            await self._sleep(delay_ms / 1000)

    @abstractmethod
    async def read_once(self, deliver: Deliver, is_active: IsActive) -> None:
        """Open one exchange and deliver its frames until it ends."""

    async def aclose(self) -> None:
        return None


class ManualEventChannel(EventChannel):
    mode = "manual"

    def __init__(
        self,
        options: SSEOptions,
        *,
        opener: Optional[StreamOpener] = None,
        http: Optional[httpx.AsyncClient] = None,
        sink: Optional[DiagnosticSink] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(options, sink=sink, sleep=sleep)
        self._http = http
        self._owned_http: Optional[httpx.AsyncClient] = None
        self._opener = opener

    def _get_opener(self) -> StreamOpener:
        # Built on first connect; a feed cancelled before starting owns nothing.
        if self._opener is None:
            if self._http is None:
                self._http = self._owned_http = httpx.AsyncClient()
            self._opener = httpx_stream_opener(self._http)
        return self._opener

    async def read_once(self, deliver: Deliver, is_active: IsActive) -> None:
        opener = self._get_opener()
        headers = await self.build_headers()
        async with opener(self.options.url, headers) as stream:
            if not 200 <= stream.status_code < 300:
                raise error_from_response(stream.status_code)
            emit(self.sink, "sse.connected", url=self.options.url, mode=self.mode)

            parser = DataLineParser()
            async for chunk in stream.aiter_bytes():
                for data in parser.feed(chunk):
                    if not is_active():
                        return
                    await deliver(
                        SSEMessage(data=data, origin=self.options.origin)
                    )

    async def aclose(self) -> None:
        if self._owned_http is not None:
            await self._owned_http.aclose()


class NativeEventChannel(EventChannel):
    mode = "native"

    def __init__(
        self,
        options: SSEOptions,
        *,
        http: Optional[httpx.AsyncClient] = None,
        sink: Optional[DiagnosticSink] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(options, sink=sink, sleep=sleep)
        self.http: Optional[httpx.AsyncClient] = http
        self._owns_http = False
        self.last_event_id = ""
        self.server_retry_ms: Optional[int] = None

    def reconnect_delay_ms(self) -> int:
        if self.server_retry_ms is not None:
            return max(self.server_retry_ms, MIN_SERVER_RETRY_MS)
        return self.options.reconnect_delay_ms

    async def read_once(self, deliver: Deliver, is_active: IsActive) -> None:
        if self.http is None:
            self.http = httpx.AsyncClient()
            self._owns_http = True
        headers = await self.build_headers()
        if self.last_event_id:
            headers["Last-Event-ID"] = self.last_event_id

        async with aconnect_sse(
            self.http, "GET", self.options.url, headers=headers, timeout=STREAM_TIMEOUT
        ) as source:
            resp = source.response
            if not 200 <= resp.status_code < 300:
                await resp.aread()
                try:
                    payload = resp.json()
                except ValueError:
                    payload = None
                raise error_from_response(resp.status_code, payload)
            emit(self.sink, "sse.connected", url=self.options.url, mode=self.mode)

            async for sse in source.aiter_sse():
                if sse.id:
                    self.last_event_id = sse.id
                if sse.retry is not None:
                    self.server_retry_ms = sse.retry
                # Blocks with no data (retry/id only, comments) are not events.
                if not sse.data:
                    continue
                if not is_active():
                    return
                await deliver(
                    SSEMessage(
                        data=sse.data,
                        event=sse.event or "message",
                        id=sse.id or "",
                        origin=self.options.origin,
                    )
                )

    async def aclose(self) -> None:
        if self._owns_http and self.http is not None:
            await self.http.aclose()


def create_event_channel(
    options: SSEOptions,
    *,
    http: Optional[httpx.AsyncClient] = None,
    opener: Optional[StreamOpener] = None,
    sink: Optional[DiagnosticSink] = None,
    sleep: Sleep = asyncio.sleep,
) -> EventChannel:
    """
    Pick the channel variant once.
    - a raw byte-stream opener means only chunked reads are available: manual
    - an httpx client (or nothing, we make one) supports full SSE: native
    """
    mode = options.mode
    if mode == "auto":
        mode = "manual" if opener is not None else "native"

    if mode == "native":
        if opener is not None:
            raise ValueError("native mode reads through httpx; drop the opener")
        return NativeEventChannel(options, http=http, sink=sink, sleep=sleep)

    return ManualEventChannel(options, opener=opener, http=http, sink=sink, sleep=sleep)


__all__ = [
    "ByteStream",
    "DataLineParser",
    "EventChannel",
    "ManualEventChannel",
    "NativeEventChannel",
    "SSEMessage",
    "SSEOptions",
    "StreamOpener",
    "create_event_channel",
    "httpx_stream_opener",
]
